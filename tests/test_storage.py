import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW
from generate_mock_data import SCHEMA_PATH
from storage import CLEAR_ORDER, MEMBERSHIPS, MESSAGES, PersistenceError, SqliteStore


def test_rows_round_trip_through_sqlite(sqlite_store):
    sqlite_store.insert_user(1, "Anna Petrov", NOW)
    sqlite_store.insert_chat(1, "Team chat 7", NOW)
    sqlite_store.insert_membership(1, 1)
    sqlite_store.insert_message(1, "Hi everyone!", 1, 1, NOW)

    conn = sqlite_store.conn
    assert conn.execute("SELECT id, name, created_at FROM Users").fetchall() == [
        (1, "Anna Petrov", "2026-01-15T12:00:00Z")
    ]
    assert conn.execute("SELECT user_id, chat_id FROM Users_Chats").fetchall() == [(1, 1)]
    assert conn.execute(
        "SELECT id, content, author_id, created_at, chat_id FROM Messages"
    ).fetchall() == [(1, "Hi everyone!", 1, "2026-01-15T12:00:00Z", 1)]


def test_aware_timestamps_are_stored_as_utc(sqlite_store):
    moscow = timezone(timedelta(hours=3))
    sqlite_store.insert_user(1, "Ivan Popov", datetime(2026, 1, 15, 15, 30, tzinfo=moscow))
    stored = sqlite_store.conn.execute("SELECT created_at FROM Users").fetchone()[0]
    assert stored == "2026-01-15T12:30:00Z"


def test_duplicate_membership_raises_persistence_error(sqlite_store):
    sqlite_store.insert_user(1, "Anna Petrov", NOW)
    sqlite_store.insert_chat(1, "Team chat 7", NOW)
    sqlite_store.insert_membership(1, 1)

    with pytest.raises(PersistenceError) as excinfo:
        sqlite_store.insert_membership(1, 1)

    err = excinfo.value
    assert err.table == MEMBERSHIPS
    assert err.key == (1, 1)
    assert isinstance(err.__cause__, sqlite3.IntegrityError)


def test_foreign_keys_are_enforced(sqlite_store):
    with pytest.raises(PersistenceError) as excinfo:
        sqlite_store.insert_message(1, "Hi everyone!", 99, 99, NOW)
    assert excinfo.value.table == MESSAGES
    assert excinfo.value.key == 1


def test_clear_empties_every_table(sqlite_store):
    sqlite_store.insert_user(1, "Anna Petrov", NOW)
    sqlite_store.insert_chat(1, "Team chat 7", NOW)
    sqlite_store.insert_membership(1, 1)
    sqlite_store.insert_message(1, "Hi everyone!", 1, 1, NOW)

    for table in CLEAR_ORDER:
        sqlite_store.clear(table)

    for table in CLEAR_ORDER:
        assert sqlite_store.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0


def test_clearing_parent_first_violates_foreign_keys(sqlite_store):
    sqlite_store.insert_user(1, "Anna Petrov", NOW)
    sqlite_store.insert_chat(1, "Team chat 7", NOW)
    sqlite_store.insert_membership(1, 1)

    with pytest.raises(PersistenceError) as excinfo:
        sqlite_store.clear("Users")
    assert excinfo.value.action == "clear"


def test_clear_rejects_unknown_table(sqlite_store):
    with pytest.raises(ValueError):
        sqlite_store.clear("Users; DROP TABLE Chats")


def test_rows_are_durable_without_explicit_commit(tmp_path):
    db_path = tmp_path / "durable.db"
    store = SqliteStore.connect(db_path)
    store.init_schema(SCHEMA_PATH)
    store.insert_user(1, "Anna Petrov", NOW)

    other = sqlite3.connect(str(db_path))
    try:
        assert other.execute("SELECT COUNT(*) FROM Users").fetchone()[0] == 1
    finally:
        other.close()
        store.close()


def test_ping_fails_on_closed_connection():
    store = SqliteStore.connect(":memory:")
    store.ping()
    store.close()
    with pytest.raises(PersistenceError):
        store.ping()
