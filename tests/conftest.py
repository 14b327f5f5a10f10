import random
from datetime import datetime, timezone

import pytest

from generate_mock_data import SCHEMA_PATH, GenerationConfig, generate_data
from storage import PersistenceError, SqliteStore, Store

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class RecordingStore(Store):
    """
    In-memory Store that records every call in order.

    With `fail_on="insert_chat", fail_at=3` the third insert_chat call raises
    PersistenceError instead of being recorded.
    """

    def __init__(self, fail_on=None, fail_at=1):
        self.calls = []
        self.fail_on = fail_on
        self.fail_at = fail_at
        self._seen = {}

    def _record(self, method, *args):
        self._seen[method] = self._seen.get(method, 0) + 1
        if method == self.fail_on and self._seen[method] == self.fail_at:
            raise PersistenceError("insert", method, args[0] if args else None, RuntimeError("boom"))
        self.calls.append((method, args))

    def clear(self, table):
        self._record("clear", table)

    def insert_user(self, user_id, name, created_at):
        self._record("insert_user", user_id, name, created_at)

    def insert_chat(self, chat_id, name, created_at):
        self._record("insert_chat", chat_id, name, created_at)

    def insert_membership(self, user_id, chat_id):
        self._record("insert_membership", user_id, chat_id)

    def insert_message(self, message_id, content, author_id, chat_id, created_at):
        self._record("insert_message", message_id, content, author_id, chat_id, created_at)

    def of(self, method):
        return [args for name, args in self.calls if name == method]

    def methods(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def sqlite_store():
    store = SqliteStore.connect(":memory:")
    store.init_schema(SCHEMA_PATH)
    yield store
    store.close()


@pytest.fixture
def generated_db(tmp_path):
    """A SQLite file holding a complete seeded dataset, plus the run result."""

    def build(users=30, chats=8, messages=120, seed=99):
        db_path = tmp_path / "messenger.db"
        store = SqliteStore.connect(db_path)
        store.init_schema(SCHEMA_PATH)
        try:
            result = generate_data(
                store,
                GenerationConfig(users_count=users, chats_count=chats, messages_count=messages),
                rng=random.Random(seed),
                now=NOW,
            )
        finally:
            store.close()
        return db_path, result

    return build

