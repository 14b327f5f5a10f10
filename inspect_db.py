#!/usr/bin/env python3
"""
Explorer and integrity check for a generated messenger database.

Usage:
    python inspect_db.py [path_to_db]

If no path is given, defaults to "mock_messenger.db". Prints every table's
columns, row count and a sample row, then verifies the relations the
generator promises:

- every membership points at an existing user and chat
- no (user, chat) pair appears twice
- every message has an existing author and chat
- each chat has between 2 and 10 members when there are at least two users

Exits with status 1 if any check fails.
"""

import sqlite3
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from generate_mock_data import MAX_CHAT_MEMBERS, MIN_CHAT_MEMBERS
from storage import CLEAR_ORDER

INTEGRITY_QUERIES = {
    "memberships with unknown user": """
        SELECT COUNT(*) FROM Users_Chats uc
        LEFT JOIN Users u ON u.id = uc.user_id
        WHERE u.id IS NULL;
    """,
    "memberships with unknown chat": """
        SELECT COUNT(*) FROM Users_Chats uc
        LEFT JOIN Chats c ON c.id = uc.chat_id
        WHERE c.id IS NULL;
    """,
    "duplicate memberships": """
        SELECT COUNT(*) FROM (
            SELECT user_id, chat_id FROM Users_Chats
            GROUP BY user_id, chat_id
            HAVING COUNT(*) > 1
        );
    """,
    "messages with unknown author": """
        SELECT COUNT(*) FROM Messages m
        LEFT JOIN Users u ON u.id = m.author_id
        WHERE u.id IS NULL;
    """,
    "messages with unknown chat": """
        SELECT COUNT(*) FROM Messages m
        LEFT JOIN Chats c ON c.id = m.chat_id
        WHERE c.id IS NULL;
    """,
}


def get_connection(db_path: Path) -> sqlite3.Connection:
    if not db_path.exists():
        raise FileNotFoundError(f"Database file not found: {db_path}")
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def list_tables(conn: sqlite3.Connection) -> List[str]:
    """Return user tables, skipping SQLite's own sqlite_* tables."""
    cur = conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name NOT LIKE 'sqlite_%'
        ORDER BY name;
        """
    )
    return [row["name"] for row in cur.fetchall()]


def row_count(conn: sqlite3.Connection, table_name: str) -> int:
    row = conn.execute(f"SELECT COUNT(*) AS cnt FROM {table_name};").fetchone()
    return row["cnt"] if row is not None else 0


def chat_sizes(conn: sqlite3.Connection) -> Dict[int, int]:
    """Member count per chat, including chats that have no members at all."""
    cur = conn.execute(
        """
        SELECT c.id AS chat_id, COUNT(uc.user_id) AS members
        FROM Chats c
        LEFT JOIN Users_Chats uc ON uc.chat_id = c.id
        GROUP BY c.id
        ORDER BY c.id;
        """
    )
    return {row["chat_id"]: row["members"] for row in cur.fetchall()}


def missing_tables(conn: sqlite3.Connection) -> List[str]:
    """Messenger tables the generator writes that this database lacks."""
    present = set(list_tables(conn))
    return [table for table in reversed(CLEAR_ORDER) if table not in present]


def check_integrity(conn: sqlite3.Connection) -> List[str]:
    """
    Run the referential checks and the chat-size bound.

    Returns a list of human readable problems; empty means the dataset is
    consistent.
    """
    problems = []
    for label, sql in INTEGRITY_QUERIES.items():
        bad = conn.execute(sql).fetchone()[0]
        if bad:
            problems.append(f"{bad} {label}")

    users = row_count(conn, "Users")
    upper = min(MAX_CHAT_MEMBERS, users)
    lower = min(MIN_CHAT_MEMBERS, users)
    for chat_id, members in chat_sizes(conn).items():
        if not lower <= members <= upper:
            problems.append(
                f"chat {chat_id} has {members} members (expected {lower}..{upper})"
            )
    return problems


def print_table_summary(conn: sqlite3.Connection, table_name: str) -> None:
    print("=" * 80)
    print(f"Table: {table_name}")
    print("-" * 80)

    # PRAGMA table_info rows: (cid, name, type, notnull, dflt_value, pk)
    print("Columns:")
    for _cid, name, col_type, notnull, _default, pk in conn.execute(
        f"PRAGMA table_info({table_name});"
    ):
        flags = (" (PK)" if pk else "") + (" NOT NULL" if notnull else "")
        print(f"  - {name}: {col_type}{flags}")
    print()

    print(f"Row count: {row_count(conn, table_name)}")

    sample = conn.execute(f"SELECT * FROM {table_name} LIMIT 1;").fetchone()
    if sample is None:
        print("Sample row: (table is empty)")
    else:
        print("Sample row: " + ", ".join(f"{col}={sample[col]!r}" for col in sample.keys()))
    print()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    db_path = Path(args[0]) if args else Path("mock_messenger.db")

    print(f"Inspecting database: {db_path}")
    conn = get_connection(db_path)
    try:
        tables = list_tables(conn)
        if not tables:
            print("No user tables found.")
            return 1

        print(f"Found {len(tables)} table(s): {', '.join(tables)}\n")
        for t in tables:
            print_table_summary(conn, t)

        missing = missing_tables(conn)
        if missing:
            print(f"Not a messenger database, missing table(s): {', '.join(missing)}")
            return 1

        problems = check_integrity(conn)
    finally:
        conn.close()

    if problems:
        print("Integrity problems:")
        for problem in problems:
            print(f"  - {problem}")
        return 1
    print("Integrity checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
