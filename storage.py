"""
Persistence port for the mock messenger generator.

The generator only ever talks to a `Store`: one `clear` per table and one
`insert_*` call per generated row. Two backends are provided:

- SqliteStore: a local SQLite file (the default for quick experiments).
- PostgresStore: a running PostgreSQL server, via psycopg2.

Both run in autocommit mode, so every row is durable as soon as its insert
returns and nothing is rolled back when a later insert fails.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

import psycopg2

logger = logging.getLogger(__name__)

USERS = "Users"
CHATS = "Chats"
MEMBERSHIPS = "Users_Chats"
MESSAGES = "Messages"

# Children before parents so foreign keys never block a wipe.
CLEAR_ORDER = (MESSAGES, MEMBERSHIPS, CHATS, USERS)


class PersistenceError(Exception):
    """A single write against the backing store failed.

    Attributes:
        action: "insert", "clear" or "ping"
        table: table that was being written
        key: identifier of the row being written (None for a clear)
        cause: the backend exception
    """

    def __init__(self, action: str, table: str, key: Any, cause: BaseException):
        self.action = action
        self.table = table
        self.key = key
        self.cause = cause
        target = table if key is None else f"{table} (key={key!r})"
        super().__init__(f"{action} on {target} failed: {cause}")


class Store(ABC):
    """Write interface the generator persists rows through."""

    @abstractmethod
    def clear(self, table: str) -> None:
        ...

    @abstractmethod
    def insert_user(self, user_id: int, name: str, created_at: datetime) -> None:
        ...

    @abstractmethod
    def insert_chat(self, chat_id: int, name: str, created_at: datetime) -> None:
        ...

    @abstractmethod
    def insert_membership(self, user_id: int, chat_id: int) -> None:
        ...

    @abstractmethod
    def insert_message(
        self,
        message_id: int,
        content: str,
        author_id: int,
        chat_id: int,
        created_at: datetime,
    ) -> None:
        ...

    def close(self) -> None:
        pass


class SqlStore(Store):
    """
    Shared SQL for the DB-API backends.

    Subclasses set the parameter `placeholder`, run statements in `_execute`
    (translating driver errors into PersistenceError) and may override
    `_timestamp` to adapt datetimes to their column format.
    """

    placeholder = "?"

    def __init__(self, conn):
        self.conn = conn

    @abstractmethod
    def _execute(self, action: str, table: str, key: Any, sql: str, params: Sequence[Any]) -> None:
        ...

    def _timestamp(self, value: datetime) -> Any:
        return value

    def _insert(self, table: str, key: Any, columns: Sequence[str], values: Sequence[Any]) -> None:
        marks = ", ".join([self.placeholder] * len(columns))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({marks})"
        self._execute("insert", table, key, sql, values)

    def clear(self, table: str) -> None:
        if table not in CLEAR_ORDER:
            raise ValueError(f"Unknown table: {table!r}")
        self._execute("clear", table, None, f"DELETE FROM {table}", ())
        logger.debug("Cleared table %s", table)

    def insert_user(self, user_id: int, name: str, created_at: datetime) -> None:
        self._insert(
            USERS, user_id,
            ("id", "name", "created_at"),
            (user_id, name, self._timestamp(created_at)),
        )

    def insert_chat(self, chat_id: int, name: str, created_at: datetime) -> None:
        self._insert(
            CHATS, chat_id,
            ("id", "name", "created_at"),
            (chat_id, name, self._timestamp(created_at)),
        )

    def insert_membership(self, user_id: int, chat_id: int) -> None:
        self._insert(
            MEMBERSHIPS, (user_id, chat_id),
            ("user_id", "chat_id"),
            (user_id, chat_id),
        )

    def insert_message(
        self,
        message_id: int,
        content: str,
        author_id: int,
        chat_id: int,
        created_at: datetime,
    ) -> None:
        self._insert(
            MESSAGES, message_id,
            ("id", "content", "author_id", "created_at", "chat_id"),
            (message_id, content, author_id, self._timestamp(created_at), chat_id),
        )

    def ping(self) -> None:
        """Round-trip a trivial query so a dead connection fails early."""
        self._execute("ping", "connection", None, "SELECT 1", ())

    def close(self) -> None:
        self.conn.close()


# ---------------------------------------
# SQLite
# ---------------------------------------

class SqliteStore(SqlStore):
    placeholder = "?"

    @classmethod
    def connect(cls, db_path) -> "SqliteStore":
        # isolation_level=None -> autocommit, one durable row per insert
        conn = sqlite3.connect(str(db_path), isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON;")
        return cls(conn)

    def _execute(self, action: str, table: str, key: Any, sql: str, params: Sequence[Any]) -> None:
        try:
            self.conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise PersistenceError(action, table, key, exc) from exc

    def _timestamp(self, value: datetime) -> str:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")

    def init_schema(self, schema_path: Path) -> None:
        """Create all tables and indexes from schema.sql."""
        sql = Path(schema_path).read_text(encoding="utf-8")
        self.conn.executescript(sql)


# ---------------------------------------
# PostgreSQL
# ---------------------------------------

class PostgresStore(SqlStore):
    placeholder = "%s"

    @classmethod
    def connect(
        cls,
        host: str = "localhost",
        port: int = 5432,
        dbname: str = "messenger",
        user: str = "postgres",
        password: Optional[str] = None,
    ) -> "PostgresStore":
        conn = psycopg2.connect(
            host=host, port=port, dbname=dbname, user=user, password=password,
        )
        conn.autocommit = True
        return cls(conn)

    def _execute(self, action: str, table: str, key: Any, sql: str, params: Sequence[Any]) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
        except psycopg2.Error as exc:
            raise PersistenceError(action, table, key, exc) from exc

    def init_schema(self, schema_path: Path) -> None:
        sql = Path(schema_path).read_text(encoding="utf-8")
        with self.conn.cursor() as cur:
            cur.execute(sql)
