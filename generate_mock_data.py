#!/usr/bin/env python3
"""
Mock messenger data generator for the provided schema.sql.

This script will:

1. Connect to a SQLite file (default: mock_messenger.db) or a PostgreSQL
   server and check the connection.
2. Optionally apply schema.sql (always done for SQLite).
3. Wipe the previous dataset and generate a fresh one:
   - users
   - chats
   - users_chats memberships (2-10 distinct users per chat)
   - messages, each written by an existing user into an existing chat

Every row goes through the `storage.Store` port one insert at a time, so the
generation code below does not care which database is behind it. All random
draws come from one explicit `random.Random`; pass --seed for a reproducible
dataset.

Message authors are picked independently of chat membership: an author does
not have to be a member of the chat the message lands in.
"""

import argparse
import logging
import random
import sqlite3
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import psycopg2

from storage import (
    CLEAR_ORDER,
    PersistenceError,
    PostgresStore,
    SqliteStore,
    Store,
)

logger = logging.getLogger(__name__)

# ---------------------------------------
# Global config / knobs
# ---------------------------------------

DB_PATH = Path("mock_messenger.db")
SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

# Default data volumes (overridable from the command line)
USERS_COUNT = 100
CHATS_COUNT = 20
MESSAGES_COUNT = 500

# Members per chat: randint(MIN, MAX), capped by the size of the user pool
MIN_CHAT_MEMBERS = 2
MAX_CHAT_MEMBERS = 10

# Chat names get a numeric suffix in [0, CHAT_SUFFIX_LIMIT)
CHAT_SUFFIX_LIMIT = 1000

# Creation times fall inside the trailing window of this many days
MAX_DAYS_AGO = 365

# ---------------------------------------
# Fact pools
# ---------------------------------------

FIRST_NAMES = (
    "Alex", "Maria", "Ivan", "Olga", "Dmitry",
    "Elena", "Sergey", "Anna", "Andrew", "Natalie",
)
LAST_NAMES = (
    "Ivanov", "Petrov", "Sidorov", "Kuznetsov", "Smirnov",
    "Popov", "Vasiliev", "Fedorov", "Mikhailov", "Novikov",
)

CHAT_PREFIXES = (
    "General", "Work", "Family", "Friends",
    "Project", "Team", "Support", "Development",
)
CHAT_TOPICS = ("chat", "channel", "discussion", "group", "community")

MESSAGE_TEXTS = (
    "Hi everyone!",
    "How are you?",
    "What's new?",
    "Great job!",
    "Let's discuss this question",
    "I have a suggestion",
    "I agree with you",
    "Interesting idea",
    "When can we meet?",
    "Thanks for the help!",
    "Have a nice day, all!",
    "Waiting for your comments",
    "Sending the file",
    "Checked it, everything works",
    "Need more information",
)


class PreconditionError(ValueError):
    """A generator was called in a way its contract does not allow."""


# ---------------------------------------
# Run configuration / result
# ---------------------------------------

@dataclass
class GenerationConfig:
    """Population sizes (and optional seed) for one generation run."""

    users_count: int = USERS_COUNT
    chats_count: int = CHATS_COUNT
    messages_count: int = MESSAGES_COUNT
    seed: Optional[int] = None

    def __post_init__(self):
        for name in ("users_count", "chats_count", "messages_count"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")


@dataclass
class GenerationResult:
    """Identifier pools and counts produced by a run."""

    user_ids: List[int] = field(default_factory=list)
    chat_ids: List[int] = field(default_factory=list)
    memberships: Dict[int, List[int]] = field(default_factory=dict)
    messages_count: int = 0

    @property
    def memberships_count(self) -> int:
        return sum(len(members) for members in self.memberships.values())


# ---------------------------------------
# Utility functions
# ---------------------------------------

def _require_non_negative(what: str, count: int) -> None:
    if count < 0:
        raise PreconditionError(f"{what} count must be >= 0, got {count}")


def random_timestamp(rng: random.Random, now: Optional[datetime] = None) -> datetime:
    """
    Return `now` minus a random offset of days, hours and minutes.

    The three parts are drawn independently (days in [0, 365), hours in
    [0, 24), minutes in [0, 60)), so the result is not uniform over the
    window. That skew is expected.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    days_ago = rng.randrange(MAX_DAYS_AGO)
    hours_ago = rng.randrange(24)
    minutes_ago = rng.randrange(60)
    return now - timedelta(days=days_ago, hours=hours_ago, minutes=minutes_ago)


def generate_user_name(rng: random.Random) -> str:
    return f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"


def generate_chat_name(rng: random.Random) -> str:
    prefix = rng.choice(CHAT_PREFIXES)
    topic = rng.choice(CHAT_TOPICS)
    return f"{prefix} {topic} {rng.randrange(CHAT_SUFFIX_LIMIT)}"


def generate_message_content(rng: random.Random) -> str:
    return rng.choice(MESSAGE_TEXTS)


# ---------------------------------------
# Users & chats
# ---------------------------------------

def generate_users(
    store: Store,
    count: int,
    rng: random.Random,
    now: Optional[datetime] = None,
) -> List[int]:
    """Insert users 1..count and return their ids."""
    _require_non_negative("users", count)
    user_ids: List[int] = []
    for user_id in range(1, count + 1):
        store.insert_user(user_id, generate_user_name(rng), random_timestamp(rng, now))
        user_ids.append(user_id)

    logger.info("Generated %d users", count)
    return user_ids


def generate_chats(
    store: Store,
    count: int,
    rng: random.Random,
    now: Optional[datetime] = None,
) -> List[int]:
    """Insert chats 1..count and return their ids."""
    _require_non_negative("chats", count)
    chat_ids: List[int] = []
    for chat_id in range(1, count + 1):
        store.insert_chat(chat_id, generate_chat_name(rng), random_timestamp(rng, now))
        chat_ids.append(chat_id)

    logger.info("Generated %d chats", count)
    return chat_ids


# ---------------------------------------
# Memberships
# ---------------------------------------

def pick_chat_members(pool: Sequence[int], rng: random.Random) -> List[int]:
    """
    Choose the distinct members of one chat from a pool of unique user ids.

    The target size is randint(MIN_CHAT_MEMBERS, MAX_CHAT_MEMBERS) capped by
    the pool size, and members are drawn without replacement, so an empty or
    tiny pool simply yields a smaller (possibly empty) chat. The caller
    de-duplicates the pool once; it is not rebuilt per chat.
    """
    if not pool:
        return []
    size = min(rng.randint(MIN_CHAT_MEMBERS, MAX_CHAT_MEMBERS), len(pool))
    return rng.sample(pool, size)


def generate_users_chats(
    store: Store,
    user_ids: Sequence[int],
    chat_ids: Sequence[int],
    rng: random.Random,
) -> Dict[int, List[int]]:
    """
    Give every chat its own set of members and persist one row per pair.

    Users can sit in any number of chats; uniqueness only holds inside a
    single chat. Returns chat id -> member ids.
    """
    # de-duplicated once; every chat samples from the same list
    pool = list(dict.fromkeys(user_ids))
    memberships: Dict[int, List[int]] = {}
    for chat_id in chat_ids:
        members = pick_chat_members(pool, rng)
        for user_id in members:
            store.insert_membership(user_id, chat_id)
        memberships[chat_id] = members
        logger.debug("Chat %d has %d members", chat_id, len(members))

    total = sum(len(members) for members in memberships.values())
    logger.info("Generated %d memberships across %d chats", total, len(memberships))
    return memberships


# ---------------------------------------
# Messages
# ---------------------------------------

def generate_messages(
    store: Store,
    count: int,
    user_ids: Sequence[int],
    chat_ids: Sequence[int],
    rng: random.Random,
    now: Optional[datetime] = None,
) -> int:
    """
    Insert messages 1..count, each by a random user into a random chat.

    count == 0 is a no-op whatever the pools look like. Asking for messages
    without any users or chats raises PreconditionError before the first
    insert.
    """
    _require_non_negative("messages", count)
    if count == 0:
        logger.info("Generated 0 messages")
        return 0
    if not user_ids or not chat_ids:
        raise PreconditionError(
            f"cannot generate {count} messages with {len(user_ids)} users "
            f"and {len(chat_ids)} chats"
        )

    for message_id in range(1, count + 1):
        store.insert_message(
            message_id,
            generate_message_content(rng),
            rng.choice(user_ids),
            rng.choice(chat_ids),
            random_timestamp(rng, now),
        )

    logger.info("Generated %d messages", count)
    return count


# ---------------------------------------
# Orchestration
# ---------------------------------------

def clear_existing_data(store: Store) -> None:
    """Wipe all generated tables, children first."""
    for table in CLEAR_ORDER:
        store.clear(table)
    logger.info("Existing data cleared")


def generate_data(
    store: Store,
    config: GenerationConfig,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> GenerationResult:
    """
    Run a full generation: clear -> users -> chats -> memberships -> messages.

    The first failure aborts the run and propagates; whatever was written
    before it stays in place. A config that asks for messages without users
    or chats is rejected before anything is cleared.
    """
    if config.messages_count > 0 and (config.users_count == 0 or config.chats_count == 0):
        raise PreconditionError(
            f"{config.messages_count} messages requested but users={config.users_count}, "
            f"chats={config.chats_count}; messages need at least one of each"
        )
    if rng is None:
        rng = random.Random(config.seed)

    clear_existing_data(store)

    result = GenerationResult()
    result.user_ids = generate_users(store, config.users_count, rng, now)
    result.chat_ids = generate_chats(store, config.chats_count, rng, now)
    result.memberships = generate_users_chats(store, result.user_ids, result.chat_ids, rng)
    result.messages_count = generate_messages(
        store, config.messages_count, result.user_ids, result.chat_ids, rng, now,
    )
    return result


# ---------------------------------------
# CLI
# ---------------------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate a mock messenger dataset")

    # Data volumes
    p.add_argument("--users", type=int, default=USERS_COUNT, help="Number of users")
    p.add_argument("--chats", type=int, default=CHATS_COUNT, help="Number of chats")
    p.add_argument("--messages", type=int, default=MESSAGES_COUNT, help="Number of messages")
    p.add_argument("--seed", type=int, default=None, help="Seed for a reproducible dataset")

    # Database
    p.add_argument("--backend", choices=("sqlite", "postgres"), default="sqlite")
    p.add_argument("--db-path", type=Path, default=DB_PATH, help="SQLite database file")
    p.add_argument("--host", default="localhost", help="PostgreSQL host")
    p.add_argument("--port", type=int, default=5432, help="PostgreSQL port")
    p.add_argument("--db", default="messenger", help="PostgreSQL database name")
    p.add_argument("--user", default="postgres", help="PostgreSQL user")
    p.add_argument("--password", default="postgres", help="PostgreSQL password")
    p.add_argument(
        "--init-schema",
        action="store_true",
        help="Apply schema.sql before generating (always done for SQLite)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log every chat's member count")

    return p.parse_args(argv)


def open_store(args: argparse.Namespace):
    if args.backend == "postgres":
        store = PostgresStore.connect(
            host=args.host,
            port=args.port,
            dbname=args.db,
            user=args.user,
            password=args.password,
        )
    else:
        store = SqliteStore.connect(args.db_path)
    try:
        store.ping()
        if args.backend == "sqlite" or args.init_schema:
            store.init_schema(SCHEMA_PATH)
    except BaseException:
        store.close()
        raise
    return store


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        config = GenerationConfig(
            users_count=args.users,
            chats_count=args.chats,
            messages_count=args.messages,
            seed=args.seed,
        )
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    print(f"Connecting to {args.backend} database...")
    try:
        store = open_store(args)
    except PersistenceError as exc:
        logger.error("Database connection check failed: %s", exc)
        return 1
    except (OSError, sqlite3.Error, psycopg2.Error) as exc:
        logger.error("Could not connect to the database: %s", exc)
        return 1

    print(
        "Generating data:\n"
        f"- users: {config.users_count}\n"
        f"- chats: {config.chats_count}\n"
        f"- messages: {config.messages_count}"
    )
    try:
        result = generate_data(store, config)
    except (PersistenceError, PreconditionError) as exc:
        logger.error("Data generation failed: %s", exc)
        return 1
    finally:
        store.close()

    print(
        f"Done. {len(result.user_ids)} users, {len(result.chat_ids)} chats, "
        f"{result.memberships_count} memberships, {result.messages_count} messages."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
