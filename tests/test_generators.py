import random
from datetime import timedelta

import pytest

from conftest import NOW, RecordingStore
from generate_mock_data import (
    CHAT_PREFIXES,
    CHAT_SUFFIX_LIMIT,
    CHAT_TOPICS,
    FIRST_NAMES,
    LAST_NAMES,
    MAX_DAYS_AGO,
    PreconditionError,
    generate_chats,
    generate_users,
    random_timestamp,
)
from storage import PersistenceError


def test_random_timestamp_stays_in_trailing_window(rng):
    latest = timedelta(days=MAX_DAYS_AGO - 1, hours=23, minutes=59)
    for _ in range(2000):
        ts = random_timestamp(rng, NOW)
        offset = NOW - ts
        assert timedelta(0) <= offset <= latest
        # offsets are whole minutes
        assert offset.total_seconds() % 60 == 0


def test_random_timestamp_defaults_to_current_utc_time(rng):
    ts = random_timestamp(rng)
    assert ts.tzinfo is not None
    assert ts.utcoffset() == timedelta(0)


@pytest.mark.parametrize("count", [0, 1, 7, 50])
def test_generate_users_yields_dense_ids(rng, count):
    store = RecordingStore()
    user_ids = generate_users(store, count, rng, NOW)

    assert user_ids == list(range(1, count + 1))
    inserted = store.of("insert_user")
    assert [args[0] for args in inserted] == user_ids


def test_user_names_combine_first_and_last_name(rng):
    store = RecordingStore()
    generate_users(store, 40, rng, NOW)

    for _user_id, name, created_at in store.of("insert_user"):
        first, last = name.split(" ")
        assert first in FIRST_NAMES
        assert last in LAST_NAMES
        assert created_at <= NOW


@pytest.mark.parametrize("count", [0, 3, 25])
def test_generate_chats_yields_dense_ids(rng, count):
    store = RecordingStore()
    assert generate_chats(store, count, rng, NOW) == list(range(1, count + 1))
    assert len(store.of("insert_chat")) == count


def test_chat_names_have_prefix_topic_and_suffix(rng):
    store = RecordingStore()
    generate_chats(store, 60, rng, NOW)

    for _chat_id, name, _created_at in store.of("insert_chat"):
        prefix, topic, suffix = name.split(" ")
        assert prefix in CHAT_PREFIXES
        assert topic in CHAT_TOPICS
        assert 0 <= int(suffix) < CHAT_SUFFIX_LIMIT


def test_negative_count_is_rejected(rng):
    store = RecordingStore()
    with pytest.raises(PreconditionError):
        generate_users(store, -1, rng)
    with pytest.raises(PreconditionError):
        generate_chats(store, -5, rng)
    assert store.calls == []


def test_failed_insert_propagates_and_keeps_earlier_rows(rng):
    store = RecordingStore(fail_on="insert_user", fail_at=3)

    with pytest.raises(PersistenceError) as excinfo:
        generate_users(store, 10, rng, NOW)

    assert excinfo.value.key == 3
    assert [args[0] for args in store.of("insert_user")] == [1, 2]


def test_same_seed_gives_same_rows():
    first, second = RecordingStore(), RecordingStore()
    generate_users(first, 20, random.Random(5), NOW)
    generate_users(second, 20, random.Random(5), NOW)
    assert first.calls == second.calls
