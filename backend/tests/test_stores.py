import asyncio
import json
from datetime import datetime, timezone

import pytest

from hackerchess.core.errors import DuplicateUsername, InvalidGameRecord


async def test_insert_and_find_user(store):
    user_id = await store.insert_user("alice", "hash-a")

    found = await store.find_user_by_username("alice")
    assert found is not None
    assert found.id == user_id
    assert found.password_hash == "hash-a"
    assert found.created_at is not None


async def test_lookup_is_exact_and_case_sensitive(store):
    await store.insert_user("Alice", "hash-a")

    assert await store.find_user_by_username("alice") is None
    assert await store.find_user_by_username("Alice ") is None
    assert await store.find_user_by_username("Alice") is not None


async def test_duplicate_username_is_rejected(store):
    await store.insert_user("bob", "hash-1")
    with pytest.raises(DuplicateUsername):
        await store.insert_user("bob", "hash-2")

    found = await store.find_user_by_username("bob")
    assert found.password_hash == "hash-1"


async def test_concurrent_inserts_of_one_username(store):
    results = await asyncio.gather(
        store.insert_user("carol", "h1"),
        store.insert_user("carol", "h2"),
        return_exceptions=True,
    )
    ids = [r for r in results if isinstance(r, int)]
    errors = [r for r in results if isinstance(r, DuplicateUsername)]
    assert len(ids) == 1
    assert len(errors) == 1


async def test_bulk_insert_and_listing_newest_first(store):
    user_id = await store.insert_user("alice", "h")
    count = await store.insert_games_bulk(
        user_id,
        [
            {"pgn": "1.e4 e5", "fens": ["a", "b"], "date": "2023-01-01T10:00:00Z"},
            {"pgn": "1.d4 d5", "fens": "not-json", "date": "2024-06-01T10:00:00+02:00"},
            {"pgn": None, "fens": None, "created_at": datetime(2023, 6, 1, tzinfo=timezone.utc)},
        ],
    )
    assert count == 3

    games = await store.get_games_by_user(user_id)
    assert [g.pgn for g in games] == ["1.d4 d5", "", "1.e4 e5"]
    assert json.loads(games[0].fens) == ["not-json"]
    assert json.loads(games[1].fens) == []
    assert games[0].created_at == datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


async def test_games_default_to_now(store):
    user_id = await store.insert_user("alice", "h")
    before = datetime.now(timezone.utc)
    await store.insert_games_bulk(user_id, [{"pgn": "1.c4"}])

    (game,) = await store.get_games_by_user(user_id)
    assert game.created_at >= before.replace(microsecond=0)


async def test_bad_record_rolls_back_whole_batch(store):
    user_id = await store.insert_user("alice", "h")
    with pytest.raises(InvalidGameRecord):
        await store.insert_games_bulk(
            user_id,
            [
                {"pgn": "1.e4", "fens": "[]"},
                {"pgn": "1.d4", "fens": float("nan")},
            ],
        )
    assert await store.get_games_by_user(user_id) == []

    with pytest.raises(InvalidGameRecord):
        await store.insert_games_bulk(
            user_id,
            [{"pgn": "1.e4"}, {"pgn": "1.d4", "date": "yesterday-ish"}],
        )
    assert await store.get_games_by_user(user_id) == []


async def test_games_are_scoped_to_their_owner(store):
    alice = await store.insert_user("alice", "h")
    bob = await store.insert_user("bob", "h")
    await store.insert_games_bulk(alice, [{"pgn": "a"}])
    await store.insert_games_bulk(bob, [{"pgn": "b1"}, {"pgn": "b2"}])

    assert [g.pgn for g in await store.get_games_by_user(alice)] == ["a"]
    assert len(await store.get_games_by_user(bob)) == 2


async def test_deleting_user_cascades_to_games(store):
    user_id = await store.insert_user("alice", "h")
    await store.insert_games_bulk(user_id, [{"pgn": "a"}, {"pgn": "b"}])

    assert await store.delete_user(user_id) is True
    assert await store.get_games_by_user(user_id) == []
    assert await store.find_user_by_username("alice") is None
    assert await store.delete_user(user_id) is False

    # the name is free again
    await store.insert_user("alice", "h2")
