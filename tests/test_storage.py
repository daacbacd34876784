import pytest

from engines.caching import EngineCaches, MasteryCache
from storage import InMemoryKeyValueStore, SQLiteKeyValueStore


@pytest.mark.anyio("asyncio")
async def test_in_memory_store_round_trip(memory_store):
    await memory_store.put("user_progress_a", b"{}")
    await memory_store.put("learning_path_a_balanced", b"[]")

    assert await memory_store.get("user_progress_a") == b"{}"
    assert await memory_store.get("missing") is None
    assert await memory_store.list_keys("user_progress_") == ["user_progress_a"]

    await memory_store.delete("user_progress_a")
    await memory_store.delete("user_progress_a")
    assert await memory_store.list_keys() == ["learning_path_a_balanced"]


@pytest.mark.anyio("asyncio")
async def test_sqlite_store_persists_across_instances(tmp_path):
    db_path = str(tmp_path / "engine.db")
    store = SQLiteKeyValueStore(db_path)
    await store.put("user_progress_a", b'{"user_id": "a"}')
    await store.put("user_progress_a", b'{"user_id": "a", "level": 2}')
    await store.put("user_progress_b", b"{}")
    await store.put("userXprogress_c", b"{}")
    store.close()

    reopened = SQLiteKeyValueStore(db_path)
    try:
        assert await reopened.get("user_progress_a") == b'{"user_id": "a", "level": 2}'
        # Underscores in the prefix are matched literally.
        assert await reopened.list_keys("user_progress_") == ["user_progress_a", "user_progress_b"]
        await reopened.delete("user_progress_b")
        assert await reopened.get("user_progress_b") is None
        assert await reopened.list_keys() == ["userXprogress_c", "user_progress_a"]
    finally:
        reopened.close()


def test_in_memory_store_copies_initial_data():
    initial = {"k": b"v"}
    store = InMemoryKeyValueStore(initial)
    initial["k"] = b"changed"

    assert store._data["k"] == b"v"


def test_mastery_cache_evicts_least_recently_used():
    cache = MasteryCache(max_size=2)
    cache.add("u", "loops", "m1")
    cache.add("u", "variables", "m2")
    assert cache.get("u", "loops") == "m1"

    cache.add("u", "functions", "m3")

    assert cache.get("u", "variables") is None
    assert cache.get("u", "loops") == "m1"
    assert cache.get("u", "functions") == "m3"


def test_engine_caches_invalidate_single_user():
    caches = EngineCaches()
    caches.assessments.add("a", {"LOGICAL_THINKING": "beginner"})
    caches.recommendations.add("a", 3, ["loops"])
    caches.recommendations.add("b", 3, ["variables"])
    caches.mastery.add("a", "loops", "record")

    caches.invalidate_user("a")

    assert caches.assessments.get("a") is None
    assert caches.recommendations.get("a", 3) is None
    assert caches.mastery.get("a", "loops") is None
    assert caches.recommendations.get("b", 3) == ["variables"]


def test_recommendation_cache_returns_copies():
    caches = EngineCaches()
    caches.recommendations.add("a", 2, ["loops", "variables"])

    cached = caches.recommendations.get("a", 2)
    cached.append("mutated")

    assert caches.recommendations.get("a", 2) == ["loops", "variables"]
