from __future__ import annotations

from datetime import datetime, timezone

import pytest

from task_tracker.cache import TaskCache


def make_task(task_id: str, owner_id: str = "owner-a", title: str = "Buy milk") -> dict:
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    return {
        "id": task_id,
        "title": title,
        "complete": False,
        "owner_id": owner_id,
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture()
def cache(clock) -> TaskCache:
    return TaskCache(ttl_seconds=600, clock=clock)


def test_get_on_empty_cache_is_a_miss(cache):
    assert cache.get("owner-a") is None


def test_put_then_get(cache):
    cache.put("owner-a", [make_task("t1")])
    cached = cache.get("owner-a")
    assert [t["id"] for t in cached] == ["t1"]


def test_empty_list_is_cached_not_a_miss(cache):
    cache.put("owner-a", [])
    assert cache.get("owner-a") == []


def test_entry_served_until_just_before_ttl(cache, clock):
    cache.put("owner-a", [make_task("t1")])
    clock.advance(599.9)
    assert cache.get("owner-a") is not None


def test_entry_never_served_at_or_past_ttl(cache, clock):
    cache.put("owner-a", [make_task("t1")])
    clock.advance(600)
    assert cache.get("owner-a") is None
    # the expired entry is dropped, not resurrected
    assert len(cache) == 0


def test_put_resets_ttl(cache, clock):
    cache.put("owner-a", [make_task("t1")])
    clock.advance(500)
    cache.put("owner-a", [make_task("t2")])
    clock.advance(500)
    cached = cache.get("owner-a")
    assert [t["id"] for t in cached] == ["t2"]


def test_invalidate_removes_entry_and_is_idempotent(cache):
    cache.put("owner-a", [make_task("t1")])
    cache.invalidate("owner-a")
    assert cache.get("owner-a") is None
    cache.invalidate("owner-a")
    cache.invalidate("never-cached")
    assert cache.get("owner-a") is None


def test_owners_are_independent(cache):
    cache.put("owner-a", [make_task("t1", "owner-a")])
    cache.put("owner-b", [make_task("t2", "owner-b")])
    cache.invalidate("owner-a")
    assert cache.get("owner-a") is None
    assert [t["id"] for t in cache.get("owner-b")] == ["t2"]


def test_cached_lists_are_isolated_from_callers(cache):
    source = [make_task("t1")]
    cache.put("owner-a", source)
    source[0]["title"] = "mutated after put"
    source.append(make_task("t2"))

    first = cache.get("owner-a")
    assert [t["title"] for t in first] == ["Buy milk"]
    first[0]["title"] = "mutated after get"
    assert cache.get("owner-a")[0]["title"] == "Buy milk"


def test_put_purges_other_expired_entries(cache, clock):
    cache.put("owner-a", [])
    clock.advance(601)
    cache.put("owner-b", [])
    assert len(cache) == 1
    assert "owner-b" in cache
    assert "owner-a" not in cache


def test_purge_expired_reports_count(cache, clock):
    cache.put("owner-a", [])
    cache.put("owner-b", [])
    clock.advance(600)
    assert cache.purge_expired() == 2
    assert len(cache) == 0


def test_ttl_must_be_positive(clock):
    with pytest.raises(ValueError):
        TaskCache(ttl_seconds=0, clock=clock)


def test_put_with_current_generation_is_cached(cache):
    generation = cache.generation("owner-a")
    assert cache.put("owner-a", [make_task("t1")], generation) is True
    assert [t["id"] for t in cache.get("owner-a")] == ["t1"]


def test_put_after_intervening_invalidate_is_dropped(cache):
    generation = cache.generation("owner-a")
    cache.invalidate("owner-a")
    assert cache.put("owner-a", [make_task("stale")], generation) is False
    assert cache.get("owner-a") is None
    # a reader that starts after the write caches normally again
    assert cache.put("owner-a", [make_task("fresh")], cache.generation("owner-a")) is True
    assert [t["id"] for t in cache.get("owner-a")] == ["fresh"]


def test_invalidate_of_one_owner_leaves_other_generations(cache):
    generation_b = cache.generation("owner-b")
    cache.invalidate("owner-a")
    assert cache.put("owner-b", [], generation_b) is True
