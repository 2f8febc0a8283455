"""Unit tests for RecordCache: window loading, staleness and expiry."""
import asyncio

import pytest

from records import RecordCache


def _seed(store, count):
    return [store.seed({"email": f"user{i}@x.com", "last_name": name}) for i, name in
            zip(range(count), ["delta", "alpha", "echo", "bravo", "charlie", "foxtrot", "golf", "hotel"])]


@pytest.mark.asyncio
async def test_miss_loads_a_window_and_neighbours_are_hits(store, cache):
    _seed(store, 8)

    first = await cache.get(2)
    assert first.values["email"] == "user1@x.com"
    assert store.calls["get_many"] == 1

    for record_id in (3, 4, 5, 6):
        assert (await cache.get(record_id)).id == record_id
    assert store.calls["get_many"] == 1

    # window size is 5, so id 7 is outside the first window
    await cache.get(7)
    assert store.calls["get_many"] == 2


@pytest.mark.asyncio
async def test_missing_id_returns_none(store, cache):
    _seed(store, 3)

    assert await cache.get(42) is None
    assert await cache.get(0) is None


@pytest.mark.asyncio
async def test_mark_stale_reads_fresh_data_after_a_write(store, cache):
    _seed(store, 8)
    assert (await cache.get(7)).values["email"] == "user6@x.com"

    await store.update(7, {"email": "changed@x.com"})
    cache.mark_stale(7)

    assert (await cache.get(7)).values["email"] == "changed@x.com"
    assert store.calls["get_by_id"] == 1


@pytest.mark.asyncio
async def test_mark_stale_drops_the_whole_window(store, cache):
    _seed(store, 8)
    await cache.get(1)
    loads = store.calls["get_many"]

    await store.update(3, {"email": "x@x.com"})
    await store.update(2, {"email": "y@x.com"})
    cache.mark_stale(3)

    # id 2 shared the window with 3, so it is reloaded rather than served stale
    assert (await cache.get(2)).values["email"] == "y@x.com"
    assert store.calls["get_many"] == loads + 1


@pytest.mark.asyncio
async def test_stale_record_is_cached_individually_after_reload(store, cache):
    _seed(store, 3)
    await cache.get(1)
    cache.mark_stale(1)

    await cache.get(1)
    await cache.get(1)

    assert store.calls["get_by_id"] == 1


@pytest.mark.asyncio
async def test_entries_expire_after_ttl(store, cache, clock):
    _seed(store, 3)
    await cache.get(1)
    await store.update(1, {"email": "late@x.com"})

    # no invalidation signal; the old copy is served until the TTL runs out
    assert (await cache.get(1)).values["email"] == "user0@x.com"
    clock.advance(cache.ttl + 1)
    assert (await cache.get(1)).values["email"] == "late@x.com"


@pytest.mark.asyncio
async def test_invalidate_all_drops_everything(store, cache):
    _seed(store, 3)
    await cache.get(1)
    cache.invalidate_all()

    await cache.get(1)

    assert store.calls["get_many"] == 2


@pytest.mark.asyncio
async def test_window_follows_active_sort_order(store, cache):
    _seed(store, 8)
    cache.set_sort_order("last_name")

    # alpha(2) bravo(4) charlie(5) delta(1) echo(3) foxtrot(6) golf(7) hotel(8)
    await cache.get(4)
    loads = store.calls["get_many"]
    for record_id in (5, 1, 3, 6):
        await cache.get(record_id)
    assert store.calls["get_many"] == loads

    await cache.get(2)
    assert store.calls["get_many"] == loads + 1


@pytest.mark.asyncio
async def test_neighbors_in_sort_order(store, cache):
    _seed(store, 4)
    cache.set_sort_order("last_name")

    # alpha(2) bravo(4) delta(1) echo(3)
    assert await cache.neighbors(4) == (2, 1)
    assert await cache.neighbors(2) == (None, 4)
    assert await cache.neighbors(3) == (1, None)
    assert await cache.neighbors(99) == (None, None)


@pytest.mark.asyncio
async def test_inserted_record_is_readable_in_sorted_mode(store, cache):
    _seed(store, 3)
    cache.set_sort_order("last_name")
    await cache.get(1)

    new = store.seed({"email": "new@x.com", "last_name": "aardvark"})
    cache.mark_stale(new.id)

    assert (await cache.get(new.id)).values["last_name"] == "aardvark"
    assert (await cache.neighbors(new.id))[0] is None


@pytest.mark.asyncio
async def test_window_loaded_across_a_write_is_not_installed(store, clock):
    """A slow window load must not put pre-write data back into the cache."""
    _seed(store, 5)
    cache = RecordCache(store, window_size=5, ttl=60, clock=clock)
    release = asyncio.Event()
    original_get_many = store.get_many

    async def slow_get_many(ids):
        records = await original_get_many(ids)
        await release.wait()
        return records

    store.get_many = slow_get_many

    reader = asyncio.create_task(cache.get(1))
    await asyncio.sleep(0.01)

    await store.update(2, {"email": "written@x.com"})
    cache.mark_stale(2)
    release.set()
    await reader

    store.get_many = original_get_many
    assert (await cache.get(2)).values["email"] == "written@x.com"
    # the window read before the write was discarded, so its neighbours reload too
    await cache.get(3)
    assert store.calls["get_many"] == 2


def test_window_size_must_be_positive(store):
    with pytest.raises(ValueError):
        RecordCache(store, window_size=0)


@pytest.mark.asyncio
async def test_unread_stale_marks_are_forgotten_after_ttl(store, cache, clock):
    _seed(store, 3)
    for record_id in range(1, 201):
        cache.mark_stale(record_id)
    store.rows[2].values["email"] = "written@x.com"

    clock.advance(cache.ttl + 1)
    record = await cache.get(2)

    assert cache._stale == set()
    assert cache._invalidated == {}
    # the expired mark does not bring back pre-write data
    assert record.values["email"] == "written@x.com"
