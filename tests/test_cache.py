import asyncio

import pytest

from vigisaude.data.cache import RequestCache
from vigisaude.data.errors import FetchError


def test_concurrent_identical_requests_share_one_fetch():
    cache = RequestCache()
    calls = []

    async def fetcher():
        calls.append(1)
        await asyncio.sleep(0.01)
        return {"value": 42}

    async def scenario():
        return await asyncio.gather(*(cache.get_or_fetch("k", fetcher) for _ in range(5)))

    results = asyncio.run(scenario())
    assert len(calls) == 1
    assert all(r is results[0] for r in results)
    assert "k" in cache and len(cache) == 1


def test_resolved_value_is_reused():
    cache = RequestCache()
    calls = []

    async def fetcher():
        calls.append(1)
        return "v"

    async def scenario():
        await cache.get_or_fetch(("a", 1), fetcher)
        return await cache.get_or_fetch(("a", 1), fetcher)

    assert asyncio.run(scenario()) == "v"
    assert len(calls) == 1


def test_failure_reaches_every_waiter_and_is_not_cached():
    cache = RequestCache()
    calls = []

    async def scenario():
        gate = asyncio.Event()

        async def failing():
            calls.append(1)
            await gate.wait()
            raise FetchError("boom", url="http://x")

        first = asyncio.create_task(cache.get_or_fetch("k", failing))
        second = asyncio.create_task(cache.get_or_fetch("k", failing))
        await asyncio.sleep(0)
        assert cache.is_pending("k")
        gate.set()
        return await asyncio.gather(first, second, return_exceptions=True)

    results = asyncio.run(scenario())
    assert len(calls) == 1
    assert all(isinstance(r, FetchError) for r in results)
    assert "k" not in cache and not cache.is_pending("k")

    async def retry():
        async def ok():
            return "recovered"

        return await cache.get_or_fetch("k", ok)

    assert asyncio.run(retry()) == "recovered"


def test_invalidate_and_clear():
    cache = RequestCache()

    async def fill():
        async def one():
            return 1

        await cache.get_or_fetch("a", one)
        await cache.get_or_fetch("b", one)

    asyncio.run(fill())
    cache.invalidate("a")
    assert "a" not in cache and "b" in cache
    cache.clear()
    assert len(cache) == 0


def test_cancelled_fetch_leaves_no_pending_entry():
    cache = RequestCache()

    async def stuck():
        await asyncio.sleep(3600)

    async def abandon():
        task = asyncio.create_task(cache.get_or_fetch("k", stuck))
        await asyncio.sleep(0)
        assert cache.is_pending("k")
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(abandon())
    assert not cache.is_pending("k")

    async def fresh():
        async def ok():
            return "ok"

        return await cache.get_or_fetch("k", ok)

    assert asyncio.run(fresh()) == "ok"
