# Multi-Source MCP Server
# File: tests/test_cache.py
# Version: v1

from __future__ import annotations

import json
from datetime import date

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from multisource_mcp.cache import MemoryCacheBackend, RedisCacheBackend, make_key, memoize
from multisource_mcp.models import DateRange


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeAsyncRedis:
    """Duck-typed stand-in for redis.asyncio.Redis (get/setex only)."""

    def __init__(self) -> None:
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        value = self.data.get(key)
        return value.encode("utf-8") if value is not None else None

    async def setex(self, name, time, value):
        self.data[name] = value
        self.ttls[name] = time
        return True


class BrokenRedis:
    async def get(self, key):
        raise RedisConnectionError("down")

    async def setex(self, name, time, value):
        raise RedisConnectionError("down")


def _counting(result):
    calls = {"n": 0}

    async def fetch(*args, **kwargs):
        calls["n"] += 1
        return result

    return fetch, calls


@pytest.mark.asyncio
async def test_second_call_within_ttl_hits_cache():
    fetch, calls = _counting({"rows": [1, 2]})
    backend = MemoryCacheBackend(clock=FakeClock())
    cached = memoize(fetch, 60, backend, name="fetch")

    assert await cached("a", limit=2) == {"rows": [1, 2]}
    assert await cached("a", limit=2) == {"rows": [1, 2]}

    assert calls["n"] == 1
    assert backend.stats()["hits"] == 1


@pytest.mark.asyncio
async def test_entry_expires_after_ttl():
    fetch, calls = _counting("value")
    clock = FakeClock()
    backend = MemoryCacheBackend(clock=clock)
    cached = memoize(fetch, 30, backend, name="fetch")

    await cached("k")
    clock.now += 29
    await cached("k")
    assert calls["n"] == 1

    clock.now += 1
    await cached("k")
    assert calls["n"] == 2
    assert backend.stats()["expirations"] == 1


@pytest.mark.asyncio
async def test_different_arguments_use_different_keys():
    fetch, calls = _counting("value")
    cached = memoize(fetch, 60, MemoryCacheBackend(), name="fetch")

    await cached("a")
    await cached("b")
    await cached("a", extra=True)
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_zero_ttl_disables_caching():
    fetch, calls = _counting("value")
    cached = memoize(fetch, 0, MemoryCacheBackend(), name="fetch")
    assert cached is fetch

    await cached()
    await cached()
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_memory_backend_evicts_least_recently_used():
    backend = MemoryCacheBackend(max_entries=2, clock=FakeClock())
    await backend.set("a", 1, 60)
    await backend.set("b", 2, 60)
    await backend.get("a")
    await backend.set("c", 3, 60)

    assert await backend.get("b") is None
    assert await backend.get("a") == 1
    assert backend.stats()["evictions"] == 1


def test_key_is_stable_for_dataclasses_and_kwarg_order():
    window = DateRange(date(2025, 1, 1), date(2025, 1, 31))
    first = make_key("q", (), {"date_range": window, "limit": 5})
    second = make_key("q", (), {"limit": 5, "date_range": window})
    assert first == second
    assert '"2025-01-01"' in first


@pytest.mark.asyncio
async def test_redis_backend_uses_setex_and_json():
    client = FakeAsyncRedis()
    backend = RedisCacheBackend(client, prefix="test:")
    fetch, calls = _counting([["Name"], ["John"]])
    cached = memoize(fetch, 120, backend, name="values")

    assert await cached("SHEET", "A1:B2") == [["Name"], ["John"]]
    assert await cached("SHEET", "A1:B2") == [["Name"], ["John"]]

    assert calls["n"] == 1
    (key,) = client.data
    assert key.startswith("test:values:")
    assert client.ttls[key] == 120
    assert json.loads(client.data[key]) == [["Name"], ["John"]]


@pytest.mark.asyncio
async def test_redis_errors_degrade_to_misses():
    backend = RedisCacheBackend(BrokenRedis())
    fetch, calls = _counting("value")
    cached = memoize(fetch, 60, backend, name="fetch")

    assert await cached() == "value"
    assert await cached() == "value"
    assert calls["n"] == 2
    assert backend.stats()["errors"] == 4


@pytest.mark.asyncio
async def test_encode_decode_round_trip_through_backend():
    class Box:
        def __init__(self, value):
            self.value = value

    async def fetch():
        return Box(7)

    backend = RedisCacheBackend(FakeAsyncRedis())
    cached = memoize(
        fetch,
        60,
        backend,
        name="box",
        encode=lambda box: {"value": box.value},
        decode=lambda payload: Box(payload["value"]),
    )

    await cached()
    hit = await cached()
    assert isinstance(hit, Box)
    assert hit.value == 7
