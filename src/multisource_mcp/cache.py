# Multi-Source MCP Server
# File: cache.py
# Version: v1

"""TTL caching for idempotent upstream reads.

Two backends share the :class:`CacheBackend` interface:

- :class:`MemoryCacheBackend`: in-process, explicit ``expires_at`` per entry,
  LRU-ish eviction above ``max_entries``.
- :class:`RedisCacheBackend`: ``redis.asyncio``; expiry is managed by the
  store (``SETEX``), values are JSON.

:func:`memoize` wraps a coroutine function and only talks to the interface.
Concurrent misses on the same key may both call through; there is no
in-flight de-duplication, which is fine for side-effect-free reads.
"""

from __future__ import annotations

import dataclasses
import functools
import json
import logging
import time
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, runtime_checkable

from redis import asyncio as redis_asyncio
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float


@dataclasses.dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    expirations: int = 0
    errors: int = 0


@runtime_checkable
class CacheBackend(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def stats(self) -> Dict[str, Any]: ...


class MemoryCacheBackend:
    """A tiny TTL + LRU-ish cache.

    - An entry is served only while ``clock() < expires_at``.
    - When ``max_entries`` is exceeded the least recently used entries go.
    - ``max_entries=0`` disables storage.
    """

    def __init__(self, max_entries: int = 128, clock: Callable[[], float] = time.time) -> None:
        self.max_entries = int(max_entries)
        self._clock = clock
        self._store: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self.max_entries > 0

    async def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        if self._clock() >= entry.expires_at:
            self._stats.misses += 1
            self._stats.expirations += 1
            self._store.pop(key, None)
            return None

        self._store.move_to_end(key)
        self._stats.hits += 1
        return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if not self.enabled or ttl_seconds <= 0:
            return

        if key in self._store:
            self._store.move_to_end(key)
        self._store[key] = CacheEntry(key, value, self._clock() + float(ttl_seconds))
        self._stats.sets += 1

        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)
            self._stats.evictions += 1

    def stats(self) -> Dict[str, Any]:
        return {
            "backend": "memory",
            "enabled": self.enabled,
            "max_entries": self.max_entries,
            "size": len(self._store),
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "sets": self._stats.sets,
            "evictions": self._stats.evictions,
            "expirations": self._stats.expirations,
        }


class RedisCacheBackend:
    """Durable backend over an async Redis client.

    Store errors are logged and reported as misses so a Redis outage slows
    requests down instead of failing them.
    """

    def __init__(self, client: Any, prefix: str = "multisource:") -> None:
        self._client = client
        self._prefix = prefix
        self._stats = CacheStats()

    @classmethod
    def from_url(cls, url: str, prefix: str = "multisource:", **redis_kwargs: Any) -> "RedisCacheBackend":
        return cls(redis_asyncio.from_url(url, **redis_kwargs), prefix)

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._client.get(self._prefix + key)
        except RedisError as exc:
            self._stats.errors += 1
            logger.warning("Redis cache read failed for %s: %s", key, exc)
            return None

        if raw is None:
            self._stats.misses += 1
            return None

        self._stats.hits += 1
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        try:
            await self._client.setex(self._prefix + key, int(ttl_seconds), json.dumps(value))
        except RedisError as exc:
            self._stats.errors += 1
            logger.warning("Redis cache write failed for %s: %s", key, exc)
            return
        self._stats.sets += 1

    def stats(self) -> Dict[str, Any]:
        return {
            "backend": "redis",
            "prefix": self._prefix,
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "sets": self._stats.sets,
            "errors": self._stats.errors,
        }


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (tuple, set, frozenset)):
        return list(obj)
    raise TypeError(f"Cannot build a cache key from {type(obj).__name__}")


def make_key(name: str, args: tuple, kwargs: Dict[str, Any]) -> str:
    return f"{name}:{json.dumps([list(args), kwargs], sort_keys=True, default=_json_default)}"


_default_backend: Optional[MemoryCacheBackend] = None


def get_default_backend() -> MemoryCacheBackend:
    global _default_backend
    if _default_backend is None:
        _default_backend = MemoryCacheBackend()
    return _default_backend


def memoize(
    fn: Callable[..., Awaitable[Any]],
    ttl_seconds: int,
    backend: Optional[CacheBackend] = None,
    *,
    name: Optional[str] = None,
    encode: Optional[Callable[[Any], Any]] = None,
    decode: Optional[Callable[[Any], Any]] = None,
) -> Callable[..., Awaitable[Any]]:
    """Wrap coroutine function ``fn`` with a TTL cache.

    The key is the function identity (``name`` or ``module.qualname``) plus
    the JSON-serialised arguments. ``encode``/``decode`` convert results
    that are not JSON-safe; ``None`` results are never served from cache.
    A ``ttl_seconds`` of zero or less returns ``fn`` unchanged.
    """
    if ttl_seconds <= 0:
        return fn

    store = backend if backend is not None else get_default_backend()
    identity = name or f"{fn.__module__}.{fn.__qualname__}"

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        key = make_key(identity, args, kwargs)
        cached = await store.get(key)
        if cached is not None:
            return decode(cached) if decode else cached

        result = await fn(*args, **kwargs)
        if result is not None:
            await store.set(key, encode(result) if encode else result, ttl_seconds)
        return result

    wrapper.cache_backend = store  # type: ignore[attr-defined]
    return wrapper
