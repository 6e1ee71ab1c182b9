"""Bounded in-memory LRU cache with TTL expiry and async safety."""

from __future__ import annotations

import asyncio
import json
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any


@dataclass
class CacheEntry:
    """Cached value with TTL tracking."""

    key: str
    value: Any
    created_at: float = field(default_factory=time.time)
    ttl_seconds: int = 0
    hit_count: int = 0

    @property
    def is_expired(self) -> bool:
        if self.ttl_seconds <= 0:
            return False
        return (time.time() - self.created_at) >= self.ttl_seconds


def make_key(namespace: str, *parts: Any) -> str:
    """Stable key from a namespace and JSON-serialisable parts."""
    return f"{namespace}:" + json.dumps(parts, sort_keys=True, default=str)


class MemoryCache:
    """OrderedDict-based LRU cache with TTL expiry.

    One instance is created per engine and injected into the providers that
    need it; nothing is cached at module level. Safe for concurrent
    coroutine access via ``asyncio.Lock``.
    """

    def __init__(self, max_entries: int = 500, default_ttl_seconds: int = 0) -> None:
        self._max_entries = max_entries
        self._default_ttl = default_ttl_seconds
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._store)

    async def get(self, key: str) -> Any | None:
        """Return the value, or None on miss or expiry."""
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.is_expired:
                del self._store[key]
                self.misses += 1
                return None
            entry.hit_count += 1
            self.hits += 1
            self._store.move_to_end(key)
            return entry.value

    async def put(self, key: str, value: Any, *, ttl_seconds: int = 0) -> None:
        """Store a value; ``ttl_seconds=0`` uses the cache default."""
        async with self._lock:
            self._store.pop(key, None)
            self._store[key] = CacheEntry(
                key=key,
                value=value,
                ttl_seconds=ttl_seconds or self._default_ttl,
            )
            while len(self._store) > self._max_entries:
                self._store.popitem(last=False)

    async def invalidate(self, key: str) -> None:
        async with self._lock:
            self._store.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()
