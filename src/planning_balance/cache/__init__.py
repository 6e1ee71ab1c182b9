"""Injected response cache for external sources."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from planning_balance.cache.memory import CacheEntry, MemoryCache, make_key


@runtime_checkable
class ICache(Protocol):
    """Async cache contract shared by providers."""

    async def get(self, key: str) -> Any | None:
        ...

    async def put(self, key: str, value: Any, *, ttl_seconds: int = 0) -> None:
        ...

    async def invalidate(self, key: str) -> None:
        ...

    async def clear(self) -> None:
        ...


__all__ = ["ICache", "CacheEntry", "MemoryCache", "make_key"]
