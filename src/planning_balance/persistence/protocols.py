"""Contract for stores that hold assessment snapshots."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IPersistenceBackend(Protocol):
    """Keyed store of serialized assessment snapshots (memory, files, ...)."""

    def save(self, key: str, data: str) -> None:
        """Store a JSON snapshot under ``key``, replacing any previous one."""
        ...

    def load(self, key: str) -> str:
        """Return the snapshot for ``key``. Raises KeyError if absent."""
        ...

    def exists(self, key: str) -> bool:
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; absent keys are ignored."""
        ...

    def list_keys(self, prefix: str = "") -> list[str]:
        ...
