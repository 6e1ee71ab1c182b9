"""Dict-backed snapshot store, used by default and in tests."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


class MemoryPersistenceBackend:
    """Keeps snapshots for the lifetime of the process."""

    def __init__(self) -> None:
        self._snapshots: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._snapshots)

    def save(self, key: str, data: str) -> None:
        self._snapshots[key] = data
        log.debug(f"Stored snapshot {key} ({len(data)} chars)")

    def load(self, key: str) -> str:
        try:
            return self._snapshots[key]
        except KeyError:
            raise KeyError(f"No snapshot stored for {key}") from None

    def exists(self, key: str) -> bool:
        return key in self._snapshots

    def delete(self, key: str) -> None:
        self._snapshots.pop(key, None)

    def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._snapshots if k.startswith(prefix))
