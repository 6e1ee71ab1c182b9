"""Snapshot store writing one JSON file per assessment."""

from __future__ import annotations

import logging
from pathlib import Path

from planning_balance.exceptions import PersistenceError

log = logging.getLogger(__name__)


class FilePersistenceBackend:
    """``<base_path>/<key>.json``; path separators in keys become ``_``."""

    def __init__(self, base_path: Path | str) -> None:
        self._base = Path(base_path)
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create snapshot directory {self._base}: {exc}") from exc

    def _path(self, key: str) -> Path:
        name = key.replace("/", "_").replace("\\", "_")
        return self._base / f"{name}.json"

    def save(self, key: str, data: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(data, encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write snapshot {key}: {exc}") from exc
        log.debug(f"Stored snapshot {key} at {path}")

    def load(self, key: str) -> str:
        path = self._path(key)
        if not path.is_file():
            raise KeyError(f"No snapshot stored for {key} (path: {path})")
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to read snapshot {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(p.stem for p in self._base.glob("*.json") if p.stem.startswith(prefix))
