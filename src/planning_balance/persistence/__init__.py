"""Pluggable stores for assessment snapshots."""

from __future__ import annotations

from planning_balance.persistence.file_backend import FilePersistenceBackend
from planning_balance.persistence.memory_backend import MemoryPersistenceBackend
from planning_balance.persistence.protocols import IPersistenceBackend

__all__ = ["FilePersistenceBackend", "IPersistenceBackend", "MemoryPersistenceBackend"]
