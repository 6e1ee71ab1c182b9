"""Shared type aliases for the engine."""

from __future__ import annotations

from typing import Any

# Raw record from an external source before normalisation
SourceRecord = dict[str, Any]
