"""Deterministic citation keys and the per-run citation index.

Keys follow ``TYPE_SUBTYPE_INDEX`` (``SITE_AREA_001``,
``CONSTRAINT_FLOOD_ZONES_FZ3``, ``TEXT_PARKING_002``). A caller-supplied index
is used when it is still free; otherwise a per-prefix counter yields the next
unused zero-padded number, so keys are unique within one indexer.
"""

from __future__ import annotations

import re
from collections import Counter

from pydantic import BaseModel, ConfigDict

_KEY_PART = re.compile(r"[^A-Z0-9]+")


def key_part(value: object) -> str:
    """Uppercase, non-alphanumerics collapsed to ``_``."""
    return _KEY_PART.sub("_", str(value).upper()).strip("_") or "X"


class CitationEntry(BaseModel):
    """What a citation key points at."""

    model_config = ConfigDict(frozen=True)

    key: str
    type: str
    category: str
    description: str
    confidence: float
    source: str


class CitationIndexer:
    """Assigns citation keys for one assessment run."""

    def __init__(self) -> None:
        self._counters: Counter[str] = Counter()
        self._index: dict[str, CitationEntry] = {}

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def next_key(self, type_: str, subtype: str, index: object | None = None) -> str:
        prefix = f"{key_part(type_)}_{key_part(subtype)}"
        if index is not None:
            candidate = f"{prefix}_{key_part(index)}"
            if candidate not in self._index:
                return candidate
        while True:
            self._counters[prefix] += 1
            candidate = f"{prefix}_{self._counters[prefix]:03d}"
            if candidate not in self._index:
                return candidate

    def register(
        self,
        type_: str,
        subtype: str,
        *,
        evidence_type: str,
        category: str,
        description: str,
        confidence: float,
        source: str,
        index: object | None = None,
    ) -> str:
        """Reserve a key and record its entry. Returns the key."""
        key = self.next_key(type_, subtype, index)
        self._index[key] = CitationEntry(
            key=key,
            type=evidence_type,
            category=category,
            description=description,
            confidence=confidence,
            source=source,
        )
        return key

    def get(self, key: str) -> CitationEntry | None:
        return self._index.get(key)

    def as_dict(self) -> dict[str, CitationEntry]:
        return dict(self._index)
