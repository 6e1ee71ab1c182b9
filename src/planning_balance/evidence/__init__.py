"""Evidence generation and citation indexing."""

from __future__ import annotations

from planning_balance.evidence.citations import CitationEntry, CitationIndexer
from planning_balance.evidence.generator import (
    EvidenceGenerator,
    EvidenceItem,
    EvidenceSet,
    generate_evidence,
)

__all__ = [
    "CitationEntry",
    "CitationIndexer",
    "EvidenceGenerator",
    "EvidenceItem",
    "EvidenceSet",
    "generate_evidence",
]
