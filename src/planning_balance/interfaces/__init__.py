"""Protocols for external collaborators."""

from __future__ import annotations

from planning_balance.interfaces.sources import (
    IConstraintRegistry,
    IEmbedder,
    IPolicyRegistry,
    IPrecedentSearch,
    IReasoningService,
    IVectorStore,
)

__all__ = [
    "IReasoningService",
    "IPrecedentSearch",
    "IPolicyRegistry",
    "IConstraintRegistry",
    "IVectorStore",
    "IEmbedder",
]
