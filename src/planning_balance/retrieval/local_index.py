"""Role-partitioned in-process evidence index.

Written during ingestion, read-only while a retrieval call runs. Nothing
locks the partitions: the pipeline finishes ingestion before fusion starts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from planning_balance.interfaces import IEmbedder
from planning_balance.models import DocumentChunk, EvidenceRole
from planning_balance.retrieval.similarity import cosine, term_coverage, token_set

log = logging.getLogger(__name__)


class EvidenceIndex:
    """Separate application and policy collections of document chunks."""

    def __init__(self, embedder: IEmbedder | None = None) -> None:
        self._embedder = embedder
        self._partitions: dict[EvidenceRole, list[DocumentChunk]] = {
            EvidenceRole.APPLICATION: [],
            EvidenceRole.POLICY: [],
        }

    def __len__(self) -> int:
        return sum(len(p) for p in self._partitions.values())

    def count(self, role: EvidenceRole) -> int:
        return len(self._partitions.get(role, []))

    def add(self, chunks: Iterable[DocumentChunk]) -> int:
        """Add chunks to their role partition. Returns the number added."""
        added = 0
        for chunk in chunks:
            if not chunk.content.strip():
                continue
            if chunk.role not in self._partitions:
                log.debug("Skipping chunk with unsupported role %s", chunk.role)
                continue
            if chunk.embedding is None and self._embedder is not None:
                chunk = chunk.model_copy(update={"embedding": self._embedder.embed(chunk.content)})
            self._partitions[chunk.role].append(chunk)
            added += 1
        return added

    def search(
        self,
        query: str,
        role: EvidenceRole,
        *,
        top_k: int = 8,
        query_embedding: list[float] | None = None,
    ) -> list[tuple[DocumentChunk, float]]:
        """Return ``(chunk, similarity)`` pairs best first.

        Cosine similarity is used when both sides carry embeddings, query-term
        coverage otherwise. Zero-similarity chunks are not returned.
        """
        chunks = self._partitions.get(role, [])
        if not chunks:
            return []

        if query_embedding is None and self._embedder is not None:
            query_embedding = self._embedder.embed(query)
        terms = token_set(query)

        scored: list[tuple[DocumentChunk, float]] = []
        for chunk in chunks:
            if query_embedding is not None and chunk.embedding:
                score = cosine(query_embedding, chunk.embedding)
            else:
                score = term_coverage(terms, chunk.content)
            if score > 0.0:
                scored.append((chunk, min(score, 1.0)))

        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:top_k]
