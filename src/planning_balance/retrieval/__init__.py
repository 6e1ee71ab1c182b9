"""Evidence retrieval: need assessment, fetch, rank, diversify, budget, ground."""

from __future__ import annotations

from planning_balance.retrieval.budgeter import ContextBudgeter
from planning_balance.retrieval.diversifier import diversify
from planning_balance.retrieval.fetcher import FetchOutcome, MultiSourceFetcher, is_relevant_policy
from planning_balance.retrieval.fusion import EvidenceFusion
from planning_balance.retrieval.grounding import GroundingEscalator, grounding_queries
from planning_balance.retrieval.local_index import EvidenceIndex
from planning_balance.retrieval.need_assessor import RetrievalNeedAssessor, is_specific
from planning_balance.retrieval.policy_matrix import build_policy_matrix
from planning_balance.retrieval.ranker import combine_and_rank

__all__ = [
    "ContextBudgeter",
    "EvidenceFusion",
    "EvidenceIndex",
    "FetchOutcome",
    "GroundingEscalator",
    "MultiSourceFetcher",
    "RetrievalNeedAssessor",
    "build_policy_matrix",
    "combine_and_rank",
    "diversify",
    "grounding_queries",
    "is_relevant_policy",
    "is_specific",
]
