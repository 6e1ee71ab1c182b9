"""Nested pydantic-settings configuration for the engine.

Each concern reads its own ``PB_<GROUP>_*`` env vars::

    export PB_LLM_MODEL=gemini/gemini-1.5-flash
    export PB_BUDGET_TOTAL_TOKENS=8000
    export PB_GROUNDING_ENABLED=false

Balancing weights and the consideration catalogue are deliberately absent:
they are versioned module constants in ``planning_balance.assessment``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class LLMConfig(BaseSettings):
    """Reasoning-service LLM backend.

    Env vars use ``PB_LLM_`` prefix.
    """

    model_config = {"env_prefix": "PB_LLM_"}

    model: str = "gemini/gemini-1.5-flash"
    api_base: str | None = None
    api_key: str | None = None
    temperature: float = 0.0
    top_p: float = 1.0
    timeout: float = 60.0
    max_retries: int = 3
    retry_jitter_factor: float = 0.5
    retry_max_delay: float = 30.0


class RetrievalConfig(BaseSettings):
    """Multi-source retrieval and ranking.

    Env vars use ``PB_RETRIEVAL_`` prefix.
    """

    model_config = {"env_prefix": "PB_RETRIEVAL_"}

    top_k: int = 25
    local_top_k: int = 8
    max_additional_queries: int = 3
    precedent_limit: int = 20
    targeted_precedent_limit: int = 10
    policy_limit: int = 10
    targeted_policy_limit: int = 5
    specificity_min_address_length: int = 5

    # Base weight per source tier; final relevance = weight x item score
    tier_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "local_policy": 1.0,
            "local_application": 0.9,
            "external_policy": 0.8,
            "constraint": 0.75,
            "precedent": 0.7,
            "targeted_additional": 0.6,
            "grounding": 0.4,
        }
    )


class DiversityConfig(BaseSettings):
    """Per-source caps and near-duplicate detection.

    Env vars use ``PB_DIVERSITY_`` prefix.
    """

    model_config = {"env_prefix": "PB_DIVERSITY_"}

    source_caps: dict[str, int] = Field(
        default_factory=lambda: {
            "local_policy": 8,
            "local_application": 8,
            "external_policy": 4,
            "constraint": 4,
            "precedent": 3,
            "targeted_additional": 3,
            "grounding": 3,
        }
    )
    default_cap: int = 3
    duplicate_threshold: float = Field(default=0.9, ge=0.0, le=1.0)


class BudgetConfig(BaseSettings):
    """Context token budget split by evidence role.

    Env vars use ``PB_BUDGET_`` prefix.
    """

    model_config = {"env_prefix": "PB_BUDGET_"}

    total_tokens: int = Field(default=6000, ge=0)
    policy_share: float = Field(default=0.45, ge=0.0, le=1.0)
    application_share: float = Field(default=0.35, ge=0.0, le=1.0)
    other_share: float = Field(default=0.20, ge=0.0, le=1.0)
    tokens_per_word: float = Field(default=1.3, gt=0.0)

    @model_validator(mode="after")
    def check_shares_fit(self) -> BudgetConfig:
        total = self.policy_share + self.application_share + self.other_share
        if total > 1.0 + 1e-9:
            raise ValueError(f"budget shares sum to {total:.2f}, must be <= 1.0")
        return self


class PolicyMatrixConfig(BaseSettings):
    """Policy-code extraction limits.

    Env vars use ``PB_POLICY_MATRIX_`` prefix.
    """

    model_config = {"env_prefix": "PB_POLICY_MATRIX_"}

    max_scan_items: int = 60
    max_codes: int = 40
    snippet_chars: int = 240


class GroundingConfig(BaseSettings):
    """Grounding escalation thresholds.

    Env vars use ``PB_GROUNDING_`` prefix.
    """

    model_config = {"env_prefix": "PB_GROUNDING_"}

    enabled: bool = True
    min_policy_codes: int = 3
    min_context_items: int = 6
    max_queries: int = 2
    timeout_seconds: float = 8.0
    relevance_weight: float = 0.4


class PrecedentConfig(BaseSettings):
    """PlanIt precedent search.

    Env vars use ``PB_PRECEDENT_`` prefix.
    """

    model_config = {"env_prefix": "PB_PRECEDENT_"}

    base_url: str = "https://www.planit.org.uk"
    timeout: float = 20.0
    cache_ttl_seconds: int = 6 * 60 * 60
    default_confidence: float = 0.7


class CacheConfig(BaseSettings):
    """Injected response cache.

    Env vars use ``PB_CACHE_`` prefix.
    """

    model_config = {"env_prefix": "PB_CACHE_"}

    max_entries: int = 500
    default_ttl_seconds: int = 3600


class TokenizerConfig(BaseSettings):
    """Token estimation.

    Env vars use ``PB_TOKENIZER_`` prefix.
    """

    model_config = {"env_prefix": "PB_TOKENIZER_"}

    method: Literal["words", "approximate", "tiktoken"] = "words"
    model: str = "gpt-4o"
    char_to_token_ratio: int = 4
    fallback_encoding: str = "cl100k_base"


class ObservabilityConfig(BaseSettings):
    """Logging configuration.

    Env vars use ``PB_OBSERVABILITY_`` prefix.
    """

    model_config = {"env_prefix": "PB_OBSERVABILITY_"}

    log_level: str = "INFO"
    json_logs: bool = False
    service_name: str = "planning-balance"


class PersistenceConfig(BaseSettings):
    """Snapshot persistence.

    Env vars use ``PB_PERSISTENCE_`` prefix.
    """

    model_config = {"env_prefix": "PB_PERSISTENCE_"}

    backend: Literal["file", "memory"] = "memory"
    store_path: Path = Path("./assessments")


class AppSettings(BaseSettings):
    """Top-level settings aggregating all sub-configs."""

    llm: LLMConfig = LLMConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    diversity: DiversityConfig = DiversityConfig()
    budget: BudgetConfig = BudgetConfig()
    policy_matrix: PolicyMatrixConfig = PolicyMatrixConfig()
    grounding: GroundingConfig = GroundingConfig()
    precedent: PrecedentConfig = PrecedentConfig()
    cache: CacheConfig = CacheConfig()
    tokenizer: TokenizerConfig = TokenizerConfig()
    observability: ObservabilityConfig = ObservabilityConfig()
    persistence: PersistenceConfig = PersistenceConfig()
