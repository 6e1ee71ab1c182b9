"""Logging setup and per-run stage tracking."""

from __future__ import annotations

from planning_balance.observability.logging_config import setup_logging
from planning_balance.observability.run_tracker import (
    RunAnalytics,
    StageMetrics,
    end_run,
    get_current_run,
    start_run,
    track_stage,
)

__all__ = [
    "setup_logging",
    "RunAnalytics",
    "StageMetrics",
    "start_run",
    "end_run",
    "get_current_run",
    "track_stage",
]
