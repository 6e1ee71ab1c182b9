"""Per-assessment run tracking using ContextVars.

Opt-in: stages recorded outside an active run are timed and discarded.

Usage::

    run = start_run(assessment_id="PBA_1a2b3c")
    with track_stage("retrieval.external") as stage:
        stage.warnings.append("precedent: timeout")
    run = end_run()
    print(run.total_duration_ms)
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog


@dataclass
class StageMetrics:
    """Timing and warnings for one pipeline stage."""

    stage: str
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_ms: float = 0.0
    item_count: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass
class RunAnalytics:
    """Stages recorded for one assessment run."""

    run_id: str
    assessment_id: str = ""
    started_at: datetime | None = None
    ended_at: datetime | None = None
    status: str = "running"
    stages: list[StageMetrics] = field(default_factory=list)

    @property
    def total_duration_ms(self) -> float:
        if not self.started_at or not self.ended_at:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds() * 1000

    @property
    def warnings(self) -> list[str]:
        return [w for s in self.stages for w in s.warnings]

    def finalize(self, status: str = "completed") -> None:
        self.ended_at = datetime.now(timezone.utc)
        self.status = status


_current_run: ContextVar[RunAnalytics | None] = ContextVar("pb_current_run", default=None)


def get_current_run() -> RunAnalytics | None:
    """Return the active run, or None."""
    return _current_run.get()


def start_run(assessment_id: str = "", run_id: str | None = None) -> RunAnalytics:
    """Create and activate a run for the current context."""
    run = RunAnalytics(
        run_id=run_id or uuid.uuid4().hex[:12],
        assessment_id=assessment_id,
        started_at=datetime.now(timezone.utc),
    )
    _current_run.set(run)
    structlog.contextvars.bind_contextvars(run_id=run.run_id, assessment_id=assessment_id)
    return run


def end_run(status: str = "completed") -> RunAnalytics | None:
    """Finalize and deactivate the current run."""
    run = _current_run.get()
    if run is None:
        return None
    run.finalize(status)
    _current_run.set(None)
    structlog.contextvars.unbind_contextvars("run_id", "assessment_id")
    return run


@contextmanager
def track_stage(name: str) -> Generator[StageMetrics, None, None]:
    """Time a stage and attach it to the current run, if any."""
    run = _current_run.get()
    stage = StageMetrics(stage=name, started_at=datetime.now(timezone.utc))
    structlog.contextvars.bind_contextvars(stage=name)
    try:
        yield stage
    finally:
        stage.ended_at = datetime.now(timezone.utc)
        stage.duration_ms = (stage.ended_at - stage.started_at).total_seconds() * 1000
        if run is not None:
            run.stages.append(stage)
        structlog.contextvars.unbind_contextvars("stage")
