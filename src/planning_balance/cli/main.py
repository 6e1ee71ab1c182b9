"""CLI for planning-balance: assess / weights commands."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from planning_balance.assessment import CATEGORY_WEIGHTS, CATEGORY_WEIGHTS_VERSION
from planning_balance.core.config import AppSettings
from planning_balance.exceptions import PlanningBalanceError
from planning_balance.models import RetrievalOptions
from planning_balance.observability import setup_logging
from planning_balance.pipeline import AssessmentInput, AssessmentPipeline, AssessmentSnapshot
from planning_balance.providers import InMemoryConstraintRegistry, InMemoryPolicyRegistry

app = typer.Typer(name="planning-balance", help="Evidence fusion and planning-balance assessment")
console = Console()

_DECISION_STYLE = {"approve": "green", "refuse": "red", "defer": "yellow"}


def _load_input(path: Path) -> tuple[AssessmentInput, dict[str, Any]]:
    """Split the input file into the assessment payload and registry seed data."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise typer.BadParameter(f"Cannot read {path}: {e}") from e
    if not isinstance(raw, dict):
        raise typer.BadParameter(f"Expected a JSON object in {path}")

    registries = {
        "policies": raw.pop("policies", {}) or {},
        "constraints": raw.pop("constraints", []) or [],
    }
    try:
        return AssessmentInput.model_validate(raw), registries
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid assessment input in {path}:\n{e}") from e


def _print_snapshot(snapshot: AssessmentSnapshot) -> None:
    rec = snapshot.recommendation
    style = _DECISION_STYLE.get(rec.decision.value, "white")
    console.print(f"\n[bold]Assessment:[/bold] {snapshot.assessment_id}")
    console.print(f"[bold]Query:[/bold] {snapshot.query}")
    console.print(
        f"[bold]Recommendation:[/bold] [{style}]{rec.decision.value.upper()}[/{style}] "
        f"({rec.confidence:.0%} confidence, appeal risk {rec.appeal_risk})"
    )
    console.print(f"[bold]Reasoning:[/bold] {rec.reasoning}\n")

    balancing = snapshot.assessment.balancing
    table = Table(title=f"Planning Balance (weights {balancing.weights_version})")
    table.add_column("Category", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Significance")
    for category, applied in balancing.weights_applied.items():
        table.add_row(
            category,
            f"{applied.score:.1f}",
            f"{applied.weight:g}",
            applied.significance.replace("_", " "),
        )
    console.print(table)
    console.print(
        f"Cumulative score {balancing.cumulative_score} -> "
        f"{balancing.overall_balance.value.replace('_', ' ')}"
        + (" [red](override applied)[/red]" if balancing.override_applied else "")
    )

    retrieval = snapshot.retrieval
    console.print(
        f"\nRetrieval: {retrieval.retrieval_strategy}, {len(retrieval.context_items)} context items, "
        f"{retrieval.policy_matrix.count} policy codes, "
        f"{snapshot.evidence.citation_count} citations"
    )
    for risk in rec.risk_factors:
        console.print(f"  [yellow]risk[/yellow] ({risk.level}) {risk.description}")
    for requirement in rec.information_requirements:
        console.print(f"  [magenta]needs[/magenta] {requirement}")
    for warning in snapshot.warnings:
        console.print(f"  [dim]warning: {warning}[/dim]")


@app.command()
def assess(
    input_file: Path = typer.Argument(..., help="JSON file with application, spatial and document data"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Override the retrieval query"),
    agentic: bool = typer.Option(
        False, "--agentic/--no-agentic", help="Use the LLM reasoning service and external sources"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full snapshot as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Assess one planning application and print the recommendation."""
    settings = AppSettings()
    if verbose:
        settings.observability.log_level = "DEBUG"
    setup_logging(settings.observability)

    data, seed = _load_input(input_file)
    if query:
        data = data.model_copy(update={"query": query})

    pipeline = AssessmentPipeline.from_settings(
        settings,
        agentic=agentic,
        policies=InMemoryPolicyRegistry(seed["policies"]),
        constraints=InMemoryConstraintRegistry(seed["constraints"]),
    )

    async def _run() -> AssessmentSnapshot:
        try:
            return await pipeline.run(data, RetrievalOptions(use_agentic=agentic))
        finally:
            await pipeline.aclose()

    try:
        snapshot = asyncio.run(_run())
    except PlanningBalanceError as e:
        console.print(f"[red]Assessment failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    if as_json:
        typer.echo(snapshot.model_dump_json(indent=2))
    else:
        _print_snapshot(snapshot)


@app.command()
def weights() -> None:
    """Show the versioned category weight table."""
    table = Table(title=f"Category weights (version {CATEGORY_WEIGHTS_VERSION})")
    table.add_column("Category", style="cyan")
    table.add_column("Weight", justify="right")
    for category, weight in sorted(CATEGORY_WEIGHTS.items(), key=lambda kv: -kv[1]):
        table.add_row(category, str(weight))
    console.print(table)


if __name__ == "__main__":
    app()
