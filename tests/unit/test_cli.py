"""Tests for the typer CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from planning_balance.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("planning_balance.cli.main.setup_logging", lambda config: None)


@pytest.fixture
def input_file(tmp_path):
    payload = {
        "application": {
            "reference": "2024/0001/P",
            "address": "12 Mill Lane, London NW6",
            "authority": "camden",
            "development_type": "residential",
            "description": "Erection of 24 flats",
        },
        "spatial": {
            "site_metrics": {"area": 1200},
            "ptal": "4",
        },
        "document": {
            "chunks": [
                {"content": "The scheme provides 24 flats with 12 parking spaces.", "role": "application"},
                {"content": "Policy H4 seeks affordable housing on larger sites.", "role": "policy"},
            ],
            "housing_units": 24,
            "parking_spaces": 12,
        },
        "policies": {"camden": [{"code": "H4", "content": "Affordable housing"}]},
    }
    path = tmp_path / "application.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestWeights:
    def test_lists_categories(self) -> None:
        result = runner.invoke(app, ["weights"])
        assert result.exit_code == 0
        assert "Heritage" in result.stdout
        assert "2024.1" in result.stdout


class TestAssess:
    def test_json_output(self, input_file) -> None:
        result = runner.invoke(app, ["assess", str(input_file), "--no-agentic", "--json"])
        assert result.exit_code == 0, result.stdout

        snapshot = json.loads(result.stdout)
        assert snapshot["assessment_id"].startswith("PBA_")
        assert snapshot["retrieval"]["retrieval_strategy"] == "local_only"
        assert snapshot["recommendation"]["decision"] in {"approve", "refuse", "defer"}
        assert "DENSITY_UNITS_001" in snapshot["evidence"]["citations"]

    def test_query_override(self, input_file) -> None:
        result = runner.invoke(
            app, ["assess", str(input_file), "--json", "--query", "parking standards"]
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout)["query"] == "parking standards"

    def test_table_output(self, input_file) -> None:
        result = runner.invoke(app, ["assess", str(input_file)])
        assert result.exit_code == 0
        assert "Recommendation:" in result.stdout
        assert "Cumulative score" in result.stdout

    def test_unreadable_input(self, tmp_path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("not json", encoding="utf-8")
        result = runner.invoke(app, ["assess", str(bad)])
        assert result.exit_code != 0
