"""Tests for tagged JSON parsing of reasoning-service responses."""

from __future__ import annotations

from planning_balance.parsing import Parsed, Unparsed, parse_json, parse_json_object


class TestParseJson:
    def test_plain_object(self) -> None:
        assert parse_json('{"needsPolicyData": true}') == Parsed({"needsPolicyData": True})

    def test_fenced_block(self) -> None:
        text = 'Here you go:\n```json\n{"a": 1}\n```\nThanks'
        assert parse_json(text) == Parsed({"a": 1})

    def test_object_inside_prose(self) -> None:
        text = 'My judgement is {"reasoning": "needs {braces} inside", "n": 2} as requested.'
        result = parse_json(text)
        assert isinstance(result, Parsed)
        assert result.value["n"] == 2
        assert result.value["reasoning"] == "needs {braces} inside"

    def test_python_literals_and_trailing_comma(self) -> None:
        result = parse_json('{"a": True, "b": None, "c": [1, 2,],}')
        assert result == Parsed({"a": True, "b": None, "c": [1, 2]})

    def test_free_text_is_unparsed(self) -> None:
        text = "I think precedent data from PlanIt would help."
        assert parse_json(text) == Unparsed(raw_text=text)

    def test_empty(self) -> None:
        assert parse_json("") == Unparsed(raw_text="")
        assert parse_json(None) == Unparsed(raw_text="")


class TestParseJsonObject:
    def test_array_is_not_an_object(self) -> None:
        assert parse_json_object("[1, 2, 3]") == Unparsed(raw_text="[1, 2, 3]")

    def test_object_passes_through(self) -> None:
        assert parse_json_object('{"x": 1}') == Parsed({"x": 1})
