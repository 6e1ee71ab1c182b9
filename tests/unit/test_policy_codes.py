"""Tests for policy-code extraction and the policy matrix."""

from __future__ import annotations

from planning_balance.core.config import PolicyMatrixConfig
from planning_balance.models import EvidenceRole, RetrievalResult, SourceTier
from planning_balance.parsing import iter_policy_codes, normalize_code, snippet_around
from planning_balance.retrieval import build_policy_matrix


def _policy(text: str, role: EvidenceRole = EvidenceRole.POLICY) -> RetrievalResult:
    return RetrievalResult(source=SourceTier.LOCAL_POLICY, content=text, role=role)


class TestIterPolicyCodes:
    def test_both_families_in_text_order(self) -> None:
        text = "See H-4 first, then CS10 and DM12.2."
        assert [code for code, _ in iter_policy_codes(text)] == ["H-4", "CS10", "DM12.2"]

    def test_space_between_prefix_and_number_is_normalised(self) -> None:
        assert [code for code, _ in iter_policy_codes("Policy HO 3 applies")] == ["HO3"]

    def test_stopwords_are_not_codes(self) -> None:
        assert list(iter_policy_codes("NPPF 11 and PTAL 4 and CIL 2")) == []

    def test_plain_codes_keep_no_hyphen(self) -> None:
        text = "Policy CS10, DM12.2 and SP-12"
        assert [code for code, _ in iter_policy_codes(text)] == ["CS10", "DM12.2", "SP-12"]

    def test_empty_text(self) -> None:
        assert list(iter_policy_codes("")) == []

    def test_normalize_code(self) -> None:
        assert normalize_code("sp", "12", hyphenated=True) == "SP-12"
        assert normalize_code("cs", "10") == "CS10"


class TestSnippetAround:
    def test_collapses_whitespace_and_truncates(self) -> None:
        text = "word   " * 200
        snippet = snippet_around(text, 300, max_chars=50)
        assert len(snippet) <= 50
        assert "  " not in snippet


class TestBuildPolicyMatrix:
    def test_distinct_codes_first_seen(self) -> None:
        items = [
            _policy("Policy CS10 and Policy H-4 apply."),
            _policy("CS10 again, plus DM3."),
        ]
        matrix = build_policy_matrix(items)
        assert matrix.count == 3
        assert [p.code for p in matrix.policies] == ["CS10", "H-4", "DM3"]

    def test_plain_and_hyphenated_forms_are_distinct(self) -> None:
        matrix = build_policy_matrix([_policy("Policy CS10 and CS-10")])
        assert matrix.count == 2
        assert [p.code for p in matrix.policies] == ["CS10", "CS-10"]

    def test_only_policy_role_items_are_scanned(self) -> None:
        items = [_policy("Application cites CS10", role=EvidenceRole.APPLICATION)]
        assert build_policy_matrix(items).count == 0

    def test_code_cap(self) -> None:
        text = " ".join(f"CS{i}" for i in range(1, 60))
        matrix = build_policy_matrix([_policy(text)], PolicyMatrixConfig(max_codes=40))
        assert matrix.count == 40

    def test_scan_cap(self) -> None:
        items = [_policy(f"Policy DM{i}") for i in range(1, 11)]
        matrix = build_policy_matrix(items, PolicyMatrixConfig(max_scan_items=4))
        assert [p.code for p in matrix.policies] == ["DM1", "DM2", "DM3", "DM4"]

    def test_snippet_bounded(self) -> None:
        text = "CS10 " + "long policy wording " * 50
        matrix = build_policy_matrix([_policy(text)])
        assert len(matrix.policies[0].snippet) <= 240

    def test_empty(self) -> None:
        matrix = build_policy_matrix([])
        assert matrix.count == 0
        assert matrix.policies == []
