"""
Verdict aggregation tests: pure rollup, no I/O.
"""

from __future__ import annotations

import pytest

from lc_package_validator.models import (
    CrossRefIssue,
    DocumentResult,
    DocumentType,
    Issue,
    Severity,
    Verdict,
)
from lc_package_validator.verdict import (
    DOCUMENT_REVIEW_RECOMMENDATION,
    GO_RECOMMENDATION,
    MINOR_ONLY_RECOMMENDATION,
    aggregate_verdict,
)

_ORDER = {Verdict.GO: 0, Verdict.WAIT: 1, Verdict.NO_GO: 2}


def _cross(severity: Severity, description: str = "Mismatch") -> CrossRefIssue:
    return CrossRefIssue(
        field="portOfDischarge",
        documents=["LC", "B/L"],
        values=["LC: A", "B/L: B"],
        severity=severity,
        description=description,
    )


def _result(verdict: Verdict = Verdict.GO, *issues: Issue) -> DocumentResult:
    return DocumentResult(type=DocumentType.BILL_OF_LADING, verdict=verdict, issues=list(issues))


# ═══════════════════════════════════════════════════════════════════════
# ROLLUP
# ═══════════════════════════════════════════════════════════════════════


class TestAggregateVerdict:
    def test_clean_package_is_go(self):
        assert aggregate_verdict([_result()], []) == (Verdict.GO, GO_RECOMMENDATION)

    def test_critical_cross_reference_is_no_go(self):
        verdict, text = aggregate_verdict(
            [_result()], [_cross(Severity.CRITICAL, "Invoice amount exceeds LC amount")]
        )
        assert verdict == Verdict.NO_GO
        assert text == (
            "STOP - Critical issues found: Invoice amount exceeds LC amount. "
            "Do not present to bank until resolved."
        )

    def test_critical_document_issue_is_no_go(self):
        issue = Issue(type="signature", severity=Severity.CRITICAL, description="B/L unsigned")
        verdict, text = aggregate_verdict([_result(Verdict.GO, issue)], [])
        assert verdict == Verdict.NO_GO
        assert "B/L unsigned" in text

    def test_document_no_go_without_critical_issue(self):
        verdict, text = aggregate_verdict([_result(Verdict.NO_GO)], [])
        assert verdict == Verdict.NO_GO
        assert "a document failed its own review" in text

    def test_major_issues_are_listed(self):
        verdict, text = aggregate_verdict(
            [_result()], [_cross(Severity.MAJOR, "Port mismatch"), _cross(Severity.MAJOR, "Vessel mismatch")]
        )
        assert verdict == Verdict.WAIT
        assert text == (
            "REVIEW NEEDED - Issues found: Port mismatch; Vessel mismatch. "
            "Request amendments before presentation."
        )

    def test_minor_cross_reference_still_waits(self):
        verdict, text = aggregate_verdict([_result()], [_cross(Severity.MINOR)])
        assert (verdict, text) == (Verdict.WAIT, MINOR_ONLY_RECOMMENDATION)

    def test_document_wait_holds_package(self):
        assert aggregate_verdict([_result(Verdict.WAIT)], []) == (
            Verdict.WAIT,
            DOCUMENT_REVIEW_RECOMMENDATION,
        )

    def test_minor_document_issue_alone_is_go(self):
        issue = Issue(type="formatting", severity=Severity.MINOR, description="Typo in address")
        assert aggregate_verdict([_result(Verdict.GO, issue)], [])[0] == Verdict.GO

    def test_document_issues_listed_before_cross_reference(self):
        issue = Issue(type="missing_field", severity=Severity.MAJOR, description="No B/L number")
        _, text = aggregate_verdict([_result(Verdict.GO, issue)], [_cross(Severity.MAJOR, "Port mismatch")])
        assert "No B/L number; Port mismatch" in text


class TestMonotonicity:
    @pytest.mark.parametrize("added", list(Severity))
    @pytest.mark.parametrize("existing", [None, *Severity])
    def test_adding_an_issue_never_improves_the_verdict(self, existing, added):
        base = [] if existing is None else [_cross(existing)]
        before, _ = aggregate_verdict([_result()], base)
        after, _ = aggregate_verdict([_result()], base + [_cross(added)])
        assert _ORDER[after] >= _ORDER[before]

    @pytest.mark.parametrize("severity", list(Severity))
    def test_severity_ordering(self, severity):
        verdict, _ = aggregate_verdict([_result()], [_cross(severity)])
        expected = Verdict.NO_GO if severity == Severity.CRITICAL else Verdict.WAIT
        assert verdict == expected
