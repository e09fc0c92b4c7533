"""
Verdict aggregation - a pure rollup with no hidden state.

  critical issue anywhere, or a document verdict of NO_GO  -> NO_GO
  major issue, a document verdict of WAIT, or any
  cross-reference issue at all                             -> WAIT
  otherwise                                                -> GO

Minor issues reported inside a single document do not hold a package back
on their own; the document's own verdict already reflects them.
"""

from __future__ import annotations

from .models import CrossRefIssue, DocumentResult, Severity, Verdict

GO_RECOMMENDATION = "Package looks complete and consistent. Proceed with presentation to bank."
MINOR_ONLY_RECOMMENDATION = (
    "REVIEW NEEDED - Minor cross-reference issues detected. "
    "Verify documents match before presentation."
)
DOCUMENT_REVIEW_RECOMMENDATION = (
    "REVIEW NEEDED - One or more documents could not be fully verified. "
    "Review them before presentation."
)
REJECTED_DOCUMENT = "a document failed its own review"


def _descriptions(
    severity: Severity,
    document_results: list[DocumentResult],
    cross_ref_issues: list[CrossRefIssue],
) -> list[str]:
    """Issue descriptions at one severity: document issues first, then cross-reference."""
    found = [
        issue.description
        for result in document_results
        for issue in result.issues
        if issue.severity == severity
    ]
    found.extend(i.description for i in cross_ref_issues if i.severity == severity)
    return found


def aggregate_verdict(
    document_results: list[DocumentResult],
    cross_ref_issues: list[CrossRefIssue],
) -> tuple[Verdict, str]:
    """Roll document and cross-reference findings up into (verdict, recommendation)."""
    document_verdicts = {r.verdict for r in document_results}

    critical = _descriptions(Severity.CRITICAL, document_results, cross_ref_issues)
    if critical or Verdict.NO_GO in document_verdicts:
        return (
            Verdict.NO_GO,
            f"STOP - Critical issues found: {'; '.join(critical) or REJECTED_DOCUMENT}. "
            "Do not present to bank until resolved.",
        )

    major = _descriptions(Severity.MAJOR, document_results, cross_ref_issues)
    if major or Verdict.WAIT in document_verdicts or cross_ref_issues:
        if major:
            return (
                Verdict.WAIT,
                f"REVIEW NEEDED - Issues found: {'; '.join(major)}. "
                "Request amendments before presentation.",
            )
        if cross_ref_issues:
            return Verdict.WAIT, MINOR_ONLY_RECOMMENDATION
        return Verdict.WAIT, DOCUMENT_REVIEW_RECOMMENDATION

    return Verdict.GO, GO_RECOMMENDATION
