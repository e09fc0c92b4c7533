"""
Payment-mode gate.

A package with a letter of credit is checked for LC compliance. A package
without one is an open-account or cash shipment: nobody examines it against
UCP 600, but customs still needs the right papers to release the cargo.
"""

from __future__ import annotations

from .models import CrossRefIssue, DocumentResult, DocumentType, PaymentMode, Severity
from .rules import COMMON_RULES, LC_RULES, DocumentPackage, Rule, RuleContext

# (required type, severity if absent, what is missing, why it matters)
CUSTOMS_REQUIREMENTS: tuple[tuple[DocumentType, Severity, str, str], ...] = (
    (
        DocumentType.COMMERCIAL_INVOICE,
        Severity.CRITICAL,
        "Missing Commercial Invoice",
        "Commercial Invoice required for customs clearance",
    ),
    (
        DocumentType.BILL_OF_LADING,
        Severity.CRITICAL,
        "Missing Bill of Lading",
        "Bill of Lading required for cargo release",
    ),
    (
        DocumentType.CERTIFICATE_OF_ORIGIN,
        Severity.MAJOR,
        "Missing Certificate of Origin",
        "Certificate of Origin typically required for customs clearance",
    ),
    (
        DocumentType.PACKING_LIST,
        Severity.MAJOR,
        "Missing Packing List",
        "Packing List helps customs verify cargo contents",
    ),
)


def determine_payment_mode(results: list[DocumentResult]) -> PaymentMode:
    """LC mode if and only if a letter of credit is in the package."""
    if any(r.type == DocumentType.LETTER_OF_CREDIT for r in results):
        return PaymentMode.LC
    return PaymentMode.NO_LC


def check_customs_readiness(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """One issue per missing customs document."""
    return [
        CrossRefIssue(
            field="customsReadiness",
            documents=["Package"],
            values=[missing],
            severity=severity,
            description=description,
        )
        for document_type, severity, missing, description in CUSTOMS_REQUIREMENTS
        if not package.has(document_type)
    ]


NO_LC_RULES: tuple[Rule, ...] = (check_customs_readiness,)


def active_rules(mode: PaymentMode) -> tuple[Rule, ...]:
    """The rule subset to run for a payment mode."""
    if mode == PaymentMode.LC:
        return COMMON_RULES + LC_RULES
    return COMMON_RULES + NO_LC_RULES
