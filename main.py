#!/usr/bin/env python3
"""
LC Package Validator - Entry Point
==================================

Runs the full validation pipeline on a document package and prints the verdict.

Usage:
    python main.py                          # Built-in sample package, offline
    python main.py package.json             # {"documents": [...], "clientIdentifier": ...}
    OPENAI_API_KEY=sk-... python main.py    # With LLM field extraction

Exit code: 0 for GO, 1 for WAIT or NO_GO.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from lc_package_validator.config import Settings
from lc_package_validator.models import PackageInput, PackageVerdict, Severity, Verdict
from lc_package_validator.pipeline import PackageValidationPipeline

load_dotenv()


# ─── Sample Package ─────────────────────────────────────────────────

SAMPLE_LC = """\
IRREVOCABLE DOCUMENTARY LETTER OF CREDIT
L/C NO: LC-2026-00456
ISSUING BANK: EMIRATES NBD BANK PJSC
APPLICANT: GULF POLYMERS DISTRIBUTION FZE, DUBAI
BENEFICIARY: ACME TRADING LLC, HOUSTON
AMOUNT: USD 150,000.00
PORT OF LOADING: HOUSTON, USA
PORT OF DISCHARGE: JEBEL ALI, UAE
GOODS: 500 MT POLYETHYLENE RESIN HDPE GRADE 5502
LATEST SHIPMENT DATE: 15 NOVEMBER 2026
EXPIRY DATE: 30 NOVEMBER 2026
"""

SAMPLE_BL = """\
BILL OF LADING
B/L NO: HOU-JEA-7781
SHIPPER: ACME TRADING LLC
CONSIGNEE: TO ORDER OF EMIRATES NBD BANK PJSC
VESSEL: MV GULF STAR
PORT OF LOADING: HOUSTON TERMINAL
PORT OF DISCHARGE: DUBAI, UAE
SHIPPED ON BOARD DATE: 02/11/2026
500 MT POLYETHYLENE RESIN
FREIGHT PREPAID
"""

SAMPLE_INVOICE = """\
COMMERCIAL INVOICE
INVOICE NO: INV-88120
SELLER: ACME TRADING LLC
L/C NO: LC-2026-00456
500 MT POLYETHYLENE RESIN HDPE GRADE 5502 @ USD 300.00/MT
TOTAL: USD 150,000.00
"""

SAMPLE_PACKAGE = PackageInput(
    documents=[
        {"type": "letter_of_credit", "text": SAMPLE_LC},
        {"type": "bill_of_lading", "text": SAMPLE_BL},
        {"type": "commercial_invoice", "text": SAMPLE_INVOICE},
    ],
    client_identifier="demo@example.com",
)


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_VERDICT_COLORS = {Verdict.GO: _GREEN, Verdict.WAIT: _YELLOW, Verdict.NO_GO: _RED}
_SEVERITY_COLORS = {Severity.CRITICAL: _RED, Severity.MAJOR: _YELLOW, Severity.MINOR: _CYAN}


# ─── Pretty Printer ─────────────────────────────────────────────────


def _print_documents(verdict: PackageVerdict) -> None:
    for result in verdict.document_results:
        color = _VERDICT_COLORS[result.verdict]
        data = result.extracted_data
        dates = ", ".join(
            f"{name}={value.isoformat()}"
            for name, value in (
                ("expiry", data.expiry_date),
                ("latest shipment", data.latest_shipment_date),
                ("shipped", data.shipment_date),
            )
            if value is not None
        )
        print(f"  {result.type.label:<28} {color}{result.verdict.value:<6}{_RESET} "
              f"{len(result.issues)} issue(s)")
        if dates:
            print(f"    {_DIM}{dates}{_RESET}")


def _print_issues(verdict: PackageVerdict) -> None:
    issues = sorted(
        verdict.cross_reference_issues, key=lambda i: (-i.severity.rank, i.field)
    )
    if not issues:
        print(f"  {_GREEN}No cross-reference issues{_RESET}")
        return
    for issue in issues:
        color = _SEVERITY_COLORS[issue.severity]
        print(f"  {color}{_BOLD}[{issue.severity.value.upper()}] {issue.field}{_RESET}")
        print(f"    {issue.description}")
        for value in issue.values:
            print(f"      {_DIM}{value}{_RESET}")
        print()


def print_verdict(verdict: PackageVerdict) -> int:
    """Pretty-print the package verdict with ANSI color codes.

    Returns:
        0 if the package is GO, 1 otherwise.
    """
    color = _VERDICT_COLORS[verdict.overall_verdict]
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  LC PACKAGE VALIDATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Package:      {verdict.package_id}")
    print(f"  Payment mode: {verdict.payment_mode.value}")
    print(f"{'─' * _WIDTH}")
    _print_documents(verdict)
    print(f"{'─' * _WIDTH}")
    _print_issues(verdict)
    print(f"{'=' * _WIDTH}")
    print(f"  {color}{_BOLD}{verdict.overall_verdict.value}{_RESET}  {verdict.recommendation}")
    print(f"{'=' * _WIDTH}\n")
    return 0 if verdict.overall_verdict == Verdict.GO else 1


# ─── Main ────────────────────────────────────────────────────────────


def load_package(path: str) -> PackageInput:
    return PackageInput.model_validate(json.loads(Path(path).read_text(encoding="utf-8")))


def main() -> None:
    """Validate a package file (or the sample package) and print the verdict."""
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    package = load_package(sys.argv[1]) if len(sys.argv) > 1 else SAMPLE_PACKAGE
    print(f"\n  Validating {len(package.documents)} document(s)...\n")

    pipeline = PackageValidationPipeline(settings=settings)
    verdict = pipeline.run(package)
    sys.exit(print_verdict(verdict))


if __name__ == "__main__":
    main()
