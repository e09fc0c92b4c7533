"""
Cross-reference rule set - the deterministic comparison layer.

The extraction service reads each document on its own. Nothing it returns is
compared by a model: every check below is plain code over the finished,
read-only list of DocumentResults.

Each rule:
  - Takes a DocumentPackage and a RuleContext
  - Returns a list of CrossRefIssue (empty = all clear)
  - Never fires on a value that isn't there (absence is "no opinion")
  - Is independently testable

Multi-document fields use an explicit reference order (LC first, then B/L,
invoice, ...). The first document in that order that supplies a value is the
baseline, so the outcome does not depend on the order documents were
uploaded in. `documents` and `values` of an issue follow the same order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from pydantic.alias_generators import to_camel

from .comparator import FAIL_CLOSED, GoodsComparator, Strictness, compare_all
from .models import CrossRefIssue, DocumentResult, DocumentType, Severity
from .normalizers import (
    distinctive_words,
    extract_number,
    is_specified,
    names_match,
    normalize_reference,
    ports_match,
    vessels_match,
)

logger = logging.getLogger(__name__)

DT = DocumentType


# ─── Reference Orders ────────────────────────────────────────────────
# Which document types carry a field, most authoritative first.

PORT_DOCUMENTS: tuple[DocumentType, ...] = (
    DT.LETTER_OF_CREDIT,
    DT.BILL_OF_LADING,
    DT.COMMERCIAL_INVOICE,
    DT.CERTIFICATE_OF_ORIGIN,
    DT.INSURANCE_CERTIFICATE,
    DT.INSPECTION_CERTIFICATE,
    DT.LOADING_CERTIFICATE,
    DT.VESSEL_NOMINATION,
)

# Documents where "beneficiary" means the seller. Third-party certificates
# (surveyors, class societies) are excluded: their issuer is not the seller.
BENEFICIARY_DOCUMENTS: tuple[DocumentType, ...] = (
    DT.LETTER_OF_CREDIT,
    DT.COMMERCIAL_INVOICE,
    DT.BILL_OF_LADING,
    DT.PACKING_LIST,
    DT.CERTIFICATE_OF_ORIGIN,
    DT.INSURANCE_CERTIFICATE,
    DT.BENEFICIARY_CERTIFICATE,
    DT.NON_MANIPULATION_CERTIFICATE,
)

LC_NUMBER_DOCUMENTS: tuple[DocumentType, ...] = BENEFICIARY_DOCUMENTS + (DT.BILL_OF_EXCHANGE,)

_QUANTITY_LEADERS = (
    DT.LETTER_OF_CREDIT,
    DT.BILL_OF_LADING,
    DT.COMMERCIAL_INVOICE,
    DT.PACKING_LIST,
)
QUANTITY_DOCUMENTS: tuple[DocumentType, ...] = _QUANTITY_LEADERS + tuple(
    t for t in DT if t not in _QUANTITY_LEADERS
)

GOODS_DOCUMENTS: tuple[DocumentType, ...] = (
    DT.LETTER_OF_CREDIT,
    DT.COMMERCIAL_INVOICE,
    DT.BILL_OF_LADING,
    DT.PACKING_LIST,
)

INSPECTION_DOCUMENTS: tuple[DocumentType, ...] = (
    DT.INSPECTION_CERTIFICATE,
    DT.CERTIFICATE_OF_QUALITY,
    DT.CERTIFICATE_OF_QUANTITY,
)

# Documents that only need their vessel checked against the B/L
VESSEL_DOCUMENTS: tuple[DocumentType, ...] = (
    DT.CARGO_MANIFEST,
    DT.VESSEL_Q88,
    DT.TIME_LOG,
    DT.MASTERS_RECEIPT,
    DT.CHARTER_PARTY,
    DT.DIP_TEST_REPORT,
)


# ─── Tolerances ──────────────────────────────────────────────────────

DEFAULT_QUANTITY_TOLERANCE_PCT = Decimal("5")  # UCP 600 Art. 30(b)
MIN_INSURANCE_COVERAGE = Decimal("1.10")
MAX_DATING_GAP_DAYS = 1
PACKING_LIST_TOLERANCE_KG = Decimal("1")
ULLAGE_TOLERANCE_PCT = Decimal("0.1")
INVOICE_TOLERANCE_ABS = Decimal("1")
INVOICE_TOLERANCE_PCT = Decimal("0.01")
WOT_LOADING_TOLERANCE = Decimal("0.005")
WOT_SHORTAGE_TOLERANCE = Decimal("0.005")
WOT_OVERAGE_TOLERANCE = Decimal("0.003")

_TOLERANCE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:%|PCT|PERCENT)", re.IGNORECASE)


# ─── Package & Context ───────────────────────────────────────────────


@dataclass(frozen=True)
class FieldReading:
    """One document's value for a compared field."""

    document: DocumentResult
    value: str

    @property
    def label(self) -> str:
        return self.document.type.label

    @property
    def entry(self) -> str:
        return f"{self.label}: {self.value}"


class DocumentPackage:
    """Read-only view over the assembled documents of one package."""

    def __init__(self, results: Iterable[DocumentResult]):
        self.results: tuple[DocumentResult, ...] = tuple(results)

    def first(self, document_type: DocumentType) -> Optional[DocumentResult]:
        return next((r for r in self.results if r.type == document_type), None)

    def has(self, document_type: DocumentType) -> bool:
        return self.first(document_type) is not None

    def of_type(self, document_type: DocumentType) -> list[DocumentResult]:
        return [r for r in self.results if r.type == document_type]

    @property
    def lc(self) -> Optional[DocumentResult]:
        return self.first(DT.LETTER_OF_CREDIT)

    @property
    def bl(self) -> Optional[DocumentResult]:
        return self.first(DT.BILL_OF_LADING)

    @property
    def invoice(self) -> Optional[DocumentResult]:
        return self.first(DT.COMMERCIAL_INVOICE)

    def readings(self, order: Sequence[DocumentType], attribute: str) -> list[FieldReading]:
        """Specified values of `attribute`, in reference order."""
        found: list[FieldReading] = []
        for document_type in order:
            for result in self.of_type(document_type):
                value = getattr(result.extracted_data, attribute)
                if is_specified(value):
                    found.append(FieldReading(result, value))
        return found


@dataclass(frozen=True)
class RuleContext:
    """Inputs a rule needs besides the documents themselves."""

    today: date = field(default_factory=date.today)
    comparator: Optional[GoodsComparator] = None
    comparator_concurrency: int = 3
    comparator_timeout: float = 15.0


Rule = Callable[[DocumentPackage, RuleContext], list[CrossRefIssue]]


def run_rules(
    package: DocumentPackage, rules: Iterable[Rule], context: RuleContext
) -> list[CrossRefIssue]:
    """Run every rule over the same package and collect their issues."""
    issues: list[CrossRefIssue] = []
    for rule in rules:
        issues.extend(rule(package, context))
    return issues


# ─── Helpers ─────────────────────────────────────────────────────────


def _issue(
    field_name: str,
    documents: list[str],
    values: list[str],
    severity: Severity,
    description: str,
) -> list[CrossRefIssue]:
    return [
        CrossRefIssue(
            field=field_name,
            documents=documents,
            values=values,
            severity=severity,
            description=description,
        )
    ]


def _consistency(
    package: DocumentPackage,
    *,
    field_name: str,
    attribute: str,
    order: Sequence[DocumentType],
    matches: Callable[[str, str], bool],
    severity: Severity,
    description: str,
) -> list[CrossRefIssue]:
    """Compare every reading against the reference reading."""
    readings = package.readings(order, attribute)
    if len(readings) < 2:
        return []

    reference, others = readings[0], readings[1:]
    mismatched = [r for r in others if not matches(reference.value, r.value)]
    if not mismatched:
        return []

    detail = "; ".join(r.entry for r in mismatched)
    return _issue(
        field_name,
        [r.label for r in readings],
        [r.entry for r in readings],
        severity,
        f"{description} (reference {reference.entry}; differs: {detail})",
    )


def _same_reference(a: str, b: str) -> bool:
    return normalize_reference(a) == normalize_reference(b)


def _pct(value: Decimal) -> str:
    """Decimal percentage without trailing zeros: 10.00 -> "10", 7.50 -> "7.5"."""
    return f"{value.normalize():f}"


def _sum(values: Iterable[Optional[Decimal]]) -> Decimal:
    return sum((v for v in values if v is not None), Decimal("0"))


# ─── Always-Active Rules ─────────────────────────────────────────────


def check_amount(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """The invoice may not exceed the credit amount (UCP 600 Art. 18(b))."""
    lc, invoice = package.lc, package.invoice
    if lc is None or invoice is None:
        return []

    lc_amount = extract_number(lc.extracted_data.amount)
    invoice_amount = extract_number(invoice.extracted_data.amount)
    if not lc_amount or not invoice_amount:
        return []

    if invoice_amount <= lc_amount:
        return []
    return _issue(
        "amount",
        [DT.LETTER_OF_CREDIT.label, DT.COMMERCIAL_INVOICE.label],
        [f"LC: {lc.extracted_data.amount}", f"Invoice: {invoice.extracted_data.amount}"],
        Severity.CRITICAL,
        f"Invoice amount exceeds LC amount. LC: {lc_amount}, Invoice: {invoice_amount}",
    )


def check_port_of_loading(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    return _consistency(
        package,
        field_name="portOfLoading",
        attribute="port_of_loading",
        order=PORT_DOCUMENTS,
        matches=ports_match,
        severity=Severity.MAJOR,
        description="Port of loading mismatch across documents",
    )


def check_port_of_discharge(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    return _consistency(
        package,
        field_name="portOfDischarge",
        attribute="port_of_discharge",
        order=PORT_DOCUMENTS,
        matches=ports_match,
        severity=Severity.MAJOR,
        description="Port of discharge mismatch across documents",
    )


def check_beneficiary(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    return _consistency(
        package,
        field_name="beneficiary",
        attribute="beneficiary",
        order=BENEFICIARY_DOCUMENTS,
        matches=names_match,
        severity=Severity.CRITICAL,
        description="Beneficiary name mismatch - banks will reject",
    )


def check_lc_number(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    return _consistency(
        package,
        field_name="lcNumber",
        attribute="lc_number",
        order=LC_NUMBER_DOCUMENTS,
        matches=_same_reference,
        severity=Severity.CRITICAL,
        description="LC number mismatch - documents reference different LCs",
    )


def quantity_tolerance(lc: Optional[DocumentResult]) -> tuple[Decimal, str]:
    """Tolerance percentage and where it came from.

    "+/- 10%", "10 PCT", "5 PERCENT MORE OR LESS" on the LC win; otherwise
    the 5% default applies.
    """
    stated = lc.extracted_data.quantity_tolerance if lc is not None else None
    if stated:
        match = _TOLERANCE_RE.search(stated)
        if match:
            return Decimal(match.group(1)), f"LC specified {stated}"
    return DEFAULT_QUANTITY_TOLERANCE_PCT, "UCP 600 default 5%"


def check_quantity(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """Every quantity must sit within tolerance of the reference quantity."""
    readings: list[tuple[FieldReading, Decimal]] = []
    for reading in package.readings(QUANTITY_DOCUMENTS, "quantity"):
        number = extract_number(reading.value)
        if number is not None and number > 0:
            readings.append((reading, number))
    if len(readings) < 2:
        return []

    tolerance_pct, source = quantity_tolerance(package.lc)
    tolerance = tolerance_pct / 100
    base = readings[0][1]
    outside = [r for r, qty in readings[1:] if abs(qty - base) / base > tolerance]
    if not outside:
        return []

    return _issue(
        "quantity",
        [r.label for r, _ in readings],
        [r.entry for r, _ in readings],
        Severity.MAJOR,
        f"Quantity mismatch across documents (exceeds {_pct(tolerance_pct)}% tolerance - {source})",
    )


def strictness_for(document_type: DocumentType) -> Strictness:
    """The invoice must correspond with the LC; everything else may generalise."""
    if document_type == DT.COMMERCIAL_INVOICE:
        return Strictness.STRICT
    return Strictness.LENIENT


def check_goods_description(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """Compare each goods description against the LC's, through the comparator.

    The LC description is the only reference. Without it there is nothing to
    compare against, so the rule stays silent.
    """
    readings = package.readings(GOODS_DOCUMENTS, "goods_description")
    lc_reading = next((r for r in readings if r.document.type == DT.LETTER_OF_CREDIT), None)
    if lc_reading is None or len(readings) < 2:
        return []

    others = [r for r in readings if r.document.type != DT.LETTER_OF_CREDIT]
    requests = [(r.value, strictness_for(r.document.type)) for r in others]
    if context.comparator is None:
        logger.warning("No goods comparator configured - failing closed")
        results = [FAIL_CLOSED] * len(requests)
    else:
        results = compare_all(
            context.comparator,
            lc_reading.value,
            requests,
            max_workers=context.comparator_concurrency,
            timeout=context.comparator_timeout,
        )

    failures = [
        (reading, strictness, result)
        for reading, (_, strictness), result in zip(others, requests, results)
        if not result.matches
    ]
    if not failures:
        return []

    strict_failure = any(s == Strictness.STRICT for _, s, _ in failures)
    reasons = [
        result.reason or f"{reading.label} doesn't match LC goods description"
        for reading, _, result in failures
    ]
    return _issue(
        "goodsDescription",
        [r.label for r in readings],
        [r.entry for r in readings],
        Severity.CRITICAL if strict_failure else Severity.MAJOR,
        "; ".join(reasons),
    )


def check_shipped_on_board(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    bl = package.bl
    if bl is None or bl.extracted_data.shipped_on_board is not False:
        return []
    return _issue(
        "shippedOnBoard",
        [DT.BILL_OF_LADING.label],
        ["B/L: RECEIVED FOR SHIPMENT (not shipped on board)"],
        Severity.CRITICAL,
        'B/L is "Received for Shipment" without shipped-on-board notation - bank will '
        "reject. Need dated on-board notation with vessel name.",
    )


# ── Deterministic math: the model extracts rows, code adds them up ──


def check_packing_list_math(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    packing_list = package.first(DT.PACKING_LIST)
    if packing_list is None:
        return []
    data = packing_list.extracted_data
    if not data.packing_list_items or data.packing_list_total_net is None:
        return []

    calculated = _sum(item.net_weight for item in data.packing_list_items)
    printed = data.packing_list_total_net
    diff = abs(calculated - printed)
    if diff <= PACKING_LIST_TOLERANCE_KG:
        return []

    return _issue(
        "packingListMath",
        [DT.PACKING_LIST.label],
        [
            f"Rows sum to: {calculated:.2f} kg",
            f"Printed total: {printed:.2f} kg",
            f"Difference: {diff:.2f} kg",
        ],
        Severity.CRITICAL,
        f"MATH ERROR: Packing list rows sum to {calculated:.2f} kg but printed total is "
        f"{printed:.2f} kg - {diff:.2f} kg discrepancy",
    )


def check_ullage_math(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    ullage = package.first(DT.ULLAGE_REPORT)
    if ullage is None:
        return []
    data = ullage.extracted_data
    if not data.ullage_items or not data.ullage_total_volume:
        return []

    calculated = _sum(tank.volume for tank in data.ullage_items)
    printed = data.ullage_total_volume
    diff = abs(calculated - printed)
    percent = diff / abs(printed) * 100
    if percent <= ULLAGE_TOLERANCE_PCT:
        return []

    return _issue(
        "ullageMath",
        [DT.ULLAGE_REPORT.label],
        [
            f"Tanks sum to: {calculated:.2f}",
            f"Printed total: {printed:.2f}",
            f"Difference: {diff:.2f} ({percent:.2f}%)",
        ],
        Severity.CRITICAL,
        f"MATH ERROR: Ullage tank volumes sum to {calculated:.2f} but printed total is "
        f"{printed:.2f} - {percent:.2f}% discrepancy",
    )


def check_invoice_math(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    invoice = package.invoice
    if invoice is None:
        return []
    data = invoice.extracted_data
    if not data.invoice_line_items or not data.invoice_printed_total:
        return []

    calculated = _sum(item.line_total for item in data.invoice_line_items)
    printed = data.invoice_printed_total
    diff = abs(calculated - printed)
    percent = diff / abs(printed) * 100
    # Both thresholds must trip: rounding on large invoices is not an error
    if diff <= INVOICE_TOLERANCE_ABS or percent <= INVOICE_TOLERANCE_PCT:
        return []

    return _issue(
        "invoiceMath",
        [DT.COMMERCIAL_INVOICE.label],
        [
            f"Lines sum to: {calculated:.2f}",
            f"Printed total: {printed:.2f}",
            f"Difference: {diff:.2f}",
        ],
        Severity.CRITICAL,
        f"MATH ERROR: Invoice line items sum to {calculated:.2f} but printed total is "
        f"{printed:.2f} - possible fraud or typo",
    )


# ─── LC-Only Rules ───────────────────────────────────────────────────


def check_shipment_vs_expiry(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    lc, bl = package.lc, package.bl
    if lc is None or bl is None:
        return []
    shipped, expiry = bl.extracted_data.shipment_date, lc.extracted_data.expiry_date
    if shipped is None or expiry is None or shipped <= expiry:
        return []
    return _issue(
        "dates",
        [DT.LETTER_OF_CREDIT.label, DT.BILL_OF_LADING.label],
        [f"LC Expiry: {expiry.isoformat()}", f"Shipment: {shipped.isoformat()}"],
        Severity.CRITICAL,
        "Shipment date is after LC expiry - presentation will be rejected",
    )


def check_lc_expired(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    lc = package.lc
    expiry = lc.extracted_data.expiry_date if lc is not None else None
    if expiry is None or expiry >= context.today:
        return []
    return _issue(
        "lcExpiry",
        [DT.LETTER_OF_CREDIT.label],
        [f"LC Expiry: {expiry.isoformat()}", f"Today: {context.today.isoformat()}"],
        Severity.CRITICAL,
        f"LC expired on {expiry.isoformat()} - cannot present documents",
    )


def check_late_shipment(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    lc, bl = package.lc, package.bl
    if lc is None or bl is None:
        return []
    shipped, latest = bl.extracted_data.shipment_date, lc.extracted_data.latest_shipment_date
    if shipped is None or latest is None or shipped <= latest:
        return []
    return _issue(
        "lateShipment",
        [DT.LETTER_OF_CREDIT.label, DT.BILL_OF_LADING.label],
        [f"LC Latest Shipment: {latest.isoformat()}", f"B/L Shipped: {shipped.isoformat()}"],
        Severity.CRITICAL,
        f"Shipment date {shipped.isoformat()} is after LC latest shipment date "
        f"{latest.isoformat()} - bank will reject",
    )


def check_inspection_company(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """Certificates must come from the inspection company the LC names."""
    lc = package.lc
    required = lc.extracted_data.required_inspection_company if lc is not None else None
    if not is_specified(required):
        return []

    wanted = required.lower().strip()
    issues: list[CrossRefIssue] = []
    for reading in package.readings(INSPECTION_DOCUMENTS, "inspection_company"):
        actual = reading.value.lower().strip()
        if wanted in actual or actual in wanted:
            continue
        issues.extend(
            _issue(
                "inspectionCompany",
                [DT.LETTER_OF_CREDIT.label, reading.label],
                [f"LC requires: {required}", reading.entry],
                Severity.CRITICAL,
                f"LC requires inspection by {required} but certificate issued by {reading.value}",
            )
        )
    return issues


def check_consignee(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """The B/L must be made out "to order", and if to order of someone, of the issuing bank.

    The bank counts as named when its full name or any distinctive word of it
    ("emirates", "nbd") appears; "bank", "of", "the" and the like do not count.
    """
    lc, bl = package.lc, package.bl
    if lc is None or bl is None:
        return []
    consignee_raw = bl.extracted_data.consignee
    bank_raw = lc.extracted_data.issuing_bank
    if not is_specified(consignee_raw) or not is_specified(bank_raw):
        return []

    consignee = consignee_raw.lower()
    bank = bank_raw.lower()
    documents = [DT.BILL_OF_LADING.label, DT.LETTER_OF_CREDIT.label]
    values = [f"B/L Consignee: {consignee_raw}", f"LC Issuing Bank: {bank_raw}"]

    if "to order" not in consignee:
        return _issue(
            "consignee",
            documents,
            values,
            Severity.CRITICAL,
            f'B/L not made "to order" - should be "TO ORDER" or "TO ORDER OF {bank_raw}" '
            "for LC presentation",
        )

    names_bank = bank in consignee or any(w in consignee for w in distinctive_words(bank))
    if "to order of" in consignee and not names_bank:
        return _issue(
            "consignee",
            documents,
            values,
            Severity.MAJOR,
            f'B/L made to order of wrong party - should be "TO ORDER OF {bank_raw}"',
        )
    return []


def check_vessel_name(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """If the LC nominates a vessel, the B/L must show it."""
    lc, bl = package.lc, package.bl
    if lc is None or bl is None:
        return []
    lc_vessel, bl_vessel = lc.extracted_data.vessel_name, bl.extracted_data.vessel_name
    if not is_specified(lc_vessel) or not is_specified(bl_vessel):
        return []
    if vessels_match(lc_vessel, bl_vessel):
        return []
    return _issue(
        "vesselName",
        [DT.LETTER_OF_CREDIT.label, DT.BILL_OF_LADING.label],
        [f"LC Vessel: {lc_vessel}", f"B/L Vessel: {bl_vessel}"],
        Severity.MAJOR,
        f'Vessel name mismatch - LC specifies "{lc_vessel}" but B/L shows "{bl_vessel}"',
    )


def check_insurance_coverage(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """Insured value must be at least 110% of the invoice (or, failing that, LC) amount."""
    certificate = package.first(DT.INSURANCE_CERTIFICATE)
    if certificate is None:
        return []
    insured = extract_number(certificate.extracted_data.insured_value)
    if not insured:
        return []

    reference_doc = None
    reference = None
    for candidate in (package.invoice, package.lc):
        if candidate is None:
            continue
        amount = extract_number(candidate.extracted_data.amount)
        if amount:
            reference_doc, reference = candidate, amount
            break
    if reference_doc is None or reference is None:
        return []

    if insured >= reference * MIN_INSURANCE_COVERAGE:
        return []
    coverage = insured / reference * 100
    return _issue(
        "insuranceValue",
        [DT.INSURANCE_CERTIFICATE.label, reference_doc.type.label],
        [
            f"Insured: {certificate.extracted_data.insured_value}",
            f"Reference: {reference_doc.extracted_data.amount}",
        ],
        Severity.MAJOR,
        f"Insurance coverage insufficient - {coverage:.0f}% of value "
        "(minimum 110% required for LC presentation)",
    )


def check_freight_notation(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    lc, bl = package.lc, package.bl
    if lc is None or bl is None:
        return []
    bl_raw, lc_raw = bl.extracted_data.freight_notation, lc.extracted_data.freight_notation
    if not is_specified(bl_raw) or not is_specified(lc_raw):
        return []

    bl_terms, lc_terms = bl_raw.lower(), lc_raw.lower()
    conflict = ("prepaid" in bl_terms and "collect" in lc_terms) or (
        "collect" in bl_terms and "prepaid" in lc_terms
    )
    if not conflict:
        return []
    return _issue(
        "freightNotation",
        [DT.BILL_OF_LADING.label, DT.LETTER_OF_CREDIT.label],
        [f"B/L: {bl_raw}", f"LC: {lc_raw}"],
        Severity.CRITICAL,
        "Freight notation mismatch - B/L shows different freight terms than LC requires",
    )


def check_carrier(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """UCP 600 Art. 20: the B/L names the carrier and is signed by carrier, master or agent."""
    bl = package.bl
    if bl is None:
        return []
    issues: list[CrossRefIssue] = []
    if bl.extracted_data.carrier_signature is False:
        issues.extend(
            _issue(
                "carrierSignature",
                [DT.BILL_OF_LADING.label],
                ["No carrier/master signature detected"],
                Severity.CRITICAL,
                "B/L must be signed by carrier, master, or named agent per UCP 600 Article 20",
            )
        )
    if not is_specified(bl.extracted_data.carrier_name):
        issues.extend(
            _issue(
                "carrierName",
                [DT.BILL_OF_LADING.label],
                ["Carrier name not found"],
                Severity.MAJOR,
                "B/L should indicate the name of the carrier per UCP 600",
            )
        )
    return issues


# Certificate type -> the date attribute that must not follow the B/L
_DATED_CERTIFICATES: tuple[tuple[DocumentType, str, str], ...] = (
    (DT.INSPECTION_CERTIFICATE, "inspection_date", "Inspection certificate"),
    (DT.CERTIFICATE_OF_ORIGIN, "issue_date", "Certificate of Origin"),
    (DT.CERTIFICATE_OF_QUALITY, "issue_date", "Quality certificate"),
)


def check_document_dating(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """Certificates about the shipment cannot postdate it by more than a day."""
    bl = package.bl
    bl_date = bl.extracted_data.shipment_date if bl is not None else None
    if bl_date is None:
        return []

    issues: list[CrossRefIssue] = []
    for document_type, attribute, name in _DATED_CERTIFICATES:
        certificate = package.first(document_type)
        if certificate is None:
            continue
        issued: Optional[date] = getattr(certificate.extracted_data, attribute)
        if issued is None:
            continue
        gap = (issued - bl_date).days
        if gap <= MAX_DATING_GAP_DAYS:
            continue
        issues.extend(
            _issue(
                "documentDating",
                [document_type.label, DT.BILL_OF_LADING.label],
                [f"{name}: {issued.isoformat()}", f"B/L: {bl_date.isoformat()}"],
                Severity.MAJOR,
                f"{name} dated {gap} days AFTER B/L - logically inconsistent",
            )
        )
    return issues


# ── Per-document-type template rules ──


def _vs_bl_vessel(
    package: DocumentPackage,
    *,
    field_name: str,
    document_type: DocumentType,
    vessel: Optional[str],
    severity: Severity,
    description: str,
) -> list[CrossRefIssue]:
    bl = package.bl
    bl_vessel = bl.extracted_data.vessel_name if bl is not None else None
    if not is_specified(vessel) or not is_specified(bl_vessel):
        return []
    if vessels_match(vessel, bl_vessel):
        return []
    return _issue(
        field_name,
        [document_type.label, DT.BILL_OF_LADING.label],
        [f"{document_type.label}: {vessel}", f"B/L: {bl_vessel}"],
        severity,
        description,
    )


def check_letter_of_indemnity(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    loi_doc = package.first(DT.LETTER_OF_INDEMNITY)
    loi = loi_doc.extracted_data.loi if loi_doc is not None else None
    if loi is None:
        return []

    issues = _vs_bl_vessel(
        package,
        field_name="loiVesselName",
        document_type=DT.LETTER_OF_INDEMNITY,
        vessel=loi.vessel_name,
        severity=Severity.CRITICAL,
        description="LOI vessel name does not match B/L - bank will reject",
    )

    bl = package.bl
    actual = bl.extracted_data.bl_number if bl is not None else None
    if is_specified(loi.bl_number) and is_specified(actual):
        referenced, real = normalize_reference(loi.bl_number), normalize_reference(actual)
        if referenced != real and referenced not in real and real not in referenced:
            issues.extend(
                _issue(
                    "loiBlNumber",
                    [DT.LETTER_OF_INDEMNITY.label, DT.BILL_OF_LADING.label],
                    [f"LOI references: {loi.bl_number}", f"Actual B/L: {actual}"],
                    Severity.CRITICAL,
                    "LOI references wrong B/L number",
                )
            )
    return issues


def check_weight_out_turn(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """Loaded weight against the B/L, then transit loss or gain against itself."""
    wot_doc = package.first(DT.WEIGHT_OUT_TURN)
    wot = wot_doc.extracted_data.weight_out_turn if wot_doc is not None else None
    if wot is None:
        return []

    issues: list[CrossRefIssue] = []
    loading = extract_number(wot.loading_weight)
    discharge = extract_number(wot.discharge_weight)

    bl = package.bl
    bl_weight = extract_number(bl.extracted_data.weight) if bl is not None else None
    if loading and bl_weight:
        diff = abs(loading - bl_weight) / bl_weight
        if diff > WOT_LOADING_TOLERANCE:
            issues.extend(
                _issue(
                    "wotLoadingWeight",
                    [DT.WEIGHT_OUT_TURN.label, DT.BILL_OF_LADING.label],
                    [f"WOT Loading: {wot.loading_weight}", f"B/L Weight: {bl.extracted_data.weight}"],
                    Severity.MAJOR,
                    f"WOT loading weight differs from B/L by {diff * 100:.2f}% (max 0.5% tolerance)",
                )
            )

    if loading and discharge:
        loss = (loading - discharge) / loading
        values = [f"Loading: {wot.loading_weight}", f"Discharge: {wot.discharge_weight}"]
        if loss > WOT_SHORTAGE_TOLERANCE:
            issues.extend(
                _issue(
                    "wotShortage",
                    [DT.WEIGHT_OUT_TURN.label],
                    values,
                    Severity.MAJOR,
                    f"Transit loss of {loss * 100:.2f}% exceeds typical 0.5% tolerance - "
                    "may trigger cargo claims",
                )
            )
        elif loss < -WOT_OVERAGE_TOLERANCE:
            issues.extend(
                _issue(
                    "wotOverage",
                    [DT.WEIGHT_OUT_TURN.label],
                    values,
                    Severity.MINOR,
                    f"Discharge weight exceeds loading by {abs(loss) * 100:.2f}% - "
                    "unusual, verify measurements",
                )
            )
    return issues


def check_export_license(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    licence_doc = package.first(DT.EXPORT_LICENSE)
    licence = licence_doc.extracted_data.export_license if licence_doc is not None else None
    if licence is None:
        return []

    issues: list[CrossRefIssue] = []
    lc = package.lc
    beneficiary = lc.extracted_data.beneficiary if lc is not None else None
    if is_specified(licence.exporter) and is_specified(beneficiary):
        if not names_match(licence.exporter, beneficiary):
            issues.extend(
                _issue(
                    "exportLicenseExporter",
                    [DT.EXPORT_LICENSE.label, DT.LETTER_OF_CREDIT.label],
                    [f"License: {licence.exporter}", f"LC Beneficiary: {beneficiary}"],
                    Severity.CRITICAL,
                    "Export license exporter does not match LC beneficiary - sanctions risk",
                )
            )

    if licence.valid_until is not None and licence.valid_until < context.today:
        issues.extend(
            _issue(
                "exportLicenseExpiry",
                [DT.EXPORT_LICENSE.label],
                [f"Valid until: {licence.valid_until.isoformat()}"],
                Severity.CRITICAL,
                "Export license has expired",
            )
        )
    return issues


def check_ownership(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    ownership_doc = package.first(DT.CERTIFICATE_OF_OWNERSHIP)
    ownership = ownership_doc.extracted_data.ownership if ownership_doc is not None else None
    if ownership is None:
        return []

    issues: list[CrossRefIssue] = []
    lc = package.lc
    applicant = lc.extracted_data.applicant if lc is not None else None
    if is_specified(ownership.buyer) and is_specified(applicant):
        if not names_match(ownership.buyer, applicant):
            issues.extend(
                _issue(
                    "ownershipBuyer",
                    [DT.CERTIFICATE_OF_OWNERSHIP.label, DT.LETTER_OF_CREDIT.label],
                    [f"Cert Buyer: {ownership.buyer}", f"LC Applicant: {applicant}"],
                    Severity.MAJOR,
                    "Ownership certificate buyer does not match LC applicant",
                )
            )

    issues.extend(
        _vs_bl_vessel(
            package,
            field_name="ownershipVessel",
            document_type=DT.CERTIFICATE_OF_OWNERSHIP,
            vessel=ownership.vessel,
            severity=Severity.MAJOR,
            description="Ownership certificate vessel does not match B/L",
        )
    )
    return issues


def check_tank_cleanliness(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    certificate = package.first(DT.TANK_CLEANLINESS_CERTIFICATE)
    tanks = certificate.extracted_data.tank_cleanliness if certificate is not None else None
    if tanks is None:
        return []

    issues = _vs_bl_vessel(
        package,
        field_name="tankCleanlinessVessel",
        document_type=DT.TANK_CLEANLINESS_CERTIFICATE,
        vessel=tanks.vessel,
        severity=Severity.MAJOR,
        description="Tank cleanliness certificate vessel does not match B/L",
    )

    bl = package.bl
    bl_date = bl.extracted_data.shipment_date if bl is not None else None
    if tanks.inspection_date is not None and bl_date is not None and tanks.inspection_date > bl_date:
        issues.extend(
            _issue(
                "tankCleanlinessDate",
                [DT.TANK_CLEANLINESS_CERTIFICATE.label, DT.BILL_OF_LADING.label],
                [f"Inspection: {tanks.inspection_date.isoformat()}", f"B/L: {bl_date.isoformat()}"],
                Severity.CRITICAL,
                "Tank cleanliness inspection dated AFTER B/L - tanks must be inspected before loading",
            )
        )
    return issues


def check_vessel_documents(package: DocumentPackage, context: RuleContext) -> list[CrossRefIssue]:
    """Manifest, Q88, time log, master's receipt, charter party, dip test: same vessel as the B/L."""
    issues: list[CrossRefIssue] = []
    for document_type in VESSEL_DOCUMENTS:
        document = package.first(document_type)
        if document is None:
            continue
        issues.extend(
            _vs_bl_vessel(
                package,
                field_name=f"{to_camel(document_type.value)}VesselName",
                document_type=document_type,
                vessel=document.extracted_data.vessel_name,
                severity=Severity.MAJOR,
                description=f"{document_type.label} vessel does not match B/L",
            )
        )
    return issues


# ─── Rule Sets ───────────────────────────────────────────────────────

COMMON_RULES: tuple[Rule, ...] = (
    check_amount,
    check_port_of_loading,
    check_port_of_discharge,
    check_beneficiary,
    check_lc_number,
    check_quantity,
    check_goods_description,
    check_shipped_on_board,
    check_packing_list_math,
    check_ullage_math,
    check_invoice_math,
)

LC_RULES: tuple[Rule, ...] = (
    check_shipment_vs_expiry,
    check_lc_expired,
    check_late_shipment,
    check_inspection_company,
    check_consignee,
    check_vessel_name,
    check_insurance_coverage,
    check_freight_notation,
    check_carrier,
    check_document_dating,
    check_letter_of_indemnity,
    check_weight_out_turn,
    check_export_license,
    check_ownership,
    check_tank_cleanliness,
    check_vessel_documents,
)
