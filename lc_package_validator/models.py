"""
Pydantic models for document packages - strict typing as our first line of defense.

Every collaborator payload passes through these models. Everything the
extraction service may omit is Optional: absence means "no opinion", and
the rule set never treats a missing value as a mismatch.

Records are frozen once built. A DocumentResult is read-only for the rest of
the pipeline, and so is the PackageVerdict handed to persistence.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .dates import parse_date


# ─── Base Model ─────────────────────────────────────────────────────


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire (collaborator + HTTP contract)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
    )


# ─── Enumerations ───────────────────────────────────────────────────


class Severity(str, Enum):
    """Severity of an issue. Ordering is total: critical > major > minor."""

    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.MINOR: 1, Severity.MAJOR: 2, Severity.CRITICAL: 3}


class Verdict(str, Enum):
    GO = "GO"  # Present to the bank
    WAIT = "WAIT"  # Needs review or amendment
    NO_GO = "NO_GO"  # Bank will reject


class PaymentMode(str, Enum):
    LC = "lc"
    NO_LC = "no_lc"


class Channel(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class DocumentType(str, Enum):
    """Closed set of document kinds. Rules branch on these values."""

    # Core documents
    LETTER_OF_CREDIT = "letter_of_credit"
    BILL_OF_LADING = "bill_of_lading"
    COMMERCIAL_INVOICE = "commercial_invoice"
    PACKING_LIST = "packing_list"
    CERTIFICATE_OF_ORIGIN = "certificate_of_origin"
    # Oil & gas documents
    CERTIFICATE_OF_QUALITY = "certificate_of_quality"
    CERTIFICATE_OF_QUANTITY = "certificate_of_quantity"
    INSURANCE_CERTIFICATE = "insurance_certificate"
    INSPECTION_CERTIFICATE = "inspection_certificate"
    BILL_OF_EXCHANGE = "bill_of_exchange"
    BENEFICIARY_CERTIFICATE = "beneficiary_certificate"
    VESSEL_NOMINATION = "vessel_nomination"
    ULLAGE_REPORT = "ullage_report"
    TANK_CALIBRATION_CERTIFICATE = "tank_calibration_certificate"
    LOADING_CERTIFICATE = "loading_certificate"
    WEIGHT_CERTIFICATE = "weight_certificate"
    NON_MANIPULATION_CERTIFICATE = "non_manipulation_certificate"
    NOTICE_OF_READINESS = "notice_of_readiness"
    LETTER_OF_INDEMNITY = "letter_of_indemnity"
    WEIGHT_OUT_TURN = "weight_out_turn"
    EXPORT_LICENSE = "export_license"
    CERTIFICATE_OF_OWNERSHIP = "certificate_of_ownership"
    CARGO_MANIFEST = "cargo_manifest"
    VESSEL_Q88 = "vessel_q88"
    TIME_LOG = "time_log"
    MASTERS_RECEIPT = "masters_receipt"
    TANK_CLEANLINESS_CERTIFICATE = "tank_cleanliness_certificate"
    CHARTER_PARTY = "charter_party"
    DIP_TEST_REPORT = "dip_test_report"

    @property
    def label(self) -> str:
        """Display name used in cross-reference issues."""
        return _LABELS.get(self, self.value.replace("_", " ").title().replace(" Of ", " of "))


_LABELS = {
    DocumentType.LETTER_OF_CREDIT: "LC",
    DocumentType.BILL_OF_LADING: "B/L",
    DocumentType.COMMERCIAL_INVOICE: "Invoice",
    DocumentType.LETTER_OF_INDEMNITY: "LOI",
    DocumentType.WEIGHT_OUT_TURN: "WOT",
    DocumentType.VESSEL_Q88: "Vessel Q88",
    DocumentType.MASTERS_RECEIPT: "Master's Receipt",
    DocumentType.TANK_CLEANLINESS_CERTIFICATE: "Tank Cleanliness Cert",
}


# ─── Issues ─────────────────────────────────────────────────────────


class Issue(CamelModel):
    """A document-internal issue reported by the extraction service."""

    type: str
    severity: Severity
    description: str


class CrossRefIssue(CamelModel):
    """A discrepancy found by comparing one field across documents.

    `documents` and `values` are parallel: which documents disagreed and what
    each one said.
    """

    field: str
    documents: list[str]
    values: list[str]
    severity: Severity
    description: str


# ─── Line Items ─────────────────────────────────────────────────────


class PackingListItem(CamelModel):
    description: Optional[str] = None
    cartons: Optional[Decimal] = None
    net_weight: Optional[Decimal] = None
    gross_weight: Optional[Decimal] = None


class UllageItem(CamelModel):
    tank_name: Optional[str] = None  # e.g. "1P", "2S"
    volume: Optional[Decimal] = None
    temperature: Optional[Decimal] = None


class InvoiceLineItem(CamelModel):
    description: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    line_total: Optional[Decimal] = None


# ─── Per-Document-Type Field Groups ─────────────────────────────────


def _optional_date(value: object) -> date | None:
    """Run collaborator date text through the Date Normalizer."""
    if value is None or isinstance(value, date):
        return value
    return parse_date(str(value))


class LetterOfIndemnityFields(CamelModel):
    beneficiary: Optional[str] = None  # Party indemnified (carrier, bank)
    indemnifier: Optional[str] = None  # Party giving the indemnity
    vessel_name: Optional[str] = None
    bl_number: Optional[str] = None  # B/L being replaced
    cargo_description: Optional[str] = None
    indemnity_value: Optional[str] = None


class WeightOutTurnFields(CamelModel):
    loading_weight: Optional[str] = None
    discharge_weight: Optional[str] = None
    difference: Optional[str] = None
    vessel_name: Optional[str] = None
    cargo_description: Optional[str] = None


class ExportLicenseFields(CamelModel):
    number: Optional[str] = None
    exporter: Optional[str] = None
    goods: Optional[str] = None
    destination: Optional[str] = None
    valid_until: Optional[date] = None

    parse_dates = field_validator("valid_until", mode="before")(_optional_date)


class OwnershipFields(CamelModel):
    seller: Optional[str] = None
    buyer: Optional[str] = None
    vessel: Optional[str] = None
    cargo: Optional[str] = None


class TankCleanlinessFields(CamelModel):
    vessel: Optional[str] = None
    inspection_date: Optional[date] = None
    inspector: Optional[str] = None

    parse_dates = field_validator("inspection_date", mode="before")(_optional_date)


# Flat collaborator key -> (group attribute, field inside the group).
# The extraction service returns one flat object; each prefix belongs to one
# document type and is lifted into that type's sub-record.
GROUPED_KEYS: dict[str, tuple[str, str]] = {
    "loiBeneficiary": ("loi", "beneficiary"),
    "loiIndemnifier": ("loi", "indemnifier"),
    "loiVesselName": ("loi", "vessel_name"),
    "loiBlNumber": ("loi", "bl_number"),
    "loiCargoDescription": ("loi", "cargo_description"),
    "loiIndemnityValue": ("loi", "indemnity_value"),
    "wotLoadingWeight": ("weight_out_turn", "loading_weight"),
    "wotDischargeWeight": ("weight_out_turn", "discharge_weight"),
    "wotDifference": ("weight_out_turn", "difference"),
    "wotVesselName": ("weight_out_turn", "vessel_name"),
    "wotCargoDescription": ("weight_out_turn", "cargo_description"),
    "exportLicenseNumber": ("export_license", "number"),
    "exportLicenseExporter": ("export_license", "exporter"),
    "exportLicenseGoods": ("export_license", "goods"),
    "exportLicenseDestination": ("export_license", "destination"),
    "exportLicenseValidUntil": ("export_license", "valid_until"),
    "ownershipSeller": ("ownership", "seller"),
    "ownershipBuyer": ("ownership", "buyer"),
    "ownershipVessel": ("ownership", "vessel"),
    "ownershipCargo": ("ownership", "cargo"),
    "tankCleanlinessVessel": ("tank_cleanliness", "vessel"),
    "tankCleanlinessDate": ("tank_cleanliness", "inspection_date"),
    "tankCleanlinessInspector": ("tank_cleanliness", "inspector"),
}

# Group attribute -> the document type whose fields it holds
FIELD_GROUP_DOCUMENT_TYPES: dict[str, DocumentType] = {
    "loi": DocumentType.LETTER_OF_INDEMNITY,
    "weight_out_turn": DocumentType.WEIGHT_OUT_TURN,
    "export_license": DocumentType.EXPORT_LICENSE,
    "ownership": DocumentType.CERTIFICATE_OF_OWNERSHIP,
    "tank_cleanliness": DocumentType.TANK_CLEANLINESS_CERTIFICATE,
}


# ─── Extracted Data ─────────────────────────────────────────────────


class ExtractedData(CamelModel):
    """Structured fields extracted from one document.

    Every field is Optional because the extraction service may omit anything.
    Dates are canonical `date`s; unparseable date text becomes None.
    """

    # Core fields
    amount: Optional[str] = None
    currency: Optional[str] = None
    beneficiary: Optional[str] = None
    applicant: Optional[str] = None
    port_of_loading: Optional[str] = None
    port_of_discharge: Optional[str] = None
    goods_description: Optional[str] = None
    quantity: Optional[str] = None
    weight: Optional[str] = None
    expiry_date: Optional[date] = None
    latest_shipment_date: Optional[date] = None
    shipment_date: Optional[date] = None
    vessel_name: Optional[str] = None
    bl_number: Optional[str] = None
    lc_number: Optional[str] = None
    invoice_number: Optional[str] = None

    # Oil & gas fields
    api_gravity: Optional[str] = None
    sulfur_content: Optional[str] = None
    vessel_imo: Optional[str] = None
    inspection_company: Optional[str] = None
    loading_date: Optional[date] = None
    insured_value: Optional[str] = None
    certificate_number: Optional[str] = None

    # LC presentation fields
    required_inspection_company: Optional[str] = None  # LC only
    consignee: Optional[str] = None  # B/L only, e.g. "TO ORDER OF BANK X"
    quantity_tolerance: Optional[str] = None  # LC only, e.g. "+/- 10%"
    shipped_on_board: Optional[bool] = None  # B/L only
    issuing_bank: Optional[str] = None  # LC only
    freight_notation: Optional[str] = None
    carrier_name: Optional[str] = None
    carrier_signature: Optional[bool] = None

    # Dates used by the dating-consistency checks
    invoice_date: Optional[date] = None
    issue_date: Optional[date] = None
    inspection_date: Optional[date] = None

    # Per-document-type groups
    loi: Optional[LetterOfIndemnityFields] = None
    weight_out_turn: Optional[WeightOutTurnFields] = None
    export_license: Optional[ExportLicenseFields] = None
    ownership: Optional[OwnershipFields] = None
    tank_cleanliness: Optional[TankCleanlinessFields] = None

    # Line items: the model extracts the rows, code sums them
    packing_list_items: Optional[list[PackingListItem]] = None
    packing_list_total_net: Optional[Decimal] = None
    packing_list_total_gross: Optional[Decimal] = None
    ullage_items: Optional[list[UllageItem]] = None
    ullage_total_volume: Optional[Decimal] = None
    invoice_line_items: Optional[list[InvoiceLineItem]] = None
    invoice_printed_total: Optional[Decimal] = None

    parse_dates = field_validator(
        "expiry_date",
        "latest_shipment_date",
        "shipment_date",
        "loading_date",
        "invoice_date",
        "issue_date",
        "inspection_date",
        mode="before",
    )(_optional_date)

    @model_validator(mode="before")
    @classmethod
    def _lift_grouped_keys(cls, data: Any) -> Any:
        """Move flat `loiVesselName`-style keys into their sub-record."""
        if not isinstance(data, dict):
            return data
        flat_keys = [k for k in data if k in GROUPED_KEYS]
        if not flat_keys:
            return data

        lifted = dict(data)
        for key in flat_keys:
            group, field_name = GROUPED_KEYS[key]
            value = lifted.pop(key)
            if value is None:
                continue
            existing = lifted.get(group) or lifted.get(to_camel(group)) or {}
            if isinstance(existing, BaseModel):
                existing = existing.model_dump()
            elif not isinstance(existing, dict):
                # A scalar where the sub-record belongs: keep only the flat keys
                existing = {}
            merged = dict(existing)
            merged[field_name] = value
            lifted.pop(to_camel(group), None)
            lifted[group] = merged
        return lifted


# ─── Document Result ────────────────────────────────────────────────


class DocumentResult(CamelModel):
    """One input document after extraction and date override. Read-only."""

    type: DocumentType
    verdict: Verdict = Verdict.WAIT
    issues: list[Issue] = Field(default_factory=list)
    extracted_data: ExtractedData = Field(default_factory=ExtractedData)
    analysis: str = ""
    raw_text: str = ""


# ─── Package Input / Output ─────────────────────────────────────────


class DocumentInput(CamelModel):
    type: DocumentType
    text: str


class PackageInput(CamelModel):
    documents: list[DocumentInput] = Field(..., min_length=1)
    client_identifier: str
    channel: Channel = Channel.EMAIL


class PackageVerdict(CamelModel):
    """The terminal artifact of the pipeline, handed to persistence."""

    package_id: str
    overall_verdict: Verdict
    document_results: list[DocumentResult] = Field(default_factory=list)
    cross_reference_issues: list[CrossRefIssue] = Field(default_factory=list)
    recommendation: str
    payment_mode: PaymentMode
