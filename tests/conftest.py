"""Shared fakes and a clean reference package for pipeline and API tests."""

from __future__ import annotations

import copy
import json
import threading
from datetime import date
from typing import Any

import pytest

from lc_package_validator.comparator import GoodsComparison
from lc_package_validator.config import Settings
from lc_package_validator.models import DocumentInput, DocumentType, PackageInput
from lc_package_validator.persistence import InMemoryPackageStore
from lc_package_validator.pipeline import PackageValidationPipeline

TODAY = date(2026, 10, 18)


class StaticExtractor:
    """Returns a canned extraction response per document type."""

    def __init__(self, payloads: dict[DocumentType, dict[str, Any]]):
        self.payloads = payloads
        self.calls: list[DocumentType] = []
        self._lock = threading.Lock()

    def extract(self, document_type: DocumentType, text: str) -> str | None:
        with self._lock:
            self.calls.append(document_type)
        extracted = self.payloads.get(document_type)
        if extracted is None:
            return None
        return json.dumps(
            {"verdict": "GO", "issues": [], "extractedData": extracted, "analysis": "Complete."}
        )


class AgreeingComparator:
    def compare(self, lc_description, other_description, strictness):
        return GoodsComparison(matches=True, reason="Same product")


CLEAN_PAYLOADS: dict[DocumentType, dict[str, Any]] = {
    DocumentType.LETTER_OF_CREDIT: {
        "amount": "USD 1,000,000.00",
        "beneficiary": "Acme Petroleum Trading LLC",
        "applicant": "Gulf Refining FZE",
        "portOfLoading": "Houston, USA",
        "portOfDischarge": "Jebel Ali, UAE",
        "goodsDescription": "MURBAN CRUDE OIL",
        "quantity": "500,000 BBL",
        "lcNumber": "LC-2026/00456",
        "issuingBank": "EMIRATES NBD BANK PJSC",
        "expiryDate": "2026-12-15",
        "latestShipmentDate": "2026-11-30",
        "freightNotation": "FREIGHT PREPAID",
    },
    DocumentType.BILL_OF_LADING: {
        "beneficiary": "ACME PETROLEUM TRADING",
        "portOfLoading": "HOUSTON TERMINAL",
        "portOfDischarge": "Jebel Ali",
        "goodsDescription": "CRUDE OIL",
        "quantity": "500,000 BBL",
        "lcNumber": "LC-2026/00456",
        "consignee": "TO ORDER OF EMIRATES NBD BANK PJSC",
        "shippedOnBoard": True,
        "carrierName": "Maersk Tankers",
        "carrierSignature": True,
        "shipmentDate": "2026-11-02",
        "freightNotation": "FREIGHT PREPAID",
        "vesselName": "MT Gulf Star",
    },
    DocumentType.COMMERCIAL_INVOICE: {
        "amount": "USD 1,000,000.00",
        "beneficiary": "Acme Petroleum Trading LLC",
        "portOfLoading": "Houston, USA",
        "portOfDischarge": "Jebel Ali, UAE",
        "goodsDescription": "MURBAN CRUDE OIL",
        "quantity": "500,000 BBL",
        "lcNumber": "LC-2026/00456",
    },
}

DOCUMENT_TEXTS: dict[DocumentType, str] = {
    DocumentType.LETTER_OF_CREDIT: "IRREVOCABLE DOCUMENTARY LETTER OF CREDIT LC-2026/00456",
    DocumentType.BILL_OF_LADING: "BILL OF LADING HOU-7781",
    DocumentType.COMMERCIAL_INVOICE: "COMMERCIAL INVOICE INV-2026-88",
    DocumentType.PACKING_LIST: "PACKING LIST PL-2026-88",
    DocumentType.CERTIFICATE_OF_ORIGIN: "CERTIFICATE OF ORIGIN CO-2026-12",
}


@pytest.fixture
def clean_payloads() -> dict[DocumentType, dict[str, Any]]:
    return copy.deepcopy(CLEAN_PAYLOADS)


@pytest.fixture
def store() -> InMemoryPackageStore:
    return InMemoryPackageStore()


@pytest.fixture
def make_pipeline():
    """Factory: an offline pipeline over canned extraction payloads."""

    def _make(payloads=None, extractor=None, comparator=None, store=None, embedder=None, settings=None):
        return PackageValidationPipeline(
            settings=settings or Settings(),
            extractor=extractor or StaticExtractor(payloads or {}),
            comparator=comparator or AgreeingComparator(),
            store=store,
            embedder=embedder,
            today=TODAY,
        )

    return _make


@pytest.fixture
def make_package():
    """Factory: a PackageInput holding one document per type, in the given order."""

    def _make(*types: DocumentType, texts: dict[DocumentType, str] | None = None) -> PackageInput:
        merged = {**DOCUMENT_TEXTS, **(texts or {})}
        return PackageInput(
            documents=[DocumentInput(type=t, text=merged[t]) for t in types],
            client_identifier="ops@acme-petroleum.example",
        )

    return _make
