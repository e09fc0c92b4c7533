"""
LLM-based field extraction using OpenAI structured output.

The LLM reads one document and returns its fields as JSON. We never trust it
blindly: the response is parsed defensively by the assembler, its dates are
overridden by deterministic regex extraction, and every cross-document
comparison happens in code.

Design:
  - JSON mode enforced (structured output, not free text)
  - One call per document, no memory, no cross-document context
  - No API key -> extract() returns None -> the assembler falls back to a
    WAIT result with deterministic dates only
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from openai import OpenAI, OpenAIError

from .config import Settings
from .exceptions import ExtractionError
from .models import DocumentType

logger = logging.getLogger(__name__)


class FieldExtractor(Protocol):
    """Anything that turns (document type, raw text) into a JSON response."""

    def extract(self, document_type: DocumentType, text: str) -> Optional[str]:
        ...


# ─── System Prompt ───────────────────────────────────────────────────

SYSTEM_PROMPT = """\
You are a trade-finance document data extractor. You analyse ONE document
from a complete documentary-credit package. Other documents (LC, B/L,
invoice, certificates) are analysed separately; cross-document checks happen
later in code.

Extract data from THIS document and check its INTERNAL consistency only.

CRITICAL RULES:
1. Extract EXACTLY what is written. Do NOT correct errors or inconsistencies.
2. Do not infer or hallucinate values for missing fields. Omit them.
3. Dates as YYYY-MM-DD. Never compute relative dates.
4. Do NOT complain about other documents missing from the package.

Respond with one JSON object:
{
  "verdict": "GO" | "WAIT" | "NO_GO",
  "issues": [{"type": "issue_type", "severity": "minor|major|critical", "description": "..."}],
  "extractedData": { ...fields below... },
  "analysis": "Brief analysis of completeness and internal issues."
}

extractedData keys (all optional):
amount, currency, beneficiary, applicant, portOfLoading, portOfDischarge,
goodsDescription, quantity, weight, expiryDate, latestShipmentDate,
shipmentDate, vesselName, blNumber, lcNumber, invoiceNumber, apiGravity,
sulfurContent, vesselImo, inspectionCompany, loadingDate, insuredValue,
certificateNumber, requiredInspectionCompany, consignee, quantityTolerance,
shippedOnBoard, issuingBank, freightNotation, carrierName, carrierSignature,
invoiceDate, issueDate, inspectionDate,
loiBeneficiary, loiIndemnifier, loiVesselName, loiBlNumber,
loiCargoDescription, loiIndemnityValue,
wotLoadingWeight, wotDischargeWeight, wotDifference, wotVesselName,
wotCargoDescription,
exportLicenseNumber, exportLicenseExporter, exportLicenseGoods,
exportLicenseDestination, exportLicenseValidUntil,
ownershipSeller, ownershipBuyer, ownershipVessel, ownershipCargo,
tankCleanlinessVessel, tankCleanlinessDate, tankCleanlinessInspector,
packingListItems, packingListTotalNet, packingListTotalGross,
ullageItems, ullageTotalVolume, invoiceLineItems, invoicePrintedTotal

SPECIAL EXTRACTION RULES:
- requiredInspectionCompany, quantityTolerance, issuingBank: ONLY from an LC
  ("inspection by SGS", "+/- 10%", "5 PCT MORE OR LESS", field 39A).
- consignee: ONLY from a B/L ("TO ORDER OF [BANK]" or "CONSIGNEE: [NAME]").
- shippedOnBoard: ONLY from a B/L. true if "SHIPPED ON BOARD" or "LADEN ON
  BOARD" appears, false if only "RECEIVED FOR SHIPMENT".
- freightNotation, carrierName, carrierSignature: from a B/L. carrierSignature
  is true if signed by carrier, master or named agent.
- vesselName: from an LC only if a vessel is nominated; always from a B/L.
- insuredValue: ONLY from an insurance certificate ("Sum Insured").
- loi*, wot*, exportLicense*, ownership*, tankCleanliness*: ONLY from the
  letter of indemnity, weight out-turn, export license, certificate of
  ownership and tank cleanliness certificate respectively.
- beneficiary: LC = seller receiving payment. B/L = the SHIPPER (not the
  consignee). Invoice = seller issuing it. Certificates = party the
  certificate was issued for.

LINE ITEMS (numbers, not strings; extract EVERY row):
- packingListItems: [{"description", "cartons", "netWeight", "grossWeight"}]
  with packingListTotalNet / packingListTotalGross as printed.
- ullageItems: [{"tankName", "volume", "temperature"}] with ullageTotalVolume.
- invoiceLineItems: [{"description", "quantity", "unitPrice", "lineTotal"}]
  with invoicePrintedTotal.
Do NOT add the rows up yourself.

VERDICT: GO = complete and internally consistent. WAIT = minor issues or
missing optional fields. NO_GO = critical internal problems (corrupted,
unsigned, invalid dates).
"""


class OpenAIFieldExtractor:
    """Field extraction collaborator backed by the OpenAI chat API."""

    def __init__(self, settings: Settings, client: OpenAI | None = None):
        self.model = settings.extraction_model
        if client is not None:
            self._client: OpenAI | None = client
        elif settings.online:
            self._client = OpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.extraction_timeout,
            )
        else:
            self._client = None

    def extract(self, document_type: DocumentType, text: str) -> Optional[str]:
        """Return the raw JSON response text, or None in offline mode.

        Raises:
            ExtractionError: the API call failed or returned no content.
        """
        if self._client is None:
            logger.info(
                "No OPENAI_API_KEY set - skipping extraction for %s (deterministic dates only)",
                document_type.value,
            )
            return None

        doc_name = document_type.value.replace("_", " ")
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Document type: {doc_name}\n\nDOCUMENT:\n{text}",
                    },
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except OpenAIError as e:
            raise ExtractionError(
                f"Extraction call failed for {doc_name}: {e}",
                {"document_type": document_type.value},
            ) from e

        content = response.choices[0].message.content
        if not content:
            raise ExtractionError(
                f"Extraction returned empty content for {doc_name}",
                {"document_type": document_type.value},
            )
        logger.info("Extraction succeeded for %s", doc_name)
        return content
