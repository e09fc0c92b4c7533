"""
Document Result Assembler - wraps one extraction response into a DocumentResult.

The extraction service may return anything: valid JSON, JSON wrapped in
prose or code fences, JSON with wrong types, or nothing at all. One bad
document must never abort the package, so every failure here degrades to a
WAIT result carrying whatever the regex date scan could recover.

Dates found by the regex scan always overwrite the model's own guesses for
latest shipment, expiry and shipment date. After that the result is frozen.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from .dates import extract_dates_from_text
from .models import (
    FIELD_GROUP_DOCUMENT_TYPES,
    GROUPED_KEYS,
    DocumentResult,
    DocumentType,
    ExtractedData,
    Issue,
    Severity,
    Verdict,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def assemble_document_result(
    document_type: DocumentType,
    raw_text: str,
    response: Optional[str],
) -> DocumentResult:
    """Build the DocumentResult for one document.

    Args:
        document_type: Declared type of the document.
        raw_text: The document text as submitted.
        response: Raw extraction response text, or None if extraction was
            skipped or failed.
    """
    deterministic_dates = extract_dates_from_text(raw_text)

    payload = parse_payload(response)
    if payload is None:
        if response is not None:
            logger.warning("Unparseable extraction response for %s - falling back", document_type.value)
        return _fallback(document_type, raw_text, response, deterministic_dates)

    extracted = _coerce_extracted_data(payload.get("extractedData"), document_type)
    if extracted is None:
        return _fallback(document_type, raw_text, response, deterministic_dates)

    # Regex dates are authoritative over the model's guesses
    if deterministic_dates:
        extracted = extracted.model_copy(update=deterministic_dates)

    analysis = payload.get("analysis")
    return DocumentResult(
        type=document_type,
        verdict=_coerce_verdict(payload.get("verdict")),
        issues=_coerce_issues(payload.get("issues")),
        extracted_data=extracted,
        analysis=analysis if isinstance(analysis, str) else (response or ""),
        raw_text=raw_text,
    )


def parse_payload(response: Optional[str]) -> Optional[dict[str, Any]]:
    """Pull the outermost JSON object out of a response. None if there isn't one."""
    if not response:
        return None
    match = _JSON_OBJECT_RE.search(response)
    if match is None:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


# ─── Coercion Helpers ────────────────────────────────────────────────


def _fallback(
    document_type: DocumentType,
    raw_text: str,
    response: Optional[str],
    deterministic_dates: dict,
) -> DocumentResult:
    return DocumentResult(
        type=document_type,
        verdict=Verdict.WAIT,
        issues=[],
        extracted_data=ExtractedData(**deterministic_dates),
        analysis=response or "Automatic extraction unavailable - deterministic checks only.",
        raw_text=raw_text,
    )


def _coerce_verdict(value: object) -> Verdict:
    try:
        return Verdict(str(value).upper())
    except ValueError:
        return Verdict.WAIT


def _coerce_issues(value: object) -> list[Issue]:
    """Keep every well-formed issue; unknown severities count as major."""
    if not isinstance(value, list):
        return []

    issues: list[Issue] = []
    for item in value:
        if not isinstance(item, dict) or not item.get("description"):
            continue
        severity = str(item.get("severity", "")).lower()
        if severity not in {s.value for s in Severity}:
            logger.warning("Unknown issue severity %r - treating as major", item.get("severity"))
            severity = Severity.MAJOR.value
        issues.append(
            Issue(
                type=str(item.get("type") or "unspecified"),
                severity=Severity(severity),
                description=str(item["description"]),
            )
        )
    return issues


def _coerce_extracted_data(value: object, document_type: DocumentType) -> Optional[ExtractedData]:
    """Validate extractedData, dropping fields that fail validation.

    Returns None only if the payload is not an object at all or still fails
    after the offending fields are removed.
    """
    if value is None:
        return ExtractedData()
    if not isinstance(value, dict):
        logger.warning("extractedData for %s is not an object", document_type.value)
        return None

    data = dict(value)
    try:
        extracted = ExtractedData.model_validate(data)
    except ValidationError as e:
        bad_keys = _invalid_keys(e, data)
        logger.warning(
            "Dropping invalid extracted fields for %s: %s",
            document_type.value,
            sorted(bad_keys),
        )
        try:
            extracted = ExtractedData.model_validate(
                {k: v for k, v in data.items() if k not in bad_keys}
            )
        except ValidationError:
            return None

    return _strip_foreign_groups(extracted, document_type)


def _strip_foreign_groups(extracted: ExtractedData, document_type: DocumentType) -> ExtractedData:
    """Drop sub-records that belong to a different document type."""
    foreign = {
        group: None
        for group, owner in FIELD_GROUP_DOCUMENT_TYPES.items()
        if owner != document_type and getattr(extracted, group) is not None
    }
    return extracted.model_copy(update=foreign) if foreign else extracted


def _invalid_keys(error: ValidationError, data: dict[str, Any]) -> set[str]:
    """Input keys responsible for a validation error.

    A failing sub-record is reported under its group name, so the flat
    collaborator keys that were lifted into it are dropped too.
    """
    failed = {str(err["loc"][0]) for err in error.errors() if err["loc"]}
    failed_groups = {to_snake(name) for name in failed}
    lifted = {
        key for key, (group, _) in GROUPED_KEYS.items()
        if key in data and group in failed_groups
    }
    return failed | lifted
