"""
Deterministic date parsing and label-driven date extraction.

Language models mis-transcribe dates and invent relative ones ("30 days after
B/L"). Every date the rules compare goes through this module instead:
pure regex, a fixed format priority list, absolute calendar dates.

Numeric dates are always read day-first (DD/MM/YYYY). "03/04/2026" is the
3rd of April; we do not try to guess otherwise.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, Optional

# ─── Month Names ─────────────────────────────────────────────────────

MONTHS: dict[str, int] = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}


def _numeric(year: str, month: str, day: str) -> date:
    return date(int(year), int(month), int(day))


def _named(year: str, month_name: str, day: str) -> date:
    month = MONTHS.get(month_name.lower().rstrip("."))
    if month is None:
        raise ValueError(f"Unknown month name: {month_name!r}")
    return date(int(year), month, int(day))


# ─── Format Table (priority order) ───────────────────────────────────
# Each entry: (pattern, builder). The first pattern that matches AND builds a
# valid calendar date wins.

DATE_FORMATS: list[tuple[re.Pattern[str], Callable[[re.Match[str]], date]]] = [
    # 2026-02-15, 2026-02-15T00:00:00Z
    (
        re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+\-]\d{2}:?\d{2})?)?$"),
        lambda m: _numeric(m.group(1), m.group(2), m.group(3)),
    ),
    # 15/02/2026, 15-02-2026
    (
        re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$"),
        lambda m: _numeric(m.group(3), m.group(2), m.group(1)),
    ),
    # 15 February 2026, 15 Feb 2026, 15-Feb-2026, 15 Feb, 2026
    (
        re.compile(r"(\d{1,2})(?:st|nd|rd|th)?[\s\-]+([A-Za-z]+\.?)[\s\-]*,?\s*(\d{4})"),
        lambda m: _named(m.group(3), m.group(2), m.group(1)),
    ),
    # February 15, 2026, Feb 15 2026
    (
        re.compile(r"([A-Za-z]+\.?)\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})"),
        lambda m: _named(m.group(3), m.group(1), m.group(2)),
    ),
]


def parse_date(text: str | None) -> date | None:
    """Parse free-text date into a calendar date. Returns None if not a date."""
    if not text:
        return None
    s = text.strip()

    for pattern, build in DATE_FORMATS:
        match = pattern.search(s)
        if match is None:
            continue
        try:
            return build(match)
        except ValueError:
            continue
    return None


def to_iso(text: str | None) -> str | None:
    """Canonical YYYY-MM-DD string, or None."""
    parsed = parse_date(text)
    return parsed.isoformat() if parsed else None


# ─── Label-Driven Extraction ─────────────────────────────────────────
# Ordered label alternatives per field. First label that matches AND yields a
# parseable date wins. New phrasings are new rows, not new code.

_VALUE = r"[:\s]+([A-Za-z0-9\s,/\-]+?)"

DATE_LABEL_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "latest_shipment_date": [
        re.compile(r"LATEST\s+SHIPMENT\s+DATE" + _VALUE + r"(?:\n|$|PLACE|GOODS|PORT)", re.I | re.M),
        re.compile(r"LAST\s+DATE\s+(?:OF\s+)?SHIPMENT" + _VALUE + r"(?:\n|$)", re.I | re.M),
        re.compile(r"LATEST\s+DATE\s+(?:OF\s+)?SHIPMENT" + _VALUE + r"(?:\n|$)", re.I | re.M),
        re.compile(
            r"SHIPMENT[:\s]+(?:ON\s+OR\s+BEFORE|NOT\s+LATER\s+THAN)\s+([A-Za-z0-9\s,/\-]+?)(?:\n|$)",
            re.I | re.M,
        ),
    ],
    "expiry_date": [
        re.compile(r"EXPIRY\s+DATE" + _VALUE + r"(?:\n|$|PLACE)", re.I | re.M),
        re.compile(r"DATE\s+OF\s+EXPIRY" + _VALUE + r"(?:\n|$)", re.I | re.M),
        re.compile(r"EXPIRES?\s+(?:ON)?" + _VALUE + r"(?:\n|$)", re.I | re.M),
        re.compile(r"VALID\s+UNTIL" + _VALUE + r"(?:\n|$)", re.I | re.M),
    ],
    "shipment_date": [
        re.compile(r"SHIPPED\s+ON\s+BOARD\s+DATE" + _VALUE + r"(?:\n|$)", re.I | re.M),
        re.compile(r"SHIPPED\s+ON\s+BOARD" + _VALUE + r"(?:\n|$)", re.I | re.M),
        re.compile(r"ON\s+BOARD\s+DATE" + _VALUE + r"(?:\n|$)", re.I | re.M),
        re.compile(r"DATE\s+OF\s+SHIPMENT" + _VALUE + r"(?:\n|$)", re.I | re.M),
    ],
}


def extract_dates_from_text(raw_text: str) -> dict[str, date]:
    """Scan raw document text for the three authoritative date fields.

    Returns only the fields that were found; keys are ExtractedData
    attribute names (latest_shipment_date, expiry_date, shipment_date).
    """
    found: dict[str, date] = {}
    if not raw_text:
        return found

    for field_name, patterns in DATE_LABEL_PATTERNS.items():
        parsed = _first_labelled_date(raw_text, patterns)
        if parsed is not None:
            found[field_name] = parsed
    return found


def _first_labelled_date(text: str, patterns: list[re.Pattern[str]]) -> Optional[date]:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1):
            parsed = parse_date(match.group(1))
            if parsed is not None:
                return parsed
    return None
