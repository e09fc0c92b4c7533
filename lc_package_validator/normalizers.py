"""
Entity normalization for ports, company names, vessels and amounts.

Documents in one package are typed by different people in different offices:
"JEBEL DHANNA, ABU DHABI, UAE" on the LC, "Jebel Dhanna Terminal" on the B/L.
The matchers here are intentionally permissive. Flagging a real match as a
discrepancy costs more user trust than letting a near-match through.

All matchers are symmetric: match(a, b) == match(b, a).
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

# ─── Constants ───────────────────────────────────────────────────────

UNSPECIFIED_VALUES: frozenset[str] = frozenset({
    "", "n/a", "na", "not specified", "not applicable", "none", "-",
})

PORT_COUNTRIES: tuple[str, ...] = (
    "uae", "india", "china", "kuwait", "qatar", "saudi arabia", "oman",
    "bahrain", "singapore", "malaysia", "indonesia", "usa", "uk", "germany",
    "netherlands", "france", "italy", "spain",
)

PORT_FACILITY_SUFFIXES: tuple[str, ...] = (
    "terminal", "port", "harbour", "harbor", "anchorage", "roadstead",
)

LEGAL_SUFFIXES: tuple[str, ...] = (
    "llc", "ltd", "limited", "inc", "incorporated", "corp", "corporation",
    "co", "company", "plc", "gmbh", "ag", "sa", "srl", "bv", "nv", "pty",
    "pvt", "private",
)

# Words too common in bank names to identify one bank
GENERIC_BANK_WORDS: frozenset[str] = frozenset({
    "bank", "of", "the", "n.a.", "na", "ltd", "limited", "inc", "corp", "plc",
})

_COUNTRY_RE = re.compile(
    r",?\s*\b(?:" + "|".join(re.escape(c) for c in PORT_COUNTRIES) + r")\.?$",
    re.IGNORECASE,
)
_FACILITY_RE = re.compile(
    r"\s*\b(?:" + "|".join(PORT_FACILITY_SUFFIXES) + r")\.?$",
    re.IGNORECASE,
)
_LEGAL_RE = re.compile(
    r"\s*\b(?:" + "|".join(LEGAL_SUFFIXES) + r")\.?$",
    re.IGNORECASE,
)
_VESSEL_PREFIX_RE = re.compile(r"^(?:m\.v\.|m\.t\.|m/v|m/t|mv\b|mt\b)\s*", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?|\.\d+")


# ─── Presence ────────────────────────────────────────────────────────


def is_specified(value: str | None) -> bool:
    """True if the value is real data, not an empty/"n/a" placeholder."""
    if value is None:
        return False
    return value.strip().lower() not in UNSPECIFIED_VALUES


# ─── Ports ───────────────────────────────────────────────────────────


def core_port(value: str | None) -> str:
    """Reduce a port string to its core name.

    "JEBEL DHANNA, ABU DHABI, UAE" -> "jebel dhanna"
    "JEBEL DHANNA TERMINAL"        -> "jebel dhanna"
    "MINA AL AHMADI, KUWAIT"       -> "mina al ahmadi"
    """
    if not value:
        return ""
    port = value.lower().strip()
    port = _COUNTRY_RE.sub("", port)
    port = _FACILITY_RE.sub("", port)
    port = port.split(",")[0].strip()
    return re.sub(r"\s+", " ", port)


def ports_match(port_a: str | None, port_b: str | None) -> bool:
    """Two ports match if equal, one contains the other, or they share the
    same first two words (at least 4 characters)."""
    core_a = core_port(port_a)
    core_b = core_port(port_b)
    if not core_a or not core_b:
        return True  # Nothing to compare - no opinion
    if core_a == core_b:
        return True
    if core_a in core_b or core_b in core_a:
        return True

    lead_a = " ".join(core_a.split(" ")[:2])
    lead_b = " ".join(core_b.split(" ")[:2])
    return lead_a == lead_b and len(lead_a) >= 4


# ─── Company Names ───────────────────────────────────────────────────


def core_name(value: str | None) -> str:
    """Strip a trailing legal-entity suffix and trailing punctuation.

    "ADNOC TRADING LLC" -> "adnoc trading"
    """
    if not value:
        return ""
    name = value.lower().strip()
    name = _LEGAL_RE.sub("", name)
    return re.sub(r"[.,;:]+$", "", name).strip()


def names_match(name_a: str | None, name_b: str | None) -> bool:
    """Equal, containment, or equal once punctuation and spaces are removed."""
    core_a = core_name(name_a)
    core_b = core_name(name_b)
    if not core_a or not core_b:
        return True
    if core_a == core_b:
        return True
    if core_a in core_b or core_b in core_a:
        return True
    return normalize_reference(core_a) == normalize_reference(core_b)


# ─── Vessels ─────────────────────────────────────────────────────────


def core_vessel(value: str | None) -> str:
    """Drop MV / M/V / MT style prefixes. "MV Ocean Star" -> "ocean star"."""
    if not value:
        return ""
    return _VESSEL_PREFIX_RE.sub("", value.strip().lower()).strip()


def vessels_match(vessel_a: str | None, vessel_b: str | None) -> bool:
    core_a = core_vessel(vessel_a)
    core_b = core_vessel(vessel_b)
    if not core_a or not core_b:
        return True
    return core_a == core_b or core_a in core_b or core_b in core_a


# ─── References & Numbers ────────────────────────────────────────────


def normalize_reference(value: str | None) -> str:
    """Lowercase alphanumerics only: "LC-2024/00456" -> "lc202400456"."""
    if not value:
        return ""
    return re.sub(r"[^a-z0-9]", "", value.lower())


def extract_number(value: str | None) -> Decimal | None:
    """First number in a labelled amount/quantity string.

    "USD 1,250,000.00" -> Decimal("1250000.00")
    "68,500 MT"        -> Decimal("68500")

    Returns None (not zero) when there is no number, so a rule never fires
    on a value that isn't there.
    """
    if not value:
        return None
    match = _NUMBER_RE.search(value.replace(",", ""))
    if match is None:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def distinctive_words(bank_name: str) -> list[str]:
    """Words of a bank name that can identify it (not "bank", "of", ...)."""
    return [
        word
        for word in bank_name.lower().split()
        if len(word) > 2 and word not in GENERIC_BANK_WORDS
    ]
