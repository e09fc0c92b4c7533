"""
Date Normalizer tests: pure regex, no network.

Run: pytest tests/ -v
"""

from __future__ import annotations

from datetime import date

import pytest

from lc_package_validator.dates import extract_dates_from_text, parse_date, to_iso


SAMPLE_DATES = [date(2026, 2, 15), date(2025, 12, 1), date(2024, 2, 29), date(2026, 9, 30)]

FORMATS = [
    "%Y-%m-%d",  # 2026-02-15
    "%d/%m/%Y",  # 15/02/2026
    "%d-%m-%Y",  # 15-02-2026
    "%d %B %Y",  # 15 February 2026
    "%d %b %Y",  # 15 Feb 2026
    "%d-%b-%Y",  # 15-Feb-2026
    "%d %b, %Y",  # 15 Feb, 2026
    "%B %d, %Y",  # February 15, 2026
    "%B %d %Y",  # February 15 2026
    "%b %d, %Y",  # Feb 15, 2026
]


# ═══════════════════════════════════════════════════════════════════════
# DATE PARSING
# ═══════════════════════════════════════════════════════════════════════


class TestParseDate:
    @pytest.mark.parametrize("fmt", FORMATS)
    @pytest.mark.parametrize("d", SAMPLE_DATES)
    def test_round_trip(self, d: date, fmt: str):
        assert parse_date(d.strftime(fmt)) == d

    @pytest.mark.parametrize("d", SAMPLE_DATES)
    def test_iso_is_idempotent(self, d: date):
        assert to_iso(d.isoformat()) == d.isoformat()

    def test_numeric_dates_are_day_first(self):
        assert parse_date("03/04/2026") == date(2026, 4, 3)

    def test_ordinal_suffixes(self):
        assert parse_date("15th March 2026") == date(2026, 3, 15)
        assert parse_date("March 1st, 2026") == date(2026, 3, 1)

    def test_uppercase_month_names(self):
        assert parse_date("30 NOVEMBER 2026") == date(2026, 11, 30)

    def test_sept_abbreviation(self):
        assert parse_date("Sept. 5, 2026") == date(2026, 9, 5)

    @pytest.mark.parametrize(
        "text",
        ["2026-02-15T00:00:00Z", "2026-02-15T09:30:00.250+04:00", "2026-02-15 09:30", "2026-02-15T09:30:00"],
    )
    def test_iso_date_times_keep_the_date(self, text):
        assert parse_date(text) == date(2026, 2, 15)

    def test_iso_date_time_with_bad_date(self):
        assert parse_date("2026-13-01T00:00:00Z") is None

    def test_surrounding_whitespace(self):
        assert parse_date("  2026-02-15  ") == date(2026, 2, 15)

    @pytest.mark.parametrize(
        "text",
        ["", None, "not a date", "31/02/2026", "2026-13-01", "15 Smarch 2026", "30 days after B/L"],
    )
    def test_not_a_date(self, text):
        assert parse_date(text) is None

    def test_to_iso_none_for_garbage(self):
        assert to_iso("tomorrow") is None


# ═══════════════════════════════════════════════════════════════════════
# LABEL-DRIVEN EXTRACTION
# ═══════════════════════════════════════════════════════════════════════


class TestExtractDatesFromText:
    def test_lc_dates(self):
        text = (
            "IRREVOCABLE DOCUMENTARY CREDIT\n"
            "LATEST SHIPMENT DATE: 15 NOVEMBER 2026\n"
            "EXPIRY DATE: 30 NOVEMBER 2026\n"
        )
        assert extract_dates_from_text(text) == {
            "latest_shipment_date": date(2026, 11, 15),
            "expiry_date": date(2026, 11, 30),
        }

    def test_bl_shipped_on_board_date(self):
        text = "BILL OF LADING\nSHIPPED ON BOARD DATE: 02/11/2026\nFREIGHT PREPAID"
        assert extract_dates_from_text(text) == {"shipment_date": date(2026, 11, 2)}

    def test_alternative_labels(self):
        text = (
            "SHIPMENT: NOT LATER THAN 2026-11-15\n"
            "DATE OF EXPIRY: 30-Nov-2026\n"
            "DATE OF SHIPMENT: November 2, 2026\n"
        )
        found = extract_dates_from_text(text)
        assert found["latest_shipment_date"] == date(2026, 11, 15)
        assert found["expiry_date"] == date(2026, 11, 30)
        assert found["shipment_date"] == date(2026, 11, 2)

    def test_valid_until_counts_as_expiry(self):
        assert extract_dates_from_text("VALID UNTIL: 31 DEC 2026") == {
            "expiry_date": date(2026, 12, 31)
        }

    def test_first_label_in_priority_order_wins(self):
        text = "VALID UNTIL: 31 DEC 2026\nEXPIRY DATE: 30 NOV 2026\n"
        assert extract_dates_from_text(text)["expiry_date"] == date(2026, 11, 30)

    def test_unparseable_label_value_falls_through(self):
        text = "EXPIRY DATE: TO BE ADVISED\nDATE OF EXPIRY: 2026-11-30\n"
        assert extract_dates_from_text(text)["expiry_date"] == date(2026, 11, 30)

    def test_relative_dates_are_ignored(self):
        assert extract_dates_from_text("LATEST SHIPMENT DATE: 30 DAYS AFTER B/L") == {}

    def test_empty_text(self):
        assert extract_dates_from_text("") == {}
