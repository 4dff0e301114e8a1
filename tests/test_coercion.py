"""
Tests for cell coercion: numbers, keys and dates.
"""

from datetime import date, datetime

import numpy as np
import pandas as pd
import pytest

from dispute_engine.coercion import normalize_key, parse_date, to_number


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------
class TestParseDate:
    """Date cells in their many shapes."""

    @pytest.mark.parametrize("value, expected", [
        ("2024-03-15", datetime(2024, 3, 15)),
        ("3/15/2024", datetime(2024, 3, 15)),
        ("March 15, 2024", datetime(2024, 3, 15)),
        (pd.Timestamp("2024-03-15"), datetime(2024, 3, 15)),
        (date(2024, 3, 15), datetime(2024, 3, 15)),
        (45366, datetime(2024, 3, 15)),
    ])
    def test_full_dates(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.parametrize("value", ["2024-03", "March 2024"])
    def test_missing_day_is_first_of_month(self, value):
        assert parse_date(value) == datetime(2024, 3, 1)

    @pytest.mark.parametrize("value", ["5", "March", "15", "Mar 15", "2024"])
    def test_partial_dates_rejected(self, value):
        """Text without a year or a month does not borrow them from today."""
        assert parse_date(value) is None

    @pytest.mark.parametrize("value", [None, "", "   ", np.nan, "not a date", 0, -3])
    def test_unparseable(self, value):
        assert parse_date(value) is None


# ---------------------------------------------------------------------------
# Numbers and keys
# ---------------------------------------------------------------------------
class TestNumbersAndKeys:

    @pytest.mark.parametrize("value, expected", [
        ("12.5", 12.5), (3, 3.0), ("n/a", 0.0), (None, 0.0), (float("inf"), 0.0),
    ])
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value, expected", [
        (100234.0, "100234"), (" A1 ", "A1"), (None, ""), (12.5, "12.5"),
    ])
    def test_normalize_key(self, value, expected):
        assert normalize_key(value) == expected
