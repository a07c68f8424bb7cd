"""
Unit tests for date utilities
"""

import pytest
from datetime import date, datetime, timezone, timedelta

import pandas as pd

from utils.date_utils import ensure_datetime, to_iso, to_epoch_ms


@pytest.mark.unit
class TestDateUtils:
    """Test cases for date helpers"""

    @pytest.mark.parametrize("value, expected", [
        (date(2024, 1, 15), datetime(2024, 1, 15)),
        (datetime(2024, 1, 15, 9, 30), datetime(2024, 1, 15, 9, 30)),
        ("2024-01-15", datetime(2024, 1, 15)),
        (pd.Timestamp("2024-01-15 09:30"), datetime(2024, 1, 15, 9, 30)),
    ])
    def test_ensure_datetime(self, value, expected):
        assert ensure_datetime(value) == expected

    def test_ensure_datetime_rejects_other_types(self):
        with pytest.raises(TypeError):
            ensure_datetime(20240115)

    def test_to_iso(self):
        assert to_iso(date(2024, 1, 15)) == "2024-01-15T00:00:00"

    @pytest.mark.parametrize("value, expected", [
        (None, None),
        (1704067200, 1704067200000),
        (1704067200.5, 1704067200500),
        ({"raw": 1704067200, "fmt": "2024-01-01"}, 1704067200000),
        ({"raw": None}, None),
        (date(2024, 1, 1), 1704067200000),
        (datetime(2024, 1, 1), 1704067200000),
        (datetime(2024, 1, 1, 8, tzinfo=timezone(timedelta(hours=8))), 1704067200000),
        ("2024-01-01", 1704067200000),
    ])
    def test_to_epoch_ms(self, value, expected):
        assert to_epoch_ms(value) == expected

    @pytest.mark.parametrize("value", [True, [1, 2], object()])
    def test_to_epoch_ms_rejects_other_types(self, value):
        with pytest.raises(TypeError):
            to_epoch_ms(value)

    def test_to_epoch_ms_bad_string(self):
        with pytest.raises(ValueError):
            to_epoch_ms("invalid-date")
