"""
Tests for timestamp helpers.

Tests cover:
1. Normalization of numeric and string timestamps
2. UTC date derivation
3. Date format validation
"""

import pytest

from chronicle.utils.exceptions import ValidationError
from chronicle.utils.timestamps import (
    date_for_timestamp,
    normalize_timestamp,
    now_ms,
    validate_date,
)

# 2024-03-15T10:00:00Z
MARCH_15 = 1710496800000


class TestNormalizeTimestamp:
    """Tests for normalize_timestamp."""

    def test_integer_passthrough(self):
        assert normalize_timestamp(MARCH_15) == MARCH_15

    def test_float_truncated(self):
        assert normalize_timestamp(MARCH_15 + 0.9) == MARCH_15

    def test_digit_string_is_milliseconds(self):
        assert normalize_timestamp(str(MARCH_15)) == MARCH_15

    @pytest.mark.parametrize(
        "value",
        [
            "2024-03-15T10:00:00Z",
            "2024-03-15T10:00:00+00:00",
            "2024-03-15T12:00:00+02:00",
            "2024-03-15T10:00:00",
            "2024-03-15T10:00:00.000Z",
        ],
    )
    def test_iso_strings(self, value):
        assert normalize_timestamp(value) == MARCH_15

    def test_date_only_is_utc_midnight(self):
        assert normalize_timestamp("2024-03-15") == MARCH_15 - 10 * 3600 * 1000

    def test_pre_epoch(self):
        assert normalize_timestamp("1969-12-31T23:59:59Z") == -1000

    @pytest.mark.parametrize(
        "value", ["", "yesterday", float("nan"), float("inf"), True, None, [MARCH_15]]
    )
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            normalize_timestamp(value)

    def test_out_of_range(self):
        with pytest.raises(ValidationError):
            normalize_timestamp(10**20)


class TestDateForTimestamp:
    """Tests for UTC date derivation."""

    def test_epoch(self):
        assert date_for_timestamp(0) == "1970-01-01"

    def test_last_millisecond_of_day(self):
        assert date_for_timestamp(86_400_000 - 1) == "1970-01-01"
        assert date_for_timestamp(86_400_000) == "1970-01-02"

    def test_now_is_representable(self):
        assert len(date_for_timestamp(now_ms())) == 10


class TestValidateDate:
    """Tests for YYYY-MM-DD validation."""

    def test_valid(self):
        assert validate_date("2024-03-15") == "2024-03-15"

    @pytest.mark.parametrize(
        "value", ["2024-3-15", "2024/03/15", "2024-03-15 ", "2024-03-15T00:00", None]
    )
    def test_invalid(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_date(value, "start_date")

        assert exc_info.value.context["field"] == "start_date"
