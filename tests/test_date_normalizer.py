"""
tests/test_date_normalizer.py

Pytest unit tests for normalize_date.

Coverage
--------
- Native date/datetime cells, including aware datetimes
- Spreadsheet serial numbers and the serial threshold
- Compact, slash-delimited, ISO and textual string dates
- Time-of-day and garbage rejection with typed reasons
- Stability when a normalized date is normalized again
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from metering.normalizers.date_normalizer import (
    DateParseError,
    DateParseReason,
    is_time_only,
    looks_like_date,
    normalize_date,
)


# ---------------------------------------------------------------------------
# Native values
# ---------------------------------------------------------------------------


class TestNativeValues:
    def test_date_passes_through(self) -> None:
        assert normalize_date(date(2025, 3, 5)) == "2025-03-05"

    def test_naive_datetime_drops_time(self) -> None:
        assert normalize_date(datetime(2025, 3, 5, 23, 59)) == "2025-03-05"

    def test_aware_datetime_is_read_in_utc(self) -> None:
        eastern = timezone(timedelta(hours=-5))
        assert normalize_date(datetime(2025, 3, 5, 22, 0, tzinfo=eastern)) == "2025-03-06"


# ---------------------------------------------------------------------------
# Spreadsheet serials
# ---------------------------------------------------------------------------


class TestSerialNumbers:
    def test_integer_serial(self) -> None:
        assert normalize_date(45261) == "2023-12-01"

    def test_fractional_serial_keeps_calendar_day(self) -> None:
        assert normalize_date(45261.5) == "2023-12-01"

    def test_serial_for_known_report_day(self) -> None:
        assert normalize_date(45716) == "2025-02-28"

    @pytest.mark.parametrize("serial", [30000, 12, 0, -45261, 1.5])
    def test_small_numbers_are_not_dates(self, serial: float) -> None:
        with pytest.raises(DateParseError) as exc_info:
            normalize_date(serial)
        assert exc_info.value.reason == DateParseReason.UNRECOGNIZED

    def test_bool_is_not_a_serial(self) -> None:
        with pytest.raises(DateParseError):
            normalize_date(True)

    def test_nan_serial_is_rejected(self) -> None:
        with pytest.raises(DateParseError):
            normalize_date(float("nan"))


# ---------------------------------------------------------------------------
# String dates
# ---------------------------------------------------------------------------


class TestStringDates:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("20250228", "2025-02-28"),
            ("03/05/2025", "2025-03-05"),
            ("13/05/2025", "2025-05-13"),
            ("03/05/25", "2025-03-05"),
            ("2025/03/05", "2025-03-05"),
            ("03/05/2025 10:00", "2025-03-05"),
            ("2025-03-05", "2025-03-05"),
            ("  2025-03-05  ", "2025-03-05"),
            ("2025-03-05T10:00:00Z", "2025-03-05"),
            ("2025-03-05T23:30:00-05:00", "2025-03-06"),
            ("5 Mar 2025", "2025-03-05"),
            ("March 5, 2025", "2025-03-05"),
            ("05.03.2025", "2025-03-05"),
        ],
    )
    def test_recognized_formats(self, raw: str, expected: str) -> None:
        assert normalize_date(raw) == expected

    def test_day_first_when_first_part_exceeds_twelve(self) -> None:
        assert normalize_date("25/12/2024") == "2024-12-25"

    @pytest.mark.parametrize("raw", ["31/02/2025", "20251301", "02/30/2025"])
    def test_impossible_calendar_dates_fail(self, raw: str) -> None:
        with pytest.raises(DateParseError) as exc_info:
            normalize_date(raw)
        assert exc_info.value.reason == DateParseReason.UNRECOGNIZED

    @pytest.mark.parametrize("raw", ["10:30", "10:30:15", " 7:05 "])
    def test_time_of_day_is_never_a_date(self, raw: str) -> None:
        with pytest.raises(DateParseError) as exc_info:
            normalize_date(raw)
        assert exc_info.value.reason == DateParseReason.AMBIGUOUS_TIME_ONLY
        assert "time of day" in str(exc_info.value)

    @pytest.mark.parametrize("raw", ["banana", "", "   ", "ab/cd/efgh", None, ["2025-03-05"]])
    def test_garbage_is_unrecognized(self, raw: object) -> None:
        with pytest.raises(DateParseError) as exc_info:
            normalize_date(raw)
        assert exc_info.value.reason == DateParseReason.UNRECOGNIZED
        assert exc_info.value.value == raw

    def test_parse_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            normalize_date("banana")


# ---------------------------------------------------------------------------
# Stability and helpers
# ---------------------------------------------------------------------------


class TestStability:
    @pytest.mark.parametrize(
        "raw",
        [45261, "03/05/2025", "20250228", "March 5, 2025", date(2024, 2, 29)],
    )
    def test_normalizing_twice_is_stable(self, raw: object) -> None:
        once = normalize_date(raw)
        assert normalize_date(once) == once


class TestHelpers:
    def test_looks_like_date(self) -> None:
        assert looks_like_date("2025-03-05")
        assert looks_like_date(date(2025, 3, 5))
        assert not looks_like_date("Talbot House")
        assert not looks_like_date("10:30")

    def test_numbers_do_not_look_like_dates(self) -> None:
        assert not looks_like_date(45261)

    def test_is_time_only(self) -> None:
        assert is_time_only("10:30")
        assert not is_time_only("2025-03-05 10:30")
        assert not is_time_only("03/05/2025")
