"""
metering/normalizers/date_normalizer.py

Converts heterogeneous spreadsheet date cells into ``YYYY-MM-DD`` strings.

Rules are tried in order and the first one that applies wins:

1. native ``datetime``/``date`` objects (aware values are read in UTC),
2. spreadsheet serial numbers above ``SERIAL_THRESHOLD``,
3. compact ``YYYYMMDD`` strings,
4. slash-delimited dates (``MM/DD/YYYY`` when the first part is <= 12,
   otherwise ``DD/MM/YYYY``; ``YYYY/MM/DD`` when the first part has four digits),
5. ISO-8601 and a fixed table of textual formats.

A bare time of day such as ``"10:30"`` is never turned into a date, and
nothing here falls back to the current date.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

SERIAL_THRESHOLD = 30000
SERIAL_EPOCH_OFFSET_DAYS = 25569
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_COMPACT_DATE = re.compile(r"^\d{8}$")

TEXT_DATE_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%d.%m.%Y",
    "%d-%m-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)
_TIME_SUFFIXES: tuple[str, ...] = ("", " %H:%M", " %H:%M:%S")


class DateParseReason:
    UNRECOGNIZED = "unrecognized"
    AMBIGUOUS_TIME_ONLY = "ambiguous_time_only"


class DateParseError(ValueError):
    """
    Raised when a cell cannot be read as a calendar date.
    """

    def __init__(self, value: Any, reason: str) -> None:
        if reason == DateParseReason.AMBIGUOUS_TIME_ONLY:
            message = f"'{value}' is a time of day without a calendar date"
        else:
            message = f"'{value}' is not a recognized date"
        super().__init__(message)
        self.value = value
        self.reason = reason


def normalize_date(value: Any) -> str:
    """
    Return the canonical ``YYYY-MM-DD`` form of a date cell.

    Raises:
        DateParseError: when no rule accepts the value.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_serial(value)

    if not isinstance(value, str):
        raise DateParseError(value, DateParseReason.UNRECOGNIZED)

    text = value.strip()
    if not text:
        raise DateParseError(value, DateParseReason.UNRECOGNIZED)
    if is_time_only(text):
        raise DateParseError(value, DateParseReason.AMBIGUOUS_TIME_ONLY)

    if _COMPACT_DATE.match(text):
        return _build(value, text[0:4], text[4:6], text[6:8])

    if "/" in text:
        parsed = _from_slashes(value, text)
        if parsed is not None:
            return parsed

    return _from_text(value, text)


def looks_like_date(value: Any) -> bool:
    """
    True when the cell reads as a date without being a plain number.
    """

    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str):
        return False
    try:
        normalize_date(value)
    except DateParseError:
        return False
    return True


def is_time_only(text: str) -> bool:
    return ":" in text and "-" not in text and "/" not in text and len(text) <= 8


def _from_serial(serial: float) -> str:
    if not math.isfinite(serial) or serial <= SERIAL_THRESHOLD:
        raise DateParseError(serial, DateParseReason.UNRECOGNIZED)
    offset_ms = round((serial - SERIAL_EPOCH_OFFSET_DAYS) * 86400 * 1000)
    try:
        return (_UNIX_EPOCH + timedelta(milliseconds=offset_ms)).date().isoformat()
    except OverflowError as exc:
        raise DateParseError(serial, DateParseReason.UNRECOGNIZED) from exc


def _from_slashes(raw: Any, text: str) -> str | None:
    parts = text.split("/")
    if len(parts) != 3:
        return None
    # "03/05/2025 10:00" keeps only the calendar part.
    first, second = parts[0].strip(), parts[1].strip()
    third = parts[2].strip().split(" ")[0]
    if not (first.isdigit() and second.isdigit() and third.isdigit()):
        raise DateParseError(raw, DateParseReason.UNRECOGNIZED)

    if len(first) == 4:
        return _build(raw, first, second, third)

    year = f"20{third}" if len(third) == 2 else third
    if int(first) <= 12:
        return _build(raw, year, first, second)
    return _build(raw, year, second, first)


def _from_text(raw: Any, text: str) -> str:
    iso_text = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(iso_text)
    except ValueError:
        pass
    else:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date().isoformat()

    collapsed = " ".join(text.split())
    for fmt in TEXT_DATE_FORMATS:
        for suffix in _TIME_SUFFIXES:
            try:
                return datetime.strptime(collapsed, fmt + suffix).date().isoformat()
            except ValueError:
                continue

    raise DateParseError(raw, DateParseReason.UNRECOGNIZED)


def _build(raw: Any, year: str, month: str, day: str) -> str:
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError as exc:
        raise DateParseError(raw, DateParseReason.UNRECOGNIZED) from exc
