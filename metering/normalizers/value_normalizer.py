"""
metering/normalizers/value_normalizer.py

Extracts a positive reading magnitude from a noisy spreadsheet cell.
"""

from __future__ import annotations

import math
import re
from typing import Any

# Unit tokens such as "kWh" or "m3" start with a letter and may carry digits.
_UNIT_TOKENS = re.compile(r"[^\W\d_][\w^³²]*")
_NON_NUMERIC_CHARS = re.compile(r"[^0-9.]")
# Longest leading number, so "12.5.3" reads as 12.5.
_LEADING_NUMBER = re.compile(r"\d*\.?\d+")


class ValueParseReason:
    NOT_NUMERIC = "not_numeric"
    NON_POSITIVE = "non_positive"


class ValueParseError(ValueError):
    """
    Raised when a reading cell does not hold a positive number.
    """

    def __init__(self, value: Any, reason: str) -> None:
        if reason == ValueParseReason.NON_POSITIVE:
            message = f"'{value}' must be a positive number"
        else:
            message = f"'{value}' is not a number"
        super().__init__(message)
        self.value = value
        self.reason = reason


def normalize_value(value: Any) -> float:
    """
    Return the reading as a float.

    Numbers pass through unchanged (no unit conversion). Strings keep only
    digits, ``.`` and a leading ``-``, then read the leading number, so
    ``"1,240 kWh"`` reads as ``1240.0`` and ``"12.5.3"`` as ``12.5``.

    Raises:
        ValueParseError: when the cell is not numeric or not strictly positive.
    """

    if isinstance(value, bool):
        raise ValueParseError(value, ValueParseReason.NOT_NUMERIC)

    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        parsed = _parse_text(value)
    else:
        raise ValueParseError(value, ValueParseReason.NOT_NUMERIC)

    if not math.isfinite(parsed):
        raise ValueParseError(value, ValueParseReason.NOT_NUMERIC)
    if parsed <= 0:
        raise ValueParseError(value, ValueParseReason.NON_POSITIVE)
    return parsed


def looks_like_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False
    try:
        _parse_text(value)
    except ValueParseError:
        return False
    return True


def _parse_text(value: str) -> float:
    text = value.strip()
    negative = text.startswith("-")
    digits = _NON_NUMERIC_CHARS.sub("", _UNIT_TOKENS.sub("", text))
    match = _LEADING_NUMBER.match(digits)
    if match is None:
        raise ValueParseError(value, ValueParseReason.NOT_NUMERIC)
    parsed = float(match.group(0))
    return -parsed if negative else parsed
