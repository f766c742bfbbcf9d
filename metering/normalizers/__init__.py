"""
metering/normalizers package marker.
"""

from metering.normalizers.date_normalizer import (
    DateParseError,
    DateParseReason,
    looks_like_date,
    normalize_date,
)
from metering.normalizers.value_normalizer import (
    ValueParseError,
    ValueParseReason,
    looks_like_number,
    normalize_value,
)

__all__ = [
    "DateParseError",
    "DateParseReason",
    "ValueParseError",
    "ValueParseReason",
    "looks_like_date",
    "looks_like_number",
    "normalize_date",
    "normalize_value",
]
