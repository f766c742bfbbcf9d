"""
metering/domain package marker.
"""

from metering.domain.meter_reading import (
    CandidateRecord,
    CanonicalRecord,
    IngestionDefaults,
    IngestionResult,
    IngestionWarning,
    RowSkip,
    RowValidationError,
)
from metering.domain.registry import FACILITIES, METRICS, UNITS, Facility, Metric, Unit

__all__ = [
    "FACILITIES",
    "METRICS",
    "UNITS",
    "CandidateRecord",
    "CanonicalRecord",
    "Facility",
    "IngestionDefaults",
    "IngestionResult",
    "IngestionWarning",
    "Metric",
    "RowSkip",
    "RowValidationError",
    "Unit",
]
