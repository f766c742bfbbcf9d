"""
metering/schemas package marker.
"""

from metering.schemas.ingestion import (
    CanonicalRecordResponse,
    IngestionResultResponse,
    IngestionWarningResponse,
    RowSkipResponse,
    RowValidationErrorResponse,
)

__all__ = [
    "CanonicalRecordResponse",
    "IngestionResultResponse",
    "IngestionWarningResponse",
    "RowSkipResponse",
    "RowValidationErrorResponse",
]
