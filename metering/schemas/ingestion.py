"""
metering/schemas/ingestion.py

Response schemas for meter-reading ingestion results.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from metering.domain.meter_reading import IngestionResult


class RowValidationErrorResponse(BaseModel):
    """
    API response model for one row-level validation error.
    """

    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None
    code: str | None = None
    rendered: str


class IngestionWarningResponse(BaseModel):
    row_number: int | None = Field(default=None, ge=1)
    message: str
    code: str
    column: str | None = None
    related_rows: list[int] = Field(default_factory=list)
    rendered: str


class RowSkipResponse(BaseModel):
    row_number: int = Field(..., ge=1)
    reason: str


class CanonicalRecordResponse(BaseModel):
    """
    API response model for one canonical meter reading.
    """

    reading_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    facility: str
    meter_code: str = Field(..., min_length=3)
    meter_name: str = Field(..., min_length=3)
    metric_name: str
    value: float = Field(..., gt=0)
    unit: str
    reading_type: str = Field(..., min_length=1)
    source_file: str | None = None
    notes: str | None = None


class IngestionResultResponse(BaseModel):
    """
    API response model for one preview or commit run.
    """

    mode: str
    total_rows: int = Field(..., ge=0)
    rows_succeeded: int = Field(..., ge=0)
    rows_failed: int = Field(..., ge=0)
    rows_skipped: int = Field(..., ge=0)
    hidden_records: int = Field(..., ge=0)
    source_file: str | None = None
    column_mapping: dict[str, str | None] = Field(default_factory=dict)
    records: list[CanonicalRecordResponse] = Field(default_factory=list)
    errors: list[RowValidationErrorResponse] = Field(default_factory=list)
    warnings: list[IngestionWarningResponse] = Field(default_factory=list)
    skipped: list[RowSkipResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: IngestionResult) -> IngestionResultResponse:
        return cls(
            mode=result.mode,
            total_rows=result.total_rows,
            rows_succeeded=result.rows_succeeded,
            rows_failed=result.rows_failed,
            rows_skipped=len(result.skipped),
            hidden_records=result.hidden_record_count,
            source_file=result.source_file,
            column_mapping=dict(result.mapping.source_to_field),
            records=[CanonicalRecordResponse(**record.to_dict()) for record in result.records],
            errors=[
                RowValidationErrorResponse(
                    row_number=error.row_number,
                    message=error.message,
                    column=error.column,
                    value=error.value,
                    code=error.code,
                    rendered=error.render(),
                )
                for error in result.errors
            ],
            warnings=[
                IngestionWarningResponse(
                    row_number=warning.row_number,
                    message=warning.message,
                    code=warning.code,
                    column=warning.column,
                    related_rows=list(warning.related_rows),
                    rendered=warning.render(),
                )
                for warning in result.warnings
            ],
            skipped=[
                RowSkipResponse(row_number=skip.row_number, reason=skip.reason)
                for skip in result.skipped
            ],
        )
