"""
metering/domain/meter_reading.py

Domain models used by the meter-reading ingestion flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from metering.mappers.column_classifier import ColumnMapping

FIELD_SEPARATOR = " – "


@dataclass(frozen=True)
class CanonicalRecord:
    """
    Typed canonical meter reading prepared for persistence.
    """

    reading_date: str
    facility: str
    meter_code: str
    meter_name: str
    metric_name: str
    value: float
    unit: str
    reading_type: str
    source_file: str | None = None
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reading_date": self.reading_date,
            "facility": self.facility,
            "meter_code": self.meter_code,
            "meter_name": self.meter_name,
            "metric_name": self.metric_name,
            "value": self.value,
            "unit": self.unit,
            "reading_type": self.reading_type,
            "source_file": self.source_file,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class RowValidationError:
    """
    One row-level validation error detail.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None
    code: str | None = None

    def render(self) -> str:
        if self.column:
            return f"Row {self.row_number}: {self.column}{FIELD_SEPARATOR}{self.message}"
        return f"Row {self.row_number}: {self.message}"


@dataclass(frozen=True)
class IngestionWarning:
    """
    Non-fatal finding attached to a row (or to the batch when row_number is None).
    """

    message: str
    code: str
    row_number: int | None = None
    column: str | None = None
    related_rows: tuple[int, ...] = ()

    def render(self) -> str:
        prefix = f"Row {self.row_number}: " if self.row_number is not None else ""
        if self.column:
            return f"{prefix}{self.column}{FIELD_SEPARATOR}{self.message}"
        return f"{prefix}{self.message}"


@dataclass(frozen=True)
class RowSkip:
    """
    A row deliberately left out of the batch (blank separator rows, filtered meters).
    """

    row_number: int
    reason: str


@dataclass(frozen=True)
class CandidateRecord:
    """
    Record assembled from one input row, before validation.

    Field values are normalized where possible; problems found while
    normalizing are carried in ``issues`` for the validator to report.
    """

    row_number: int
    reading_date: str | None = None
    facility: str | None = None
    meter_code: str | None = None
    meter_name: str | None = None
    metric_name: str | None = None
    value: float | None = None
    unit: str | None = None
    reading_type: str | None = None
    source_file: str | None = None
    notes: str | None = None
    issues: tuple[RowValidationError, ...] = ()
    skip_reason: str | None = None

    @property
    def is_skipped(self) -> bool:
        return self.skip_reason is not None


@dataclass(frozen=True)
class IngestionDefaults:
    """
    Caller-supplied fallbacks for fields the spreadsheet does not carry.

    ``reading_date`` is only used when no date column is mapped at all,
    e.g. a report date taken from the export's filename.
    """

    facility: str | None = None
    metric_name: str | None = None
    reading_type: str | None = None
    source_file: str | None = None
    reading_date: str | None = None
    meter_code: str | None = None
    meter_name: str | None = None
    unit: str | None = None


@dataclass(frozen=True)
class IngestionResult:
    """
    End-of-run ingestion outcome.
    """

    mode: str
    records: tuple[CanonicalRecord, ...]
    errors: tuple[RowValidationError, ...]
    warnings: tuple[IngestionWarning, ...]
    skipped: tuple[RowSkip, ...]
    mapping: ColumnMapping
    total_rows: int
    rows_succeeded: int
    rows_failed: int
    source_file: str | None = None
    failed_rows: tuple[int, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def hidden_record_count(self) -> int:
        """Successful records computed but not returned (preview truncation)."""
        return self.rows_succeeded - len(self.records)

    def error_messages(self) -> list[str]:
        return [error.render() for error in self.errors]

    def warning_messages(self) -> list[str]:
        return [warning.render() for warning in self.warnings]
