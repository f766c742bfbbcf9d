"""
metering/validators/reading_validator.py

Field-level validation of candidate meter readings.
"""

from __future__ import annotations

import math
import re
from collections import defaultdict
from datetime import date
from typing import Any, Sequence

from metering import failure_codes
from metering.domain.meter_reading import (
    CandidateRecord,
    CanonicalRecord,
    IngestionWarning,
    RowValidationError,
)
from metering.domain.registry import FACILITIES, METRICS, UNITS, expected_units

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MIN_METER_LENGTH = 3


class ReadingValidator:
    """
    Checks every constraint of a candidate independently so all problems
    with one row are reported in a single pass.
    """

    def __init__(self, *, strict_units: bool = False) -> None:
        self._strict_units = strict_units

    def validate(
        self,
        candidate: CandidateRecord,
    ) -> tuple[CanonicalRecord | None, list[RowValidationError], list[IngestionWarning]]:
        """
        Validate one candidate.

        Returns the canonical record (or None), field errors, and warnings.
        """

        row_number = candidate.row_number
        errors: list[RowValidationError] = list(candidate.issues)
        warnings: list[IngestionWarning] = []
        flagged = {issue.column for issue in candidate.issues}

        if "reading_date" not in flagged:
            self._check_date(candidate.reading_date, row_number, errors)
        self._check_member(
            value=candidate.facility,
            column="facility",
            allowed=FACILITIES,
            row_number=row_number,
            errors=errors,
        )
        self._check_min_length(candidate.meter_code, "meter_code", "Meter code", row_number, errors)
        self._check_min_length(candidate.meter_name, "meter_name", "Meter name", row_number, errors)
        self._check_member(
            value=candidate.metric_name,
            column="metric_name",
            allowed=METRICS,
            row_number=row_number,
            errors=errors,
        )
        if "value" not in flagged:
            self._check_value(candidate.value, row_number, errors)
        self._check_member(
            value=candidate.unit,
            column="unit",
            allowed=UNITS,
            row_number=row_number,
            errors=errors,
        )
        if self._is_blank(candidate.reading_type):
            errors.append(self._missing(row_number, "reading_type"))

        mismatch = self._unit_mismatch_message(candidate.metric_name, candidate.unit)
        if mismatch is not None:
            if self._strict_units:
                errors.append(
                    RowValidationError(
                        row_number=row_number,
                        column="unit",
                        message=mismatch,
                        value=candidate.unit,
                        code=failure_codes.UNIT_METRIC_MISMATCH,
                    )
                )
            else:
                warnings.append(
                    IngestionWarning(
                        row_number=row_number,
                        column="unit",
                        message=mismatch,
                        code=failure_codes.UNIT_METRIC_MISMATCH,
                    )
                )

        if errors:
            return None, errors, warnings

        return (
            CanonicalRecord(
                reading_date=str(candidate.reading_date),
                facility=str(candidate.facility),
                meter_code=str(candidate.meter_code).strip(),
                meter_name=str(candidate.meter_name).strip(),
                metric_name=str(candidate.metric_name),
                value=float(candidate.value),  # type: ignore[arg-type]
                unit=str(candidate.unit),
                reading_type=str(candidate.reading_type).strip(),
                source_file=candidate.source_file,
                notes=candidate.notes,
            ),
            [],
            warnings,
        )

    def _check_date(
        self,
        reading_date: str | None,
        row_number: int,
        errors: list[RowValidationError],
    ) -> None:
        if self._is_blank(reading_date):
            errors.append(self._missing(row_number, "reading_date"))
            return
        text = str(reading_date)
        valid = bool(_ISO_DATE.match(text))
        if valid:
            try:
                date.fromisoformat(text)
            except ValueError:
                valid = False
        if not valid:
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column="reading_date",
                    message="Date must be a calendar date in YYYY-MM-DD format.",
                    value=text,
                    code=failure_codes.INVALID_DATE_FORMAT,
                )
            )

    def _check_value(
        self,
        value: float | None,
        row_number: int,
        errors: list[RowValidationError],
    ) -> None:
        if value is None:
            errors.append(self._missing(row_number, "value"))
            return
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column="value",
                    message="Value must be a finite number.",
                    value=str(value),
                    code=failure_codes.VALUE_NOT_NUMERIC,
                )
            )
            return
        if value <= 0:
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column="value",
                    message="Value must be positive.",
                    value=str(value),
                    code=failure_codes.VALUE_NON_POSITIVE,
                )
            )

    def _check_member(
        self,
        *,
        value: str | None,
        column: str,
        allowed: frozenset[str],
        row_number: int,
        errors: list[RowValidationError],
    ) -> None:
        if self._is_blank(value):
            errors.append(self._missing(row_number, column))
            return
        if value not in allowed:
            choices = ", ".join(sorted(allowed))
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column=column,
                    message=f"Unsupported {column}. Allowed values: {choices}.",
                    value=value,
                    code=failure_codes.ENUM_MISMATCH,
                )
            )

    def _check_min_length(
        self,
        value: str | None,
        column: str,
        label: str,
        row_number: int,
        errors: list[RowValidationError],
    ) -> None:
        if self._is_blank(value):
            errors.append(self._missing(row_number, column))
            return
        if len(str(value).strip()) < MIN_METER_LENGTH:
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column=column,
                    message=f"{label} must be at least {MIN_METER_LENGTH} characters.",
                    value=value,
                    code=failure_codes.FIELD_TOO_SHORT,
                )
            )

    @staticmethod
    def _unit_mismatch_message(metric_name: str | None, unit: str | None) -> str | None:
        if metric_name not in METRICS or unit not in UNITS:
            return None
        expected = expected_units(metric_name)  # type: ignore[arg-type]
        if unit in expected:
            return None
        return f"Unit '{unit}' is unusual for {metric_name} (expected {' or '.join(expected)})."

    @staticmethod
    def _missing(row_number: int, column: str) -> RowValidationError:
        return RowValidationError(
            row_number=row_number,
            column=column,
            message="Required value is missing.",
            code=failure_codes.REQUIRED_FIELD_MISSING,
        )

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or str(value).strip() == ""


def find_duplicates(
    numbered_records: Sequence[tuple[int, CanonicalRecord]],
) -> list[IngestionWarning]:
    """
    Flag possible double entries within one batch.

    Records sharing ``(facility, meter_code, reading_date)`` produce one
    warning on the group's first row that lists every row in the group.
    """

    groups: dict[tuple[str, str, str], list[int]] = defaultdict(list)
    for row_number, record in numbered_records:
        key = (record.facility, record.meter_code, record.reading_date)
        groups[key].append(row_number)

    warnings: list[IngestionWarning] = []
    for (facility, meter_code, reading_date), rows in groups.items():
        if len(rows) < 2:
            continue
        listed = ", ".join(str(row) for row in rows)
        warnings.append(
            IngestionWarning(
                row_number=rows[0],
                message=(
                    f"Possible double entry: rows {listed} share facility '{facility}', "
                    f"meter_code '{meter_code}' and reading_date '{reading_date}'."
                ),
                code=failure_codes.DUPLICATE_CANDIDATE,
                related_rows=tuple(rows),
            )
        )
    return warnings
