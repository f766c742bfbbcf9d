"""
metering/mappers/record_builder.py

Turns mapped spreadsheet rows into candidate meter readings.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Mapping, Sequence

from metering import failure_codes
from metering.config import get_ingestion_settings
from metering.domain.meter_reading import CandidateRecord, IngestionDefaults, RowValidationError
from metering.domain.registry import (
    METRIC_LABELS,
    default_unit,
    resolve_facility,
    resolve_metric,
    resolve_unit,
)
from metering.mappers.column_classifier import ColumnMapping, MappingField
from metering.normalizers.date_normalizer import DateParseError, DateParseReason, normalize_date
from metering.normalizers.value_normalizer import ValueParseError, ValueParseReason, normalize_value

SKIP_INSUFFICIENT_DATA = "insufficient data"
SKIP_FILTERED = "filtered"

_DATE_CODES = {
    DateParseReason.UNRECOGNIZED: failure_codes.DATE_UNRECOGNIZED,
    DateParseReason.AMBIGUOUS_TIME_ONLY: failure_codes.DATE_TIME_ONLY,
}
_VALUE_CODES = {
    ValueParseReason.NOT_NUMERIC: failure_codes.VALUE_NOT_NUMERIC,
    ValueParseReason.NON_POSITIVE: failure_codes.VALUE_NON_POSITIVE,
}


def derive_meter_code(facility: str | None, metric_name: str | None) -> str | None:
    """
    Default meter code from facility initials and metric, e.g. ``TH-E-01``.
    """

    if not facility or not metric_name:
        return None
    initials = "".join(word[0] for word in facility.split() if word[0].isalnum()).upper()
    label = METRIC_LABELS.get(metric_name, metric_name)
    if not initials or not label:
        return None
    return f"{initials}-{label[0].upper()}-01"


def derive_meter_name(facility: str | None, metric_name: str | None) -> str | None:
    if not facility or not metric_name:
        return None
    label = METRIC_LABELS.get(metric_name, metric_name)
    return f"{facility} {label} Meter"


class RecordBuilder:
    """
    Applies per-field normalization and defaulting, one candidate per input row.
    """

    def __init__(self, *, default_reading_type: str | None = None) -> None:
        self._default_reading_type = (
            default_reading_type or get_ingestion_settings().default_reading_type
        )

    def build(
        self,
        rows: Sequence[Mapping[str, Any]],
        mapping: ColumnMapping,
        defaults: IngestionDefaults | None = None,
        *,
        meter_filter: str | None = None,
    ) -> list[CandidateRecord]:
        defaults = defaults or IngestionDefaults()
        field_sources = mapping.field_to_source()
        return [
            self.build_row(
                row=row,
                row_number=row_number,
                field_sources=field_sources,
                defaults=defaults,
                meter_filter=meter_filter,
            )
            for row_number, row in enumerate(rows, start=1)
        ]

    def build_row(
        self,
        *,
        row: Mapping[str, Any],
        row_number: int,
        field_sources: Mapping[str, str],
        defaults: IngestionDefaults,
        meter_filter: str | None = None,
    ) -> CandidateRecord:
        """
        Assemble one candidate; never raises for bad cell contents.
        """

        def cell(mapping_field: str) -> Any:
            source = field_sources.get(mapping_field)
            if source is None:
                return None
            value = row.get(source)
            return None if _is_blank(value) else value

        raw_date = cell(MappingField.DATE)
        raw_reading = cell(MappingField.READING)
        if _is_separator_row(row, field_sources, raw_date, raw_reading):
            return CandidateRecord(row_number=row_number, skip_reason=SKIP_INSUFFICIENT_DATA)

        raw_meter_code = _text(cell(MappingField.METER_CODE))
        raw_meter_name = _text(cell(MappingField.METER_NAME))
        if meter_filter and not _matches_filter(meter_filter, raw_meter_code, raw_meter_name):
            return CandidateRecord(row_number=row_number, skip_reason=SKIP_FILTERED)

        issues: list[RowValidationError] = []
        reading_date = self._resolve_date(
            raw_date=raw_date,
            date_mapped=MappingField.DATE in field_sources,
            defaults=defaults,
            row_number=row_number,
            issues=issues,
        )
        value = self._resolve_value(raw_reading=raw_reading, row_number=row_number, issues=issues)

        facility = _resolve_or_raw(cell(MappingField.FACILITY), resolve_facility)
        if facility is None:
            facility = _resolve_or_raw(defaults.facility, resolve_facility)
        metric_name = _resolve_or_raw(cell(MappingField.METRIC), resolve_metric)
        if metric_name is None:
            metric_name = _resolve_or_raw(defaults.metric_name, resolve_metric)
        unit = _resolve_or_raw(cell(MappingField.UNIT), resolve_unit)
        if unit is None:
            unit = _resolve_or_raw(defaults.unit, resolve_unit)
        if unit is None and metric_name is not None:
            unit = default_unit(metric_name)

        # A row carrying only one of code/name uses it for both.
        meter_code = (
            raw_meter_code
            or raw_meter_name
            or defaults.meter_code
            or derive_meter_code(facility, metric_name)
        )
        meter_name = (
            raw_meter_name
            or raw_meter_code
            or defaults.meter_name
            or derive_meter_name(facility, metric_name)
        )
        reading_type = (
            _text(cell(MappingField.READING_TYPE))
            or defaults.reading_type
            or self._default_reading_type
        )

        notes = _text(cell(MappingField.NOTES))
        time_of_day = _text(cell(MappingField.TIME))
        if time_of_day:
            notes = f"{notes}; time {time_of_day}" if notes else f"time {time_of_day}"

        return CandidateRecord(
            row_number=row_number,
            reading_date=reading_date,
            facility=facility,
            meter_code=meter_code,
            meter_name=meter_name,
            metric_name=metric_name,
            value=value,
            unit=unit,
            reading_type=reading_type,
            source_file=defaults.source_file,
            notes=notes,
            issues=tuple(issues),
        )

    @staticmethod
    def _resolve_date(
        *,
        raw_date: Any,
        date_mapped: bool,
        defaults: IngestionDefaults,
        row_number: int,
        issues: list[RowValidationError],
    ) -> str | None:
        if raw_date is None and not date_mapped and defaults.reading_date:
            raw_date = defaults.reading_date
        if raw_date is None:
            message = (
                "Required value is missing."
                if date_mapped
                else "No date column is mapped and no default date was supplied."
            )
            issues.append(
                RowValidationError(
                    row_number=row_number,
                    column="reading_date",
                    message=message,
                    code=failure_codes.REQUIRED_FIELD_MISSING,
                )
            )
            return None
        try:
            return normalize_date(raw_date)
        except DateParseError as exc:
            issues.append(
                RowValidationError(
                    row_number=row_number,
                    column="reading_date",
                    message=str(exc),
                    value=_stringify(raw_date),
                    code=_DATE_CODES[exc.reason],
                )
            )
            return None

    @staticmethod
    def _resolve_value(
        *,
        raw_reading: Any,
        row_number: int,
        issues: list[RowValidationError],
    ) -> float | None:
        if raw_reading is None:
            issues.append(
                RowValidationError(
                    row_number=row_number,
                    column="value",
                    message="Required value is missing.",
                    code=failure_codes.REQUIRED_FIELD_MISSING,
                )
            )
            return None
        try:
            return normalize_value(raw_reading)
        except ValueParseError as exc:
            issues.append(
                RowValidationError(
                    row_number=row_number,
                    column="value",
                    message=str(exc),
                    value=_stringify(raw_reading),
                    code=_VALUE_CODES[exc.reason],
                )
            )
            return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _is_separator_row(
    row: Mapping[str, Any],
    field_sources: Mapping[str, str],
    raw_date: Any,
    raw_reading: Any,
) -> bool:
    # Without a mapped date or reading column only fully blank rows are
    # separators; rows holding data go on to fail with the missing fields.
    if MappingField.DATE in field_sources or MappingField.READING in field_sources:
        return raw_date is None and raw_reading is None
    return all(_is_blank(value) for value in row.values())


def _text(value: Any) -> str | None:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return " ".join(str(value).split())


def _stringify(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _resolve_or_raw(value: Any, resolver: Callable[[str], str | None]) -> str | None:
    text = _text(value)
    if text is None:
        return None
    return resolver(text) or text


def _matches_filter(meter_filter: str, *candidates: str | None) -> bool:
    needle = meter_filter.casefold()
    return any(candidate and needle in candidate.casefold() for candidate in candidates)
