"""
metering/services/ingestion_service.py

Orchestrates meter-reading ingestion over already-parsed spreadsheet rows.

Each ``ingest`` call walks the same stages:

    idle -> classifying -> building -> validating -> done

    1. ColumnClassifier:  proposes (or accepts) the column mapping
    2. RecordBuilder:     one candidate per input row, in input order
    3. ReadingValidator:  field errors and warnings per candidate,
                           then duplicate detection across the batch

Data problems never raise: they are returned in the IngestionResult so the
caller can show partial success next to the failures. Only contract
violations by the caller (rows that are not mappings, unknown mapping
fields, a negative preview limit) raise.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from metering import failure_codes
from metering.config import get_ingestion_settings
from metering.domain.meter_reading import (
    CanonicalRecord,
    IngestionDefaults,
    IngestionResult,
    IngestionWarning,
    RowSkip,
    RowValidationError,
)
from metering.logging_utils import log_event, log_row_error, log_stage
from metering.mappers.column_classifier import ColumnClassifier, ColumnMapping, MappingField, collect_headers
from metering.mappers.record_builder import RecordBuilder
from metering.validators.reading_validator import ReadingValidator, find_duplicates

logger = logging.getLogger(__name__)

# Field names accepted by manual (form) entry, keyed by mapping field.
MANUAL_ENTRY_SOURCES: dict[str, str] = {
    MappingField.DATE: "reading_date",
    MappingField.FACILITY: "facility",
    MappingField.METER_CODE: "meter_code",
    MappingField.METER_NAME: "meter_name",
    MappingField.METRIC: "metric_name",
    MappingField.READING: "value",
    MappingField.UNIT: "unit",
    MappingField.READING_TYPE: "reading_type",
    MappingField.NOTES: "notes",
}


class IngestionMode:
    PREVIEW = "preview"
    COMMIT = "commit"


class PipelineStage:
    IDLE = "idle"
    CLASSIFYING = "classifying"
    BUILDING = "building"
    VALIDATING = "validating"
    DONE = "done"


_ALLOWED_MODES = {IngestionMode.PREVIEW, IngestionMode.COMMIT}


@dataclass(frozen=True)
class IngestionOptions:
    """
    Per-call ingestion options.

    ``mapping_override`` maps source column names to mapping fields and
    bypasses column classification entirely. ``strict_units`` turns
    unit/metric mismatches into row failures for this call.
    """

    mode: str = IngestionMode.COMMIT
    preview_limit: int | None = None
    defaults: IngestionDefaults = field(default_factory=IngestionDefaults)
    mapping_override: Mapping[str, str | None] | None = None
    meter_filter: str | None = None
    strict_units: bool | None = None


class IngestionService:
    """
    Coordinates column classification, record building, and validation.
    """

    def __init__(
        self,
        *,
        preview_limit: int,
        strict_units: bool,
        log_validation_errors: bool,
        classifier: ColumnClassifier | None = None,
        builder: RecordBuilder | None = None,
    ) -> None:
        self._preview_limit = max(0, preview_limit)
        self._strict_units = strict_units
        self._log_validation_errors = log_validation_errors
        self._classifier = classifier or ColumnClassifier()
        self._builder = builder or RecordBuilder()

    def ingest(
        self,
        rows: Iterable[Mapping[str, Any]],
        options: IngestionOptions | None = None,
    ) -> IngestionResult:
        """
        Run the full pipeline over ``rows``.

        Preview mode returns at most ``preview_limit`` records but the
        complete error and warning lists for every row. Commit mode returns
        every successful record; whether failures block the batch is the
        caller's decision.

        Raises:
            TypeError: ``rows`` is not an iterable of mappings.
            ValueError: unknown mode or negative preview limit.
            SchemaMappingError: ``mapping_override`` names unknown fields.
        """
        options = options or IngestionOptions()
        if options.mode not in _ALLOWED_MODES:
            raise ValueError(f"Unknown ingestion mode {options.mode!r}; expected one of {sorted(_ALLOWED_MODES)}.")
        preview_limit = self._preview_limit if options.preview_limit is None else options.preview_limit
        if preview_limit < 0:
            raise ValueError("preview_limit must be zero or greater.")

        materialized = _materialize_rows(rows)
        defaults = options.defaults
        self._log_stage(PipelineStage.IDLE, mode=options.mode, total_rows=len(materialized))

        self._log_stage(PipelineStage.CLASSIFYING)
        mapping = self._resolve_mapping(materialized, options)
        missing = mapping.missing_required_fields(defaults)
        if missing:
            log_event(
                logger,
                logging.WARNING,
                "mapping_incomplete",
                missing_fields=missing,
                source_headers=list(mapping.source_headers),
            )

        self._log_stage(PipelineStage.BUILDING)
        candidates = self._builder.build(
            materialized,
            mapping,
            defaults,
            meter_filter=options.meter_filter,
        )

        self._log_stage(PipelineStage.VALIDATING)
        strict_units = self._strict_units if options.strict_units is None else options.strict_units
        validator = ReadingValidator(strict_units=strict_units)

        numbered_records: list[tuple[int, CanonicalRecord]] = []
        errors: list[RowValidationError] = []
        warnings: list[IngestionWarning] = []
        skipped: list[RowSkip] = []
        failed_rows: list[int] = []

        for candidate in candidates:
            if candidate.is_skipped:
                skipped.append(RowSkip(row_number=candidate.row_number, reason=str(candidate.skip_reason)))
                continue
            record, row_errors, row_warnings = validator.validate(candidate)
            warnings.extend(row_warnings)
            if row_errors or record is None:
                failed_rows.append(candidate.row_number)
                for error in row_errors:
                    self._record_error(errors, error)
                continue
            numbered_records.append((candidate.row_number, record))

        if missing:
            warnings.append(_incomplete_mapping_warning(missing))
        warnings.extend(_collision_warnings(mapping))
        warnings.extend(find_duplicates(numbered_records))
        warnings.sort(key=lambda warning: warning.row_number or 0)

        records = [record for _, record in numbered_records]
        if options.mode == IngestionMode.PREVIEW:
            records = records[:preview_limit]

        result = IngestionResult(
            mode=options.mode,
            records=tuple(records),
            errors=tuple(errors),
            warnings=tuple(warnings),
            skipped=tuple(skipped),
            mapping=mapping,
            total_rows=len(materialized),
            rows_succeeded=len(numbered_records),
            rows_failed=len(failed_rows),
            source_file=defaults.source_file,
            failed_rows=tuple(failed_rows),
        )
        self._log_stage(PipelineStage.DONE)
        log_event(
            logger,
            logging.INFO,
            "ingestion_completed",
            mode=result.mode,
            total_rows=result.total_rows,
            rows_succeeded=result.rows_succeeded,
            rows_failed=result.rows_failed,
            rows_skipped=len(result.skipped),
            warnings=len(result.warnings),
            source_file=result.source_file,
        )
        return result

    def preview(
        self,
        rows: Iterable[Mapping[str, Any]],
        options: IngestionOptions | None = None,
    ) -> IngestionResult:
        base = options or IngestionOptions()
        return self.ingest(rows, _with_mode(base, IngestionMode.PREVIEW))

    def commit(
        self,
        rows: Iterable[Mapping[str, Any]],
        options: IngestionOptions | None = None,
    ) -> IngestionResult:
        base = options or IngestionOptions()
        return self.ingest(rows, _with_mode(base, IngestionMode.COMMIT))

    def validate_manual_entry(
        self,
        entry: Mapping[str, Any],
        *,
        defaults: IngestionDefaults | None = None,
    ) -> tuple[CanonicalRecord | None, list[RowValidationError], list[IngestionWarning]]:
        """
        Validate one reading typed into a form, keyed by record field names.
        """

        if not isinstance(entry, Mapping):
            raise TypeError("entry must be a mapping of record field names to values.")
        defaults = defaults or IngestionDefaults(reading_type="manual")
        candidate = self._builder.build_row(
            row=entry,
            row_number=1,
            field_sources=MANUAL_ENTRY_SOURCES,
            defaults=defaults,
        )
        if candidate.is_skipped:
            return (
                None,
                [
                    RowValidationError(
                        row_number=1,
                        column=column,
                        message="Required value is missing.",
                        code=failure_codes.REQUIRED_FIELD_MISSING,
                    )
                    for column in ("reading_date", "value")
                ],
                [],
            )
        return ReadingValidator(strict_units=self._strict_units).validate(candidate)

    def _resolve_mapping(
        self,
        rows: list[Mapping[str, Any]],
        options: IngestionOptions,
    ) -> ColumnMapping:
        headers = collect_headers(rows)
        if options.mapping_override is not None:
            return self._classifier.from_override(headers, options.mapping_override)
        return self._classifier.classify(headers, rows=rows)

    def _record_error(
        self,
        captured_errors: list[RowValidationError],
        error: RowValidationError,
    ) -> None:
        if self._log_validation_errors:
            log_row_error(logger, error)
        captured_errors.append(error)

    @staticmethod
    def _log_stage(stage: str, **fields: Any) -> None:
        log_stage(logger, stage, **fields)


def _materialize_rows(rows: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        raise TypeError("rows must be an iterable of mappings (one per spreadsheet row).")
    materialized = list(rows)
    for index, row in enumerate(materialized, start=1):
        if not isinstance(row, Mapping):
            raise TypeError(f"Row {index} is a {type(row).__name__}, expected a mapping of column name to cell value.")
    return materialized


def _incomplete_mapping_warning(missing: list[str]) -> IngestionWarning:
    return IngestionWarning(
        message=(
            f"No column is mapped to {', '.join(missing)} and no default was supplied; "
            "rows cannot provide these fields."
        ),
        code=failure_codes.MAPPING_INCOMPLETE,
    )


def _collision_warnings(mapping: ColumnMapping) -> list[IngestionWarning]:
    warnings: list[IngestionWarning] = []
    for collision in mapping.collisions:
        if collision.assigned_field is None:
            message = (
                f"Column '{collision.header}' looks like {collision.matched_fields[0]}, "
                f"which is already taken by '{collision.claimed_by}'; the column is ignored."
            )
        else:
            message = (
                f"Column '{collision.header}' matches {', '.join(collision.matched_fields)}; "
                f"using {collision.assigned_field}."
            )
        warnings.append(
            IngestionWarning(
                message=message,
                code=failure_codes.CLASSIFIER_COLLISION,
                column=collision.header,
            )
        )
    return warnings


def _with_mode(options: IngestionOptions, mode: str) -> IngestionOptions:
    return IngestionOptions(
        mode=mode,
        preview_limit=options.preview_limit,
        defaults=options.defaults,
        mapping_override=options.mapping_override,
        meter_filter=options.meter_filter,
        strict_units=options.strict_units,
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_ingestion_service() -> IngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_ingestion_settings()
    return IngestionService(
        preview_limit=settings.preview_limit,
        strict_units=settings.strict_units,
        log_validation_errors=settings.log_validation_errors,
        classifier=ColumnClassifier(sniff_sample_size=settings.sniff_sample_size),
        builder=RecordBuilder(default_reading_type=settings.default_reading_type),
    )


def ingest(
    rows: Iterable[Mapping[str, Any]],
    options: IngestionOptions | None = None,
) -> IngestionResult:
    """
    Run one ingestion with the shared, settings-driven service.
    """
    return get_ingestion_service().ingest(rows, options)
