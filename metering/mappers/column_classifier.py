"""
metering/mappers/column_classifier.py

Infers which spreadsheet column feeds which canonical field.

Headers are resolved in two passes: exact field-name matches first, then a
priority-ordered table of keyword groups. A field is claimed by at most one
header; later contenders stay unmapped. When the date or reading column is
still unknown, a sample of cell values can vote on the column type.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from metering.config import get_ingestion_settings
from metering.domain.meter_reading import IngestionDefaults
from metering.logging_utils import log_event
from metering.normalizers.date_normalizer import is_time_only, looks_like_date
from metering.normalizers.value_normalizer import looks_like_number
from metering.validators.mapping_validator import MappingErrorDetail, MappingValidator

logger = logging.getLogger(__name__)


class MappingField:
    DATE = "date"
    TIME = "time"
    METER_CODE = "meter_code"
    METER_NAME = "meter_name"
    READING = "reading"
    UNIT = "unit"
    NOTES = "notes"
    FACILITY = "facility"
    METRIC = "metric"
    READING_TYPE = "reading_type"


MAPPING_FIELDS: tuple[str, ...] = (
    MappingField.DATE,
    MappingField.TIME,
    MappingField.METER_CODE,
    MappingField.METER_NAME,
    MappingField.READING,
    MappingField.UNIT,
    MappingField.NOTES,
    MappingField.FACILITY,
    MappingField.METRIC,
    MappingField.READING_TYPE,
)

REQUIRED_MAPPING_FIELDS: tuple[str, ...] = (MappingField.DATE, MappingField.READING)

# Field names used by the record schema and the mapping form.
FIELD_ALIASES: dict[str, str] = {
    "meter": MappingField.METER_CODE,
    "value": MappingField.READING,
    "reading_date": MappingField.DATE,
    "metric_name": MappingField.METRIC,
}

EXACT_HEADER_FIELDS: dict[str, str] = {
    "date": MappingField.DATE,
    "readingdate": MappingField.DATE,
    "time": MappingField.TIME,
    "readingtime": MappingField.TIME,
    "metercode": MappingField.METER_CODE,
    "meterid": MappingField.METER_CODE,
    "metername": MappingField.METER_NAME,
    "value": MappingField.READING,
    "reading": MappingField.READING,
    "readingvalue": MappingField.READING,
    "unit": MappingField.UNIT,
    "units": MappingField.UNIT,
    "notes": MappingField.NOTES,
    "comments": MappingField.NOTES,
    "facility": MappingField.FACILITY,
    "metric": MappingField.METRIC,
    "metricname": MappingField.METRIC,
    "readingtype": MappingField.READING_TYPE,
}

# Priority order matters: first matching group wins for a header.
KEYWORD_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    (MappingField.FACILITY, re.compile(r"facility|location|building|site")),
    (MappingField.METRIC, re.compile(r"metric|utility|category")),
    (MappingField.READING, re.compile(r"value|reading|consumption|usage|kwh|amount")),
    (MappingField.UNIT, re.compile(r"unit|measure")),
    (MappingField.DATE, re.compile(r"date|day")),
    (MappingField.METER_CODE, re.compile(r"meter[\s_-]*(code|id)")),
    (MappingField.METER_NAME, re.compile(r"meter[\s_-]*(name|description)")),
    (MappingField.NOTES, re.compile(r"note|comment|description")),
    (MappingField.READING_TYPE, re.compile(r"method|type")),
    (MappingField.TIME, re.compile(r"time")),
)


class CellKind:
    DATE = "date"
    NUMBER = "number"
    TIME = "time"
    STRING = "string"


def normalize_header(header: str) -> str:
    """
    Normalize a column name for exact matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


def collect_headers(rows: Iterable[Mapping[str, Any]]) -> tuple[str, ...]:
    """
    Ordered union of the keys seen across all rows.
    """

    seen: dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(key, None)
    return tuple(seen)


def canonical_field_name(name: str) -> str:
    stripped = name.strip()
    return FIELD_ALIASES.get(stripped, stripped)


@dataclass(frozen=True)
class ClassifierCollision:
    """
    A header that matched several fields, or whose field was already claimed.
    """

    header: str
    matched_fields: tuple[str, ...]
    assigned_field: str | None
    claimed_by: str | None = None


@dataclass(frozen=True)
class ColumnMapping:
    """
    Resolved mapping from source column name to canonical field (or None).
    """

    source_to_field: dict[str, str | None]
    source_headers: tuple[str, ...]
    match_strategies: dict[str, str] = field(default_factory=dict)
    collisions: tuple[ClassifierCollision, ...] = ()

    def field_to_source(self) -> dict[str, str]:
        return {
            mapped: source
            for source, mapped in self.source_to_field.items()
            if mapped is not None
        }

    def source_for(self, mapping_field: str) -> str | None:
        return self.field_to_source().get(mapping_field)

    def unmapped_headers(self) -> tuple[str, ...]:
        return tuple(
            header for header in self.source_headers if self.source_to_field.get(header) is None
        )

    def missing_required_fields(self, defaults: IngestionDefaults | None = None) -> list[str]:
        """
        Fields the rows cannot supply and no default covers.
        """

        defaults = defaults or IngestionDefaults()
        mapped = set(self.field_to_source())
        missing = [name for name in REQUIRED_MAPPING_FIELDS if name not in mapped]
        if MappingField.DATE in missing and defaults.reading_date:
            missing.remove(MappingField.DATE)
        if MappingField.FACILITY not in mapped and not defaults.facility:
            missing.append(MappingField.FACILITY)
        if MappingField.METRIC not in mapped and not defaults.metric_name:
            missing.append(MappingField.METRIC)
        return missing


class ColumnClassifier:
    """
    Proposes a column mapping from header names and, as a fallback, cell contents.
    """

    def __init__(self, *, sniff_sample_size: int | None = None) -> None:
        if sniff_sample_size is None:
            sniff_sample_size = get_ingestion_settings().sniff_sample_size
        self._sniff_sample_size = max(1, sniff_sample_size)
        self._validator = MappingValidator(mapping_fields=MAPPING_FIELDS)

    def classify(
        self,
        headers: Sequence[str],
        *,
        rows: Sequence[Mapping[str, Any]] | None = None,
    ) -> ColumnMapping:
        """
        Classify headers; ``rows`` enables content sniffing for date/reading.
        """

        source_headers = tuple(headers)
        resolved: dict[str, str | None] = {header: None for header in source_headers}
        strategies: dict[str, str] = {}
        claimed: dict[str, str] = {}
        collisions: list[ClassifierCollision] = []
        handled: set[str] = set()

        for header in source_headers:
            exact = EXACT_HEADER_FIELDS.get(normalize_header(str(header)))
            if exact is None:
                continue
            handled.add(header)
            if exact in claimed:
                collisions.append(
                    ClassifierCollision(
                        header=header,
                        matched_fields=(exact,),
                        assigned_field=None,
                        claimed_by=claimed[exact],
                    )
                )
                continue
            resolved[header] = exact
            strategies[header] = "exact"
            claimed[exact] = header

        for header in source_headers:
            if header in handled:
                continue
            matches = self._keyword_matches(str(header))
            if not matches:
                continue
            winner = matches[0]
            if winner in claimed:
                collisions.append(
                    ClassifierCollision(
                        header=header,
                        matched_fields=matches,
                        assigned_field=None,
                        claimed_by=claimed[winner],
                    )
                )
                continue
            if len(matches) > 1:
                collisions.append(
                    ClassifierCollision(header=header, matched_fields=matches, assigned_field=winner)
                )
            resolved[header] = winner
            strategies[header] = "keyword"
            claimed[winner] = header

        for collision in collisions:
            log_event(
                logger,
                logging.WARNING,
                "classifier_collision",
                header=collision.header,
                matched_fields=list(collision.matched_fields),
                assigned_field=collision.assigned_field,
                claimed_by=collision.claimed_by,
            )

        if rows:
            self._sniff_missing_fields(
                rows=rows,
                resolved=resolved,
                strategies=strategies,
                claimed=claimed,
            )

        return ColumnMapping(
            source_to_field=resolved,
            source_headers=source_headers,
            match_strategies=strategies,
            collisions=tuple(collisions),
        )

    def from_override(
        self,
        headers: Sequence[str],
        override: Mapping[str, str | None],
    ) -> ColumnMapping:
        """
        Build a mapping from an explicit ``{source column: field}`` override.

        Raises:
            SchemaMappingError: when a field name is unknown or claimed twice.
        """

        normalized: dict[str, str | None] = {}
        pre_errors: list[MappingErrorDetail] = []
        for source_column, mapping_field in override.items():
            if mapping_field is not None and not isinstance(mapping_field, str):
                pre_errors.append(
                    MappingErrorDetail(
                        code="invalid_mapping_field",
                        message="Mapping field names must be strings.",
                        source_column=str(source_column),
                    )
                )
                continue
            if mapping_field is None or not mapping_field.strip():
                normalized[source_column] = None
            else:
                normalized[source_column] = canonical_field_name(mapping_field)

        self._validator.validate(mapping=normalized, pre_errors=pre_errors)

        source_headers = tuple(headers)
        known = set(source_headers)
        for source_column, mapping_field in normalized.items():
            if mapping_field is not None and source_column not in known:
                log_event(
                    logger,
                    logging.WARNING,
                    "override_header_missing",
                    source_column=source_column,
                    mapping_field=mapping_field,
                )

        resolved: dict[str, str | None] = {header: None for header in source_headers}
        resolved.update(normalized)
        strategies = {
            source_column: "override"
            for source_column, mapping_field in normalized.items()
            if mapping_field is not None
        }
        return ColumnMapping(
            source_to_field=resolved,
            source_headers=tuple(resolved),
            match_strategies=strategies,
        )

    @staticmethod
    def _keyword_matches(header: str) -> tuple[str, ...]:
        lowered = header.lower()
        matches: list[str] = []
        for mapping_field, pattern in KEYWORD_RULES:
            if not pattern.search(lowered):
                continue
            if mapping_field == MappingField.DATE and "date" not in lowered and "time" in lowered:
                continue
            if mapping_field == MappingField.TIME and "date" in lowered:
                continue
            matches.append(mapping_field)
        return tuple(matches)

    def _sniff_missing_fields(
        self,
        *,
        rows: Sequence[Mapping[str, Any]],
        resolved: dict[str, str | None],
        strategies: dict[str, str],
        claimed: dict[str, str],
    ) -> None:
        wanted = {
            MappingField.DATE: CellKind.DATE,
            MappingField.READING: CellKind.NUMBER,
        }
        if all(name in claimed for name in wanted):
            return

        sample = rows[: self._sniff_sample_size]
        for mapping_field, kind in wanted.items():
            if mapping_field in claimed:
                continue
            for header, current in resolved.items():
                sniffable = current is None or (
                    mapping_field == MappingField.DATE and current == MappingField.TIME
                )
                if not sniffable:
                    continue
                if self._majority_kind(header, sample) != kind:
                    continue
                if current is not None:
                    claimed.pop(current, None)
                resolved[header] = mapping_field
                strategies[header] = "content_sniff"
                claimed[mapping_field] = header
                log_event(
                    logger,
                    logging.INFO,
                    "classifier_sniffed",
                    header=header,
                    mapping_field=mapping_field,
                    sample_size=len(sample),
                )
                break

    @staticmethod
    def _majority_kind(header: str, sample: Sequence[Mapping[str, Any]]) -> str | None:
        votes: Counter[str] = Counter()
        for row in sample:
            value = row.get(header)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            votes[_cell_kind(value)] += 1
        if not votes:
            return None
        return votes.most_common(1)[0][0]


def _cell_kind(value: Any) -> str:
    if isinstance(value, str) and is_time_only(value.strip()):
        return CellKind.TIME
    if looks_like_date(value):
        return CellKind.DATE
    if looks_like_number(value):
        return CellKind.NUMBER
    return CellKind.STRING
