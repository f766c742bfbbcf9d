"""
metering/mappers package marker.
"""

from metering.mappers.column_classifier import (
    MAPPING_FIELDS,
    REQUIRED_MAPPING_FIELDS,
    ClassifierCollision,
    ColumnClassifier,
    ColumnMapping,
    MappingField,
    collect_headers,
)
from metering.mappers.record_builder import RecordBuilder, derive_meter_code, derive_meter_name
from metering.mappers.report_filename import ReportFileInfo, parse_report_filename

__all__ = [
    "MAPPING_FIELDS",
    "REQUIRED_MAPPING_FIELDS",
    "ClassifierCollision",
    "ColumnClassifier",
    "ColumnMapping",
    "MappingField",
    "RecordBuilder",
    "ReportFileInfo",
    "collect_headers",
    "derive_meter_code",
    "derive_meter_name",
    "parse_report_filename",
]
