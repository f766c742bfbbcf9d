"""Shared failure and warning codes for ingestion error reporting."""

DATE_UNRECOGNIZED = "date_unrecognized"
DATE_TIME_ONLY = "date_time_only"
INVALID_DATE_FORMAT = "invalid_date_format"
VALUE_NOT_NUMERIC = "value_not_numeric"
VALUE_NON_POSITIVE = "value_non_positive"
ENUM_MISMATCH = "enum_mismatch"
REQUIRED_FIELD_MISSING = "required_field_missing"
FIELD_TOO_SHORT = "field_too_short"

UNIT_METRIC_MISMATCH = "unit_metric_mismatch"
DUPLICATE_CANDIDATE = "duplicate_candidate"
CLASSIFIER_COLLISION = "classifier_collision"
MAPPING_INCOMPLETE = "mapping_incomplete"

ROW_FAILURES = [
    DATE_UNRECOGNIZED,
    DATE_TIME_ONLY,
    INVALID_DATE_FORMAT,
    VALUE_NOT_NUMERIC,
    VALUE_NON_POSITIVE,
    ENUM_MISMATCH,
    REQUIRED_FIELD_MISSING,
    FIELD_TOO_SHORT,
]

BATCH_WARNINGS = [
    UNIT_METRIC_MISMATCH,
    DUPLICATE_CANDIDATE,
    CLASSIFIER_COLLISION,
    MAPPING_INCOMPLETE,
]
