"""
metering/validators package marker.
"""

from metering.validators.mapping_validator import MappingErrorDetail, MappingValidator, SchemaMappingError
from metering.validators.reading_validator import ReadingValidator, find_duplicates

__all__ = [
    "MappingErrorDetail",
    "MappingValidator",
    "ReadingValidator",
    "SchemaMappingError",
    "find_duplicates",
]
