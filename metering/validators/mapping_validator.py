"""
metering/validators/mapping_validator.py

Validation for caller-supplied column mappings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    mapping_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None


class SchemaMappingError(ValueError):
    """
    Raised when a column mapping references fields outside the canonical set.

    This signals a caller bug, not bad spreadsheet data.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "mapping_field": error.mapping_field,
                    "source_column": error.source_column,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class MappingValidator:
    """
    Validates resolved source-to-field mappings.
    """

    def __init__(self, *, mapping_fields: Sequence[str]) -> None:
        self._mapping_fields = tuple(mapping_fields)
        self._field_set = set(self._mapping_fields)

    def validate(
        self,
        *,
        mapping: Mapping[str, str | None],
        pre_errors: Sequence[MappingErrorDetail] | None = None,
    ) -> None:
        """
        Validate mapping and raise structured errors if invalid.
        """

        errors: list[MappingErrorDetail] = list(pre_errors or [])
        claimed_by: dict[str, str] = {}

        for source_column, mapping_field in mapping.items():
            if mapping_field is None:
                continue
            if mapping_field not in self._field_set:
                errors.append(
                    MappingErrorDetail(
                        code="invalid_mapping_field",
                        message="Mapping contains unknown field name.",
                        mapping_field=mapping_field,
                        source_column=source_column,
                        context={"allowed_fields": list(self._mapping_fields)},
                    )
                )
                continue
            if mapping_field in claimed_by:
                errors.append(
                    MappingErrorDetail(
                        code="duplicate_field_claim",
                        message="Field is mapped from more than one source column.",
                        mapping_field=mapping_field,
                        source_column=source_column,
                        context={"first_source_column": claimed_by[mapping_field]},
                    )
                )
                continue
            claimed_by[mapping_field] = source_column

        if errors:
            bad_fields = sorted({error.mapping_field for error in errors if error.mapping_field})
            raise SchemaMappingError(
                message=f"Column mapping validation failed for fields: {', '.join(bad_fields) or 'unknown'}.",
                errors=errors,
            )
