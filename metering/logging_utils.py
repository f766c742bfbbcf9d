"""
metering/logging_utils.py

Structured log lines for the ingestion pipeline.

Each line is a single JSON object carrying an ``event`` key; fields whose
value is None are left out so collision and stage lines stay short.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from metering.domain.meter_reading import RowValidationError


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"event": event}
    payload.update({key: value for key, value in fields.items() if value is not None})
    # Unit symbols such as "m³" are kept readable.
    logger.log(level, json.dumps(payload, default=str, sort_keys=True, ensure_ascii=False))


def log_stage(logger: logging.Logger, stage: str, **fields: Any) -> None:
    log_event(logger, logging.DEBUG, "ingestion_stage", stage=stage, **fields)


def log_row_error(logger: logging.Logger, error: RowValidationError) -> None:
    """
    Log one row failure at WARNING with its code and offending cell.
    """

    log_event(
        logger,
        logging.WARNING,
        "row_validation_error",
        row_number=error.row_number,
        column=error.column,
        code=error.code,
        message=error.message,
        value=error.value,
    )
