"""
metering/config.py

Environment-driven configuration for the ingestion pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class IngestionSettings:
    """
    Runtime settings for meter-reading ingestion.
    """

    preview_limit: int = 10
    sniff_sample_size: int = 25
    strict_units: bool = False
    log_validation_errors: bool = True
    default_reading_type: str = "file_import"


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return IngestionSettings(
        preview_limit=max(0, _get_int_env("METER_INGEST_PREVIEW_LIMIT", 10)),
        sniff_sample_size=max(1, _get_int_env("METER_INGEST_SNIFF_SAMPLE_SIZE", 25)),
        strict_units=_get_bool_env("METER_INGEST_STRICT_UNITS", False),
        log_validation_errors=_get_bool_env("METER_INGEST_LOG_VALIDATION_ERRORS", True),
        default_reading_type=_get_str_env("METER_INGEST_DEFAULT_READING_TYPE", "file_import"),
    )
