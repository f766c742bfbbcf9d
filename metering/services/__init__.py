"""
metering/services package marker.
"""

from metering.services.ingestion_service import (
    IngestionMode,
    IngestionOptions,
    IngestionService,
    PipelineStage,
    get_ingestion_service,
    ingest,
)

__all__ = [
    "IngestionMode",
    "IngestionOptions",
    "IngestionService",
    "PipelineStage",
    "get_ingestion_service",
    "ingest",
]
