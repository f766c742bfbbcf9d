from __future__ import annotations

import pytest
from pydantic import ValidationError

from metering.mappers.column_classifier import ColumnClassifier
from metering.mappers.record_builder import RecordBuilder
from metering.schemas.ingestion import CanonicalRecordResponse, IngestionResultResponse
from metering.services.ingestion_service import IngestionMode, IngestionOptions, IngestionService


@pytest.fixture()
def result():
    service = IngestionService(
        preview_limit=1,
        strict_units=False,
        log_validation_errors=False,
        classifier=ColumnClassifier(sniff_sample_size=25),
        builder=RecordBuilder(default_reading_type="file_import"),
    )
    rows = [
        {"Date": "2025-03-05", "Facility": "Chapel Gate", "Metric": "Waste", "Reading": "40 kg"},
        {"Date": "2025-03-06", "Facility": "Chapel Gate", "Metric": "Waste", "Reading": "41 kg"},
        {"Date": "10:30", "Facility": "Chapel Gate", "Metric": "Waste", "Reading": "42 kg"},
        {"Date": "", "Facility": "", "Metric": "", "Reading": ""},
    ]
    return service.ingest(rows, IngestionOptions(mode=IngestionMode.PREVIEW))


def test_response_mirrors_ingestion_result(result) -> None:
    response = IngestionResultResponse.from_result(result)

    assert response.mode == "preview"
    assert response.total_rows == 4
    assert response.rows_succeeded == 2
    assert response.rows_failed == 1
    assert response.rows_skipped == 1
    assert response.hidden_records == 1
    assert len(response.records) == 1
    assert response.records[0].meter_code == "CG-W-01"
    assert response.records[0].unit == "kg"
    assert response.errors[0].rendered.startswith("Row 3: reading_date – ")
    assert response.skipped[0].row_number == 4
    assert response.column_mapping["Reading"] == "reading"


def test_response_serializes_to_json(result) -> None:
    payload = IngestionResultResponse.from_result(result).model_dump(mode="json")

    assert payload["records"][0]["reading_date"] == "2025-03-05"
    assert payload["errors"][0]["code"] == "date_time_only"


def test_record_response_rejects_non_positive_value() -> None:
    with pytest.raises(ValidationError):
        CanonicalRecordResponse(
            reading_date="2025-03-05",
            facility="Chapel Gate",
            meter_code="CG-W-01",
            meter_name="Chapel Gate Waste Meter",
            metric_name="waste_usage",
            value=0,
            unit="kg",
            reading_type="file_import",
        )
