from __future__ import annotations

import unittest

from metering.domain.meter_reading import IngestionDefaults
from metering.mappers.column_classifier import (
    ColumnClassifier,
    ColumnMapping,
    MappingField,
    collect_headers,
    normalize_header,
)
from metering.validators.mapping_validator import SchemaMappingError


class TestHeaderClassification(unittest.TestCase):
    def setUp(self) -> None:
        self.classifier = ColumnClassifier(sniff_sample_size=25)

    def test_classifies_typical_export_headers(self) -> None:
        headers = ["Date", "Facility", "Meter Code", "Meter Name", "Metric", "Reading Value", "Unit", "Notes"]

        mapping = self.classifier.classify(headers)

        self.assertEqual(mapping.source_for(MappingField.DATE), "Date")
        self.assertEqual(mapping.source_for(MappingField.FACILITY), "Facility")
        self.assertEqual(mapping.source_for(MappingField.METER_CODE), "Meter Code")
        self.assertEqual(mapping.source_for(MappingField.METER_NAME), "Meter Name")
        self.assertEqual(mapping.source_for(MappingField.METRIC), "Metric")
        self.assertEqual(mapping.source_for(MappingField.READING), "Reading Value")
        self.assertEqual(mapping.source_for(MappingField.UNIT), "Unit")
        self.assertEqual(mapping.source_for(MappingField.NOTES), "Notes")
        self.assertEqual(mapping.match_strategies["Reading Value"], "exact")
        self.assertEqual(mapping.collisions, ())

    def test_keyword_rules_follow_priority_order(self) -> None:
        mapping = self.classifier.classify(["Site Usage", "Total Consumption", "Read Day"])

        self.assertEqual(mapping.source_to_field["Site Usage"], MappingField.FACILITY)
        self.assertEqual(mapping.source_to_field["Total Consumption"], MappingField.READING)
        self.assertEqual(mapping.source_to_field["Read Day"], MappingField.DATE)
        self.assertEqual(mapping.match_strategies["Site Usage"], "keyword")

        self.assertEqual(len(mapping.collisions), 1)
        collision = mapping.collisions[0]
        self.assertEqual(collision.header, "Site Usage")
        self.assertEqual(collision.matched_fields, (MappingField.FACILITY, MappingField.READING))
        self.assertEqual(collision.assigned_field, MappingField.FACILITY)

    def test_first_header_claims_field_and_later_contenders_stay_unmapped(self) -> None:
        mapping = self.classifier.classify(["Consumption", "Usage"])

        self.assertEqual(mapping.source_to_field["Consumption"], MappingField.READING)
        self.assertIsNone(mapping.source_to_field["Usage"])
        self.assertEqual(mapping.unmapped_headers(), ("Usage",))
        self.assertEqual(mapping.collisions[0].claimed_by, "Consumption")
        self.assertIsNone(mapping.collisions[0].assigned_field)

    def test_second_exact_header_for_same_field_is_a_collision(self) -> None:
        mapping = self.classifier.classify(["Value", "Reading"])

        self.assertEqual(mapping.source_for(MappingField.READING), "Value")
        self.assertIsNone(mapping.source_to_field["Reading"])
        self.assertEqual(mapping.collisions[0].header, "Reading")

    def test_meter_headers_split_into_code_and_name(self) -> None:
        mapping = self.classifier.classify(["Meter ID", "Meter Description"])

        self.assertEqual(mapping.source_to_field["Meter ID"], MappingField.METER_CODE)
        self.assertEqual(mapping.source_to_field["Meter Description"], MappingField.METER_NAME)

    def test_time_headers_never_become_dates(self) -> None:
        mapping = self.classifier.classify(["Time", "Timestamp", "Reading"])

        self.assertEqual(mapping.source_to_field["Time"], MappingField.TIME)
        self.assertIsNone(mapping.source_for(MappingField.DATE))

    def test_combined_date_time_header_is_a_date(self) -> None:
        mapping = self.classifier.classify(["Date/Time", "Reading"])

        self.assertEqual(mapping.source_to_field["Date/Time"], MappingField.DATE)
        self.assertIsNone(mapping.source_for(MappingField.TIME))

    def test_unknown_headers_stay_unmapped(self) -> None:
        mapping = self.classifier.classify(["Zone", "Reading"])

        self.assertIsNone(mapping.source_to_field["Zone"])
        self.assertEqual(mapping.source_headers, ("Zone", "Reading"))


class TestContentSniffing(unittest.TestCase):
    def setUp(self) -> None:
        self.classifier = ColumnClassifier(sniff_sample_size=25)

    def test_sniffs_date_and_reading_from_cell_values(self) -> None:
        rows = [
            {"When": "2025-03-05", "How Much": "12.5", "Facility": "Talbot House"},
            {"When": "2025-03-06", "How Much": "13.0", "Facility": "Talbot House"},
            {"When": "", "How Much": "n/a", "Facility": "Talbot House"},
        ]

        mapping = self.classifier.classify(collect_headers(rows), rows=rows)

        self.assertEqual(mapping.source_for(MappingField.DATE), "When")
        self.assertEqual(mapping.source_for(MappingField.READING), "How Much")
        self.assertEqual(mapping.match_strategies["When"], "content_sniff")
        self.assertEqual(mapping.match_strategies["How Much"], "content_sniff")

    def test_time_column_holding_dates_is_reclaimed_as_date(self) -> None:
        rows = [
            {"Timestamp": "2025-03-05 10:00", "kWh": 12},
            {"Timestamp": "2025-03-06 10:00", "kWh": 14},
        ]

        mapping = self.classifier.classify(collect_headers(rows), rows=rows)

        self.assertEqual(mapping.source_for(MappingField.DATE), "Timestamp")
        self.assertEqual(mapping.source_for(MappingField.READING), "kWh")
        self.assertIsNone(mapping.source_for(MappingField.TIME))

    def test_time_column_holding_times_is_left_alone(self) -> None:
        rows = [{"Time": "10:30", "Reading": 5}, {"Time": "11:30", "Reading": 6}]

        mapping = self.classifier.classify(collect_headers(rows), rows=rows)

        self.assertEqual(mapping.source_for(MappingField.TIME), "Time")
        self.assertIsNone(mapping.source_for(MappingField.DATE))
        self.assertEqual(
            mapping.missing_required_fields(),
            [MappingField.DATE, MappingField.FACILITY, MappingField.METRIC],
        )

    def test_sniffing_only_samples_configured_rows(self) -> None:
        classifier = ColumnClassifier(sniff_sample_size=2)
        rows = [{"Col": "alpha"}, {"Col": "beta"}] + [{"Col": "2025-03-05"}] * 5

        mapping = classifier.classify(collect_headers(rows), rows=rows)

        self.assertIsNone(mapping.source_for(MappingField.DATE))


class TestOverrideMapping(unittest.TestCase):
    def setUp(self) -> None:
        self.classifier = ColumnClassifier(sniff_sample_size=25)

    def test_override_bypasses_classification_and_accepts_aliases(self) -> None:
        headers = ["Col A", "Col B", "Col C"]

        mapping = self.classifier.from_override(
            headers,
            {"Col A": "value", "Col B": "reading_date", "Col C": None},
        )

        self.assertEqual(mapping.source_to_field["Col A"], MappingField.READING)
        self.assertEqual(mapping.source_to_field["Col B"], MappingField.DATE)
        self.assertIsNone(mapping.source_to_field["Col C"])
        self.assertEqual(mapping.match_strategies, {"Col A": "override", "Col B": "override"})

    def test_override_header_absent_from_data_is_kept(self) -> None:
        with self.assertLogs("metering.mappers.column_classifier", level="WARNING") as logs:
            mapping = self.classifier.from_override(["Date"], {"Date": "date", "Missing": "reading"})

        self.assertEqual(mapping.source_for(MappingField.READING), "Missing")
        self.assertTrue(any("override_header_missing" in line for line in logs.output))

    def test_unknown_field_raises_structured_error(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.classifier.from_override(["Date"], {"Date": "bogus"})

        codes = {error.code for error in ctx.exception.errors}
        self.assertEqual(codes, {"invalid_mapping_field"})

    def test_field_claimed_twice_raises(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.classifier.from_override(["A", "B"], {"A": "value", "B": "reading"})

        self.assertEqual(ctx.exception.errors[0].code, "duplicate_field_claim")
        self.assertEqual(ctx.exception.errors[0].context, {"first_source_column": "A"})

    def test_non_string_field_raises(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.classifier.from_override(["A"], {"A": 123})  # type: ignore[dict-item]

        self.assertEqual(ctx.exception.errors[0].source_column, "A")


class TestColumnMappingHelpers(unittest.TestCase):
    def test_missing_required_fields_respects_defaults(self) -> None:
        mapping = ColumnMapping(
            source_to_field={"Delta": MappingField.READING, "Meter": None},
            source_headers=("Delta", "Meter"),
        )

        self.assertEqual(
            mapping.missing_required_fields(),
            [MappingField.DATE, MappingField.FACILITY, MappingField.METRIC],
        )
        defaults = IngestionDefaults(
            reading_date="2025-02-28",
            facility="Talbot House",
            metric_name="electricity_usage",
        )
        self.assertEqual(mapping.missing_required_fields(defaults), [])

    def test_collect_headers_is_ordered_union(self) -> None:
        rows = [{"b": 1, "a": 2}, {"a": 3, "c": 4}]

        self.assertEqual(collect_headers(rows), ("b", "a", "c"))

    def test_normalize_header(self) -> None:
        self.assertEqual(normalize_header("  Reading_Value "), "readingvalue")


if __name__ == "__main__":
    unittest.main()
