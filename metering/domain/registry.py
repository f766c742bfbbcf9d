"""
metering/domain/registry.py

Closed enumerations for facilities, metrics, and units.
"""

from __future__ import annotations

import re
from typing import Any


class Facility:
    TALBOT_HOUSE = "Talbot House"
    KIMMERIDGE_HOUSE = "Kimmeridge House"
    POOLE_GATEWAY = "Poole Gateway"
    CHAPEL_GATE = "Chapel Gate"


class Metric:
    ELECTRICITY = "electricity_usage"
    WATER = "water_usage"
    GAS = "gas_usage"
    WASTE = "waste_usage"
    CARBON = "carbon_usage"


class Unit:
    KWH = "kWh"
    CUBIC_METRE = "m³"
    LITRE = "L"
    KILOGRAM = "kg"
    TONNE = "tons"


FACILITIES: frozenset[str] = frozenset(
    {
        Facility.TALBOT_HOUSE,
        Facility.KIMMERIDGE_HOUSE,
        Facility.POOLE_GATEWAY,
        Facility.CHAPEL_GATE,
    }
)

METRICS: frozenset[str] = frozenset(
    {
        Metric.ELECTRICITY,
        Metric.WATER,
        Metric.GAS,
        Metric.WASTE,
        Metric.CARBON,
    }
)

UNITS: frozenset[str] = frozenset(
    {
        Unit.KWH,
        Unit.CUBIC_METRE,
        Unit.LITRE,
        Unit.KILOGRAM,
        Unit.TONNE,
    }
)

# First entry is the default unit for the metric.
EXPECTED_UNITS: dict[str, tuple[str, ...]] = {
    Metric.ELECTRICITY: (Unit.KWH,),
    Metric.WATER: (Unit.CUBIC_METRE, Unit.LITRE),
    Metric.GAS: (Unit.CUBIC_METRE, Unit.KWH),
    Metric.WASTE: (Unit.KILOGRAM, Unit.TONNE),
    Metric.CARBON: (Unit.TONNE, Unit.KILOGRAM),
}

METRIC_LABELS: dict[str, str] = {
    Metric.ELECTRICITY: "Electricity",
    Metric.WATER: "Water",
    Metric.GAS: "Gas",
    Metric.WASTE: "Waste",
    Metric.CARBON: "Carbon",
}

_METRIC_KEYWORDS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"electric|energy|power"), Metric.ELECTRICITY),
    (re.compile(r"water"), Metric.WATER),
    (re.compile(r"gas"), Metric.GAS),
    (re.compile(r"waste"), Metric.WASTE),
    (re.compile(r"carbon|co2|emission"), Metric.CARBON),
)

_UNIT_ALIASES: dict[str, str] = {
    "kwh": Unit.KWH,
    "m³": Unit.CUBIC_METRE,
    "m3": Unit.CUBIC_METRE,
    "m^3": Unit.CUBIC_METRE,
    "cubic meter": Unit.CUBIC_METRE,
    "cubic meters": Unit.CUBIC_METRE,
    "cubic metre": Unit.CUBIC_METRE,
    "cubic metres": Unit.CUBIC_METRE,
    "l": Unit.LITRE,
    "litre": Unit.LITRE,
    "litres": Unit.LITRE,
    "liter": Unit.LITRE,
    "liters": Unit.LITRE,
    "kg": Unit.KILOGRAM,
    "kgs": Unit.KILOGRAM,
    "kilogram": Unit.KILOGRAM,
    "kilograms": Unit.KILOGRAM,
    "t": Unit.TONNE,
    "ton": Unit.TONNE,
    "tons": Unit.TONNE,
    "tonne": Unit.TONNE,
    "tonnes": Unit.TONNE,
}

_FACILITY_LOOKUP: dict[str, str] = {
    " ".join(name.casefold().split()): name for name in FACILITIES
}


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def resolve_facility(value: Any) -> str | None:
    """
    Return the canonical facility name for a loosely-typed cell, if any.
    """

    return _FACILITY_LOOKUP.get(_clean(value).casefold())


def resolve_metric(value: Any) -> str | None:
    """
    Return the canonical metric name for a cell such as "Electricity" or "water_usage".
    """

    text = _clean(value).casefold()
    if not text:
        return None
    if text in METRICS:
        return text
    for pattern, metric in _METRIC_KEYWORDS:
        if pattern.search(text):
            return metric
    return None


def resolve_unit(value: Any) -> str | None:
    text = _clean(value)
    if text in UNITS:
        return text
    return _UNIT_ALIASES.get(text.casefold())


def expected_units(metric: str) -> tuple[str, ...]:
    return EXPECTED_UNITS.get(metric, ())


def default_unit(metric: str) -> str | None:
    units = expected_units(metric)
    return units[0] if units else None
