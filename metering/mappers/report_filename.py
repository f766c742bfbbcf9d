"""
metering/mappers/report_filename.py

Metadata carried in vendor daily-report filenames, e.g.
``20250228_Daily Report_THE01_All Meters Delta.xlsx``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath

from metering.normalizers.date_normalizer import DateParseError, normalize_date

_DAILY_REPORT = re.compile(r"(?P<date>\d{8})_Daily Report_(?P<site>[A-Z0-9]+)", re.IGNORECASE)


@dataclass(frozen=True)
class ReportFileInfo:
    report_date: str
    site_code: str
    filename: str


def parse_report_filename(filename: str) -> ReportFileInfo | None:
    """
    Return the report date and site code, or None for other filenames.
    """

    name = PurePath(filename).name
    match = _DAILY_REPORT.search(name)
    if match is None:
        return None
    try:
        report_date = normalize_date(match.group("date"))
    except DateParseError:
        return None
    return ReportFileInfo(
        report_date=report_date,
        site_code=match.group("site").upper(),
        filename=name,
    )
