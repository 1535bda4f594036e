# backend/saferoute/services/export.py
from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import BaseModel

from saferoute.models.report import Report
from saferoute.services.composer import ALL_MONTHS, ALL_YEARS
from saferoute.services.regions import ALL_BARANGAYS
from saferoute.services.timestamps import SENTINEL, date_only, time_only
from saferoute.settings import AdminSession

EXPORT_COLUMNS = ["Category", "Landmark", "Barangay", "Description", "Date", "Time"]


class NothingToExport(Exception):
    pass


class ExportRow(BaseModel):
    category: str
    landmark: str
    barangay: str
    description: str
    date: str
    time: str


class ExportDocument(BaseModel):
    """Everything the print routine needs; markup is its business."""
    title: str
    period: str
    barangay: str
    status: str
    total: int
    generated_at: datetime
    rows: List[ExportRow]


def period_label(month: str, year: str) -> str:
    if month and month != ALL_MONTHS and year and year != ALL_YEARS:
        return f"{month} {year}"
    return "All Time"


def barangay_label(session: AdminSession, selected: str) -> str:
    if session.is_super_admin:
        return selected if selected and selected != ALL_BARANGAYS else ALL_BARANGAYS
    return session.barangay


def export_row(r: Report) -> ExportRow:
    return ExportRow(
        category=r.category,
        landmark=r.landmark or SENTINEL,
        barangay=r.barangay or SENTINEL,
        description=r.description or "No description",
        date=date_only(r.datetime),
        time=time_only(r.datetime),
    )


def build_export(
    reports: Sequence[Report],
    *,
    session: AdminSession,
    status: str,
    region_scope: str,
    month: str,
    year: str,
    now: Optional[datetime] = None,
) -> ExportDocument:
    """Snapshot of the current view for printing. Raises NothingToExport on an empty view."""
    if not reports:
        raise NothingToExport("No reports to print")
    period = period_label(month, year)
    return ExportDocument(
        title=f"SafeRoute Incident Report - {period}",
        period=period,
        barangay=barangay_label(session, region_scope),
        status=status.capitalize(),
        total=len(reports),
        generated_at=now or datetime.now(timezone.utc),
        rows=[export_row(r) for r in reports],
    )


def to_csv(doc: ExportDocument) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(EXPORT_COLUMNS)
    for row in doc.rows:
        writer.writerow([row.category, row.landmark, row.barangay, row.description, row.date, row.time])
    return buf.getvalue()
