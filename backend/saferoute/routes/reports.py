from __future__ import annotations

from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from saferoute.models.report import (
    FilterOptions,
    FilterState,
    FilterUpdate,
    Notice,
    PeriodSelection,
    Report,
    ReportDetail,
    StatusUpdate,
)
from saferoute.services.composer import month_options, year_options
from saferoute.services.console import ReportsConsole
from saferoute.services.export import ExportDocument, NothingToExport, to_csv
from saferoute.services.regions import region_options

router = APIRouter(prefix="/reports", tags=["reports"])


def get_console(request: Request) -> ReportsConsole:
    console = getattr(request.app.state, "console", None)
    if console is None:
        raise HTTPException(status_code=503, detail="Reports console is not running.")
    return console


def _notice_or_raise(notice: Notice) -> Notice:
    if notice.danger:
        raise HTTPException(status_code=500, detail=notice.message)
    return notice


@router.get("", response_model=List[Report])
def list_reports(console: ReportsConsole = Depends(get_console)):
    """Current view: enriched, filtered and sorted by the console's filter state."""
    return console.composer.latest


@router.post("/refresh", response_model=List[Report])
async def refresh_reports(console: ReportsConsole = Depends(get_console)):
    try:
        return await console.refresh()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/identity-cache/reset", response_model=Notice)
def reset_identity_cache(console: ReportsConsole = Depends(get_console)):
    """Drop cached reporter identities (e.g. after users were renamed or re-permissioned)."""
    return console.reset_identity_cache()


# ---------- Filter state ----------
@router.get("/filters", response_model=FilterState)
def get_filters(console: ReportsConsole = Depends(get_console)):
    return console.composer.state


@router.patch("/filters", response_model=List[Report])
def update_filters(update: FilterUpdate, console: ReportsConsole = Depends(get_console)):
    """Set any subset of statusTab / searchTerm / regionScope / periodFilter / sortOrder."""
    return console.composer.apply(update)


@router.post("/filters/sort/toggle", response_model=List[Report])
def toggle_sort(console: ReportsConsole = Depends(get_console)):
    return console.composer.toggle_sort()


@router.put("/filters/period", response_model=List[Report])
def set_period(selection: PeriodSelection, console: ReportsConsole = Depends(get_console)):
    return console.composer.set_month_year(selection.month, selection.year)


@router.get("/filters/options", response_model=FilterOptions)
def filter_options(console: ReportsConsole = Depends(get_console)):
    regions = region_options() if console.session.is_super_admin else [console.session.barangay]
    return FilterOptions(regions=regions, months=month_options(), years=year_options())


# ---------- Export ----------
@router.get("/export", response_model=ExportDocument)
def export_reports(
    format: Literal["json", "csv"] = Query("json", description="json document or csv table"),
    console: ReportsConsole = Depends(get_console),
):
    try:
        doc = console.export()
    except NothingToExport as e:
        raise HTTPException(status_code=409, detail=str(e))
    if format == "csv":
        return PlainTextResponse(to_csv(doc), media_type="text/csv")
    return doc


# ---------- Single report ----------
@router.get("/{report_id}", response_model=ReportDetail)
def open_report(report_id: str, console: ReportsConsole = Depends(get_console)):
    report = console.open_detail(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found.")
    return ReportDetail(report=report, reporter=console.reporter_info())


@router.delete("/{report_id}/detail", status_code=204)
def close_report(report_id: str, console: ReportsConsole = Depends(get_console)):
    if console.selected is not None and console.selected.id == report_id:
        console.close_detail()


@router.patch("/{report_id}/status", response_model=Notice)
async def update_status(report_id: str, body: StatusUpdate, console: ReportsConsole = Depends(get_console)):
    return _notice_or_raise(await console.set_status(report_id, body.status))


@router.delete("/{report_id}", response_model=Notice)
async def delete_report(report_id: str, console: ReportsConsole = Depends(get_console)):
    return _notice_or_raise(await console.delete_report(report_id))
