# backend/saferoute/services/composer.py
"""
Filter/sort state for the reports console.

Six inputs (the enriched batch plus five filter dimensions) live here as plain
attributes. Every setter recomputes the visible list synchronously and overwrites
a single `latest` slot; there is no queue of intermediate filter states.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

from saferoute import settings
from saferoute.models.report import FilterState, FilterUpdate, Report, ReportStatus, SortOrder
from saferoute.services.regions import ALL_BARANGAYS, canonicalize_region
from saferoute.services.timestamps import month_key, to_epoch_millis

log = logging.getLogger(__name__)

ALL_MONTHS = "All Months"
ALL_YEARS = "All Years"
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
YEARS_BACK = 5
_PERIOD_KEY = re.compile(r"^(\d{4})-(\d{2})$")

Listener = Callable[[List[Report]], None]


# ---------------- Pipeline stages, applied in this order ----------------

def filter_by_status(rows: Iterable[Report], tab: ReportStatus | str) -> List[Report]:
    wanted = tab.value if isinstance(tab, ReportStatus) else tab
    return [r for r in rows if (r.status or ReportStatus.pending.value) == wanted]


def _search_fields(r: Report) -> tuple:
    return (r.category, r.location, r.landmark, r.barangay, r.description, r.reporter_name)


def filter_by_search(rows: Iterable[Report], term: str) -> List[Report]:
    needle = (term or "").strip().casefold()
    if not needle:
        return list(rows)
    return [
        r for r in rows
        if any(needle in (v or "").casefold() for v in _search_fields(r))
    ]


def filter_by_region(rows: Iterable[Report], scope: str, *, elevated: bool) -> List[Report]:
    # restricted admins are already scoped by the backing query
    if not elevated:
        return list(rows)
    selected = canonicalize_region(scope or ALL_BARANGAYS)
    if not selected or selected == ALL_BARANGAYS:
        return list(rows)
    return [r for r in rows if canonicalize_region(r.barangay) == selected]


def filter_by_period(rows: Iterable[Report], period: str) -> List[Report]:
    key = (period or "").strip()
    if not key:
        return list(rows)
    return [r for r in rows if month_key(r.datetime) == key]


def attach_epoch(rows: Iterable[Report]) -> List[Report]:
    return [r.model_copy(update={"epoch_ms": to_epoch_millis(r.datetime)}) for r in rows]


def sort_by_time(rows: Iterable[Report], order: SortOrder | str) -> List[Report]:
    return sorted(rows, key=lambda r: r.epoch_ms or 0, reverse=(order == "desc"))


def compose(
    rows: Sequence[Report],
    state: FilterState,
    *,
    elevated: bool,
) -> List[Report]:
    out = filter_by_status(rows, state.status_tab)
    out = filter_by_search(out, state.search_term)
    out = filter_by_region(out, state.region_scope, elevated=elevated)
    out = filter_by_period(out, state.period_filter)
    return sort_by_time(attach_epoch(out), state.sort_order)


# ---------------- Month/year selectors ----------------

def month_options() -> List[str]:
    return [ALL_MONTHS, *MONTH_NAMES]


def year_options(now: Optional[datetime] = None) -> List[str]:
    current = (now or datetime.now(settings.local_zone())).year
    return [ALL_YEARS, *[str(y) for y in range(current, current - YEARS_BACK - 1, -1)]]


def period_key(month: str, year: str) -> str:
    """'YYYY-MM' for a month name + year, '' when either selector is on 'All'."""
    if not month or not year or month == ALL_MONTHS or year == ALL_YEARS:
        return ""
    if month not in MONTH_NAMES:
        return ""
    return f"{year}-{MONTH_NAMES.index(month) + 1:02d}"


def period_selectors(period: str) -> tuple[str, str]:
    """Month name + year for a 'YYYY-MM' key; the two 'All' options otherwise."""
    match = _PERIOD_KEY.match((period or "").strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        return ALL_MONTHS, ALL_YEARS
    return MONTH_NAMES[int(match.group(2)) - 1], match.group(1)


# ---------------- Reactive state ----------------

class FilterComposer:
    def __init__(self, *, elevated: bool, state: Optional[FilterState] = None) -> None:
        self.elevated = elevated
        self.state = state or FilterState()
        self.month = ALL_MONTHS
        self.year = ALL_YEARS
        self._rows: Optional[List[Report]] = None
        self._latest: List[Report] = []
        self._listeners: List[Listener] = []

    # -- output --
    @property
    def latest(self) -> List[Report]:
        return list(self._latest)

    @property
    def ready(self) -> bool:
        """False until the first enriched batch has arrived."""
        return self._rows is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        if self.ready:
            listener(self.latest)
        return lambda: self._listeners.remove(listener)

    def recompute(self) -> List[Report]:
        if self._rows is None:
            return self.latest
        self._latest = compose(self._rows, self.state, elevated=self.elevated)
        log.debug(
            "recomputed view: %d of %d reports (tab=%s period=%r)",
            len(self._latest), len(self._rows), self.state.status_tab.value, self.state.period_filter,
        )
        for listener in list(self._listeners):
            listener(self.latest)
        return self.latest

    # -- inputs --
    def set_reports(self, rows: Sequence[Report]) -> List[Report]:
        raw = [r.id for r in rows if not r.is_enriched]
        if raw:
            raise ValueError(f"refusing raw (unenriched) reports: {raw[:5]}")
        self._rows = list(rows)
        return self.recompute()

    def _set(self, **changes) -> List[Report]:
        if "period_filter" in changes:
            self.month, self.year = period_selectors(changes["period_filter"])
        self.state = self.state.model_copy(update=changes)
        return self.recompute()

    def set_status_tab(self, tab: ReportStatus | str) -> List[Report]:
        return self._set(status_tab=ReportStatus(tab))

    def set_search_term(self, term: Optional[str]) -> List[Report]:
        return self._set(search_term=term or "")

    def set_region_scope(self, scope: Optional[str]) -> List[Report]:
        return self._set(region_scope=scope or ALL_BARANGAYS)

    def set_period_filter(self, period: Optional[str]) -> List[Report]:
        return self._set(period_filter=(period or "").strip())

    def set_sort_order(self, order: SortOrder) -> List[Report]:
        if order not in ("asc", "desc"):
            raise ValueError(f"unknown sort order {order!r}")
        return self._set(sort_order=order)

    def toggle_sort(self) -> List[Report]:
        return self.set_sort_order("asc" if self.state.sort_order == "desc" else "desc")

    def set_month_year(self, month: str, year: str) -> List[Report]:
        month, year = month or ALL_MONTHS, year or ALL_YEARS
        self.state = self.state.model_copy(update={"period_filter": period_key(month, year)})
        # a half-chosen pair ("March" + "All Years") clears the filter but keeps both selectors
        self.month, self.year = month, year
        return self.recompute()

    def apply(self, update: FilterUpdate) -> List[Report]:
        """Apply the fields present on a partial update in one recomputation."""
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        if "search_term" in changes:
            changes["search_term"] = changes["search_term"] or ""
        if "region_scope" in changes:
            changes["region_scope"] = changes["region_scope"] or ALL_BARANGAYS
        if "period_filter" in changes:
            changes["period_filter"] = changes["period_filter"].strip()
        return self._set(**changes)
