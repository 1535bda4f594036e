# backend/saferoute/services/console.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from saferoute.models.report import Identity, Notice, Report, ReportStatus
from saferoute.services.composer import FilterComposer
from saferoute.services.enrichment import EnrichmentPipeline
from saferoute.services.export import ExportDocument, build_export
from saferoute.services.identity import Directory, IdentityResolver
from saferoute.services.identity_cache import IdentityCache
from saferoute.services.live_feed import ReportFeed, parse_batch, poll_reports
from saferoute.settings import AdminSession

log = logging.getLogger(__name__)


class ReportStore(Protocol):
    async def snapshot(self, barangay: Optional[str] = None) -> List[Dict[str, Any]]: ...
    async def set_status(self, report_id: str, status: str) -> None: ...
    async def delete(self, report_id: str) -> None: ...


def _store_message(e: Exception, default: str) -> str:
    if isinstance(e, ClientError):
        return e.response.get("Error", {}).get("Message") or default
    return str(e) or default


class ReportsConsole:
    """
    One admin's live view: feed -> enrichment -> filter composer, plus the open
    detail record and the two mutations the screen offers.
    """

    def __init__(
        self,
        session: AdminSession,
        directory: Directory,
        store: ReportStore,
        cache: Optional[IdentityCache] = None,
    ) -> None:
        self.session = session
        self.store = store
        self.cache = cache if cache is not None else IdentityCache()
        self.resolver = IdentityResolver(directory, self.cache, acting_admin_name=session.acting_name)
        self.pipeline = EnrichmentPipeline(self.resolver)
        self.composer = FilterComposer(elevated=session.is_super_admin)
        self.feed = ReportFeed()
        self.selected: Optional[Report] = None
        self._tasks: List[asyncio.Task] = []

    # ---------------- Live wiring ----------------
    @property
    def scope(self) -> Optional[str]:
        """Server-side barangay filter; None for the all-barangays role."""
        return None if self.session.is_super_admin else self.session.barangay

    async def fetch_snapshot(self) -> List[Dict[str, Any]]:
        return await self.store.snapshot(self.scope)

    def start(self, poll_seconds: float) -> None:
        self._tasks.append(asyncio.create_task(self.pipeline.run(self.feed, self.composer.set_reports)))
        if poll_seconds > 0:
            self._tasks.append(asyncio.create_task(poll_reports(self.feed, self.fetch_snapshot, poll_seconds)))
        log.info("reports console started (role=%s barangay=%s)", self.session.role, self.session.barangay)

    async def stop(self) -> None:
        self.feed.close()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def refresh(self) -> List[Report]:
        """Pull one snapshot now instead of waiting for the poller."""
        batch = parse_batch(await self.fetch_snapshot())
        await self.pipeline.submit(batch, self.composer.set_reports)
        return self.composer.latest

    def reset_identity_cache(self) -> Notice:
        """Forget every resolved reporter; the next batch looks them up again."""
        dropped = len(self.cache)
        self.cache.clear()
        log.info("identity cache cleared (%d entries)", dropped)
        return Notice(message=f"Cleared {dropped} cached reporters.")

    # ---------------- Detail record ----------------
    def find(self, report_id: str) -> Optional[Report]:
        for r in self.composer.latest:
            if r.id == report_id:
                return r
        return None

    def open_detail(self, report_id: str) -> Optional[Report]:
        self.selected = self.find(report_id)
        return self.selected

    def close_detail(self) -> None:
        self.selected = None

    def reporter_info(self) -> Identity:
        if self.selected is None:
            return Identity()
        return self.selected.reporter()

    # ---------------- Mutations ----------------
    async def set_status(self, report_id: str, status: ReportStatus) -> Notice:
        try:
            await self.store.set_status(report_id, status.value)
        except (ClientError, BotoCoreError) as e:
            log.warning("status update failed for %s: %s", report_id, e)
            return Notice(message=_store_message(e, "Could not update status."), danger=True)
        # the next live batch carries the new status; only the open record is patched now
        if self.selected is not None and self.selected.id == report_id:
            self.selected = self.selected.model_copy(update={"status": status.value})
        return Notice(message=f"Marked {status.value}.")

    async def delete_report(self, report_id: str) -> Notice:
        try:
            await self.store.delete(report_id)
        except (ClientError, BotoCoreError) as e:
            log.warning("delete failed for %s: %s", report_id, e)
            return Notice(message=_store_message(e, "Could not delete report."), danger=True)
        self.close_detail()
        return Notice(message="Report deleted.")

    # ---------------- Export ----------------
    def export(self) -> ExportDocument:
        state = self.composer.state
        return build_export(
            self.composer.latest,
            session=self.session,
            status=state.status_tab.value,
            region_scope=state.region_scope,
            month=self.composer.month,
            year=self.composer.year,
        )
