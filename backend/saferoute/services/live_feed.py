# backend/saferoute/services/live_feed.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from saferoute.models.report import Report

log = logging.getLogger(__name__)

SnapshotFetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]


def parse_batch(items: List[Dict[str, Any]]) -> List[Report]:
    """Stored items -> Report models. An item without an id cannot be addressed, skip it."""
    reports: List[Report] = []
    for item in items:
        try:
            reports.append(Report.model_validate(item))
        except ValidationError as e:
            log.warning("skipping malformed report item %s: %s", item.get("id"), e)
    return reports


class ReportFeed:
    """
    Live query over the reports collection.

    Every publish is a full snapshot, so only the most recent undelivered one
    matters: a consumer that falls behind skips straight to the newest batch.
    """

    def __init__(self) -> None:
        self._latest: Optional[List[Report]] = None
        self._pending: Optional[List[Report]] = None
        self._signal = asyncio.Event()
        self._closed = False

    @property
    def latest(self) -> Optional[List[Report]]:
        return self._latest

    def publish(self, batch: List[Report]) -> None:
        self._latest = list(batch)
        self._pending = self._latest
        self._signal.set()

    def close(self) -> None:
        self._closed = True
        self._signal.set()

    async def __aiter__(self) -> AsyncIterator[List[Report]]:
        while True:
            await self._signal.wait()
            self._signal.clear()
            if self._pending is not None:
                batch, self._pending = self._pending, None
                yield batch
            if self._closed:
                return


async def poll_reports(feed: ReportFeed, fetch: SnapshotFetcher, interval: float) -> None:
    """
    Re-scan the table every `interval` seconds and publish when the snapshot changed.
    Store errors are logged and retried on the next tick.
    """
    previous: Optional[List[Dict[str, Any]]] = None
    while True:
        try:
            items = await fetch()
        except Exception as e:
            log.warning("report snapshot failed: %s", e)
        else:
            if items != previous:
                previous = items
                feed.publish(parse_batch(items))
        await asyncio.sleep(interval)
