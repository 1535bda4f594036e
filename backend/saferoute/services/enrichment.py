# backend/saferoute/services/enrichment.py
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, Callable, List, Sequence, Set

from saferoute.models.report import DEFAULT_IDENTITY, Identity, Report
from saferoute.services.identity import IdentityResolver

log = logging.getLogger(__name__)

BatchSink = Callable[[List[Report]], None]


class EnrichmentPipeline:
    """
    Raw batches in, enriched batches out.

    Every report of a batch is resolved concurrently and the batch is emitted only
    once all of them are done, in input order. A newer batch supersedes an older
    one still in flight: the older lookups run to completion but their result is
    dropped.
    """

    def __init__(self, resolver: IdentityResolver) -> None:
        self.resolver = resolver
        self._generation = 0
        self._inflight: Set[asyncio.Task] = set()

    async def _enrich_one(self, report: Report) -> Report:
        try:
            identity: Identity = await self.resolver.resolve(report)
        except Exception:
            log.exception("identity resolution failed for report %s", report.id)
            identity = DEFAULT_IDENTITY
        return report.with_identity(identity)

    async def enrich(self, batch: Sequence[Report]) -> List[Report]:
        """Resolve the whole batch; gather keeps input order regardless of finish order."""
        log.debug("processing %d reports", len(batch))
        tasks = [asyncio.create_task(self._enrich_one(r)) for r in batch]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def _enrich_and_emit(self, generation: int, batch: Sequence[Report], sink: BatchSink) -> None:
        enriched = await self.enrich(batch)
        if generation != self._generation:
            log.debug("batch %d superseded by %d, dropping", generation, self._generation)
            return
        sink(enriched)

    def submit(self, batch: Sequence[Report], sink: BatchSink) -> asyncio.Task:
        """Start enriching `batch`; `sink` only sees it if no newer batch was submitted meanwhile."""
        self._generation += 1
        task = asyncio.create_task(self._enrich_and_emit(self._generation, list(batch), sink))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def run(self, batches: AsyncIterable[Sequence[Report]], sink: BatchSink) -> None:
        """Consume a live batch stream until it ends, then let in-flight batches finish."""
        async for batch in batches:
            self.submit(batch, sink)
        await self.drain()

    async def drain(self) -> None:
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
