"""Backfill coordinator - re-fetches finalized blocks for buffered slots."""

from __future__ import annotations

import asyncio
import logging
from typing import Collection, Iterable

from sol_indexer.errors import BlockFetchError, BlockNotFoundError, UnsupportedEncodingError
from sol_indexer.interfaces.block_source import BlockSource
from sol_indexer.interfaces.sink import EventSink
from sol_indexer.models.ledger import FinalizedBlock
from sol_indexer.models.records import BackfillReport
from sol_indexer.pipeline.scanner import LogScanner

log = logging.getLogger(__name__)


class BackfillCoordinator:
    """Scans finalized blocks for slots observed on the live stream.

    The live stream runs at ``processed`` commitment, so a slot's block may
    still be rolled back when it is first seen. ``run()`` waits out a fixed
    confirmation delay before fetching anything. With ``not_found_retries``
    set, a missing block is retried with exponential backoff, which covers
    blocks that are not finalized yet.

    Each slot is handled in isolation: a missing block, a fetch error or an
    unsupported encoding is recorded in the report and the next slot proceeds.
    """

    def __init__(
        self,
        source: BlockSource,
        scanner: LogScanner,
        sink: EventSink | None = None,
        not_found_retries: int = 0,
        retry_backoff: float = 2.0,
    ) -> None:
        self._source = source
        self._scanner = scanner
        self._sink = sink
        self._not_found_retries = not_found_retries
        self._retry_backoff = retry_backoff
        self._cancelled = False

    def cancel(self) -> None:
        """Stop the current run before its next slot."""
        self._cancelled = True

    async def run(
        self,
        slots: Iterable[int],
        confirmation_delay: float = 0.0,
        watched_signatures: Collection[str] | None = None,
    ) -> BackfillReport:
        """Wait ``confirmation_delay`` seconds, then scan each distinct slot in order."""
        self._cancelled = False
        report = BackfillReport(slots_requested=list(slots))
        ordered = sorted(set(report.slots_requested))
        if not ordered:
            return report

        if confirmation_delay > 0:
            log.info(
                "Waiting %.1fs for %d slot(s) to finalize (%d..%d)",
                confirmation_delay, len(ordered), ordered[0], ordered[-1],
            )
            await asyncio.sleep(confirmation_delay)

        for slot in ordered:
            if self._cancelled:
                log.info("Backfill cancelled before slot %d", slot)
                report.cancelled = True
                break
            await self.backfill_slot(slot, report, watched_signatures)

        log.info(
            "Backfill done: %d/%d slots scanned, %d events, %d missing, %d failed",
            len(report.slots_scanned), len(ordered), report.event_count,
            len(report.missing_slots), len(report.failed_slots),
        )
        return report

    async def backfill_slot(
        self,
        slot: int,
        report: BackfillReport,
        watched_signatures: Collection[str] | None = None,
    ) -> None:
        """Fetch and scan one slot, recording the outcome in ``report``."""
        try:
            block = await self._fetch_with_retry(slot)
        except BlockNotFoundError as exc:
            log.warning("No block for slot %d: %s", slot, exc)
            report.missing_slots.append(slot)
            return
        except BlockFetchError as exc:
            log.error("Block fetch failed for slot %d: %s", slot, exc)
            report.failed_slots[slot] = str(exc)
            return

        found = 0
        try:
            for record in self._scanner.scan(block, watched_signatures, on_issue=report.issues.append):
                report.events.append(record)
                found += 1
                if self._sink is not None:
                    await self._sink.emit(record)
        except UnsupportedEncodingError as exc:
            log.error("Rejecting block at slot %d: %s", slot, exc)
            report.failed_slots[slot] = str(exc)
            return

        report.slots_scanned.append(slot)
        log.info(
            "Scanned slot %d (parent %d): %d transactions, %d events",
            slot, block.parent_slot, len(block.transactions), found,
        )

    async def _fetch_with_retry(self, slot: int) -> FinalizedBlock:
        attempt = 0
        while True:
            try:
                return await self._source.fetch_block(slot)
            except BlockNotFoundError:
                if attempt >= self._not_found_retries:
                    raise
                delay = self._retry_backoff * (2 ** attempt)
                attempt += 1
                log.info(
                    "Block for slot %d not available, retry %d/%d in %.1fs",
                    slot, attempt, self._not_found_retries, delay,
                )
                await asyncio.sleep(delay)
