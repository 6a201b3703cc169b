"""Indexer daemon - wires subscription, slot buffer, backfill and sinks together."""

from __future__ import annotations

import asyncio
import logging
import signal

from sol_indexer.codec.registry import DiscriminatorRegistry, default_registry
from sol_indexer.interfaces.block_source import BlockSource
from sol_indexer.interfaces.sink import EventSink
from sol_indexer.interfaces.subscriber import LogSubscriber
from sol_indexer.models.config import IndexerConfig, OutputFormat
from sol_indexer.models.records import BackfillReport
from sol_indexer.pipeline.backfill import BackfillCoordinator
from sol_indexer.pipeline.scanner import LogScanner
from sol_indexer.pipeline.slots import SlotBuffer
from sol_indexer.pipeline.subscription import SubscriptionDriver
from sol_indexer.sinks import JsonLinesEventSink, LoggingEventSink
from sol_indexer.solana.pubsub import SolanaLogSubscriber
from sol_indexer.solana.rpc import SolanaBlockFetcher

log = logging.getLogger(__name__)


def build_sink(cfg: IndexerConfig) -> EventSink:
    if cfg.output is OutputFormat.JSON:
        return JsonLinesEventSink()
    return LoggingEventSink()


class IndexerDaemon:
    """Two-phase event indexer for one program.

    Live ``processed`` log notifications only tell us which slots to look
    at; events are decoded from the finalized block, after the confirmation
    delay, so rolled-back transactions never reach the sink.

    ``run_once()`` runs the phases back to back: collect a bounded number of
    notifications, close the stream, wait, backfill. ``start()`` runs them
    concurrently until ``stop()``: the subscription feeds the slot buffer
    while a periodic task backfills slots that have aged past the delay.
    """

    def __init__(
        self,
        cfg: IndexerConfig,
        subscriber: LogSubscriber | None = None,
        source: BlockSource | None = None,
        sink: EventSink | None = None,
        registry: DiscriminatorRegistry | None = None,
    ) -> None:
        self._cfg = cfg
        self.registry = registry or default_registry()
        self.subscriber = subscriber or SolanaLogSubscriber(cfg.ws_url)
        self.source = source or SolanaBlockFetcher(
            cfg.rpc_url, commitment=cfg.block_commitment, timeout=cfg.request_timeout,
        )
        self.sink = sink or build_sink(cfg)

        self.buffer = SlotBuffer()
        self.scanner = LogScanner(
            self.registry,
            program_id=cfg.program_id if cfg.filter_program_logs else None,
        )
        self.driver = SubscriptionDriver(self.subscriber, cfg.program_id, cfg.commitment)
        self.coordinator = BackfillCoordinator(
            self.source,
            self.scanner,
            self.sink,
            not_found_retries=cfg.not_found_retries,
            retry_backoff=cfg.retry_backoff,
        )

        self._stop = asyncio.Event()
        self.events_emitted = 0
        self.slots_scanned = 0

    def _log_startup(self, mode: str) -> None:
        log.info("Starting sol_indexer (%s)", mode)
        log.info("  Program: %s", self._cfg.program_id)
        log.info("  PubSub:  %s (%s)", self._cfg.ws_url, self._cfg.commitment)
        log.info("  RPC:     %s (%s)", self._cfg.rpc_url, self._cfg.block_commitment)
        log.info("  Events:  %s", ", ".join(self.registry.event_names))

    # ── One-shot ───────────────────────────────────────

    async def run_once(self, max_notifications: int | None = None) -> BackfillReport:
        """Collect notifications, then backfill their slots once finalized.

        Slots stay buffered (and the returned report is empty) while fewer
        than ``batch_size`` have been observed.
        """
        self._log_startup("one-shot")
        limit = max_notifications or self._cfg.max_notifications
        await self.driver.collect(self.buffer, max_messages=limit)

        slots = self.buffer.drain_when(self._cfg.batch_size)
        if slots is None:
            log.info(
                "%d slot(s) buffered, below batch size %d; nothing to backfill yet",
                len(self.buffer), self._cfg.batch_size,
            )
            return BackfillReport()

        report = await self.coordinator.run(slots, self._cfg.confirmation_delay)
        self._record(report)
        return report

    async def scan_slot(self, slot: int) -> BackfillReport:
        """Backfill a single slot immediately, without subscribing."""
        report = await self.coordinator.run([slot])
        self._record(report)
        return report

    # ── Continuous ─────────────────────────────────────

    async def start(self) -> None:
        """Run subscription and backfill concurrently until stopped.

        A fatal subscription error propagates once the tasks are torn down.
        """
        self._log_startup("continuous")
        self._stop.clear()
        sub_task = asyncio.create_task(
            self.driver.collect(self.buffer, stop=self._stop), name="log-subscription",
        )
        stop_waiter = asyncio.create_task(self._stop.wait(), name="stop-waiter")
        try:
            while not self._stop.is_set() and not sub_task.done():
                await asyncio.wait(
                    {sub_task, stop_waiter},
                    timeout=self._cfg.backfill_interval,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if self._stop.is_set():
                    break
                await self._backfill_settled()
            await sub_task
        finally:
            self._stop.set()
            for task in (sub_task, stop_waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sub_task, stop_waiter, return_exceptions=True)
            pending = len(self.buffer)
            if pending:
                log.warning("%d observed slot(s) were not backfilled before shutdown", pending)
            log.info(
                "Indexer stopped: %d slots scanned, %d events emitted",
                self.slots_scanned, self.events_emitted,
            )

    async def stop(self) -> None:
        """Signal the indexer to stop gracefully."""
        log.info("Stop requested")
        self._stop.set()
        self.coordinator.cancel()

    async def _backfill_settled(self) -> None:
        slots = self.buffer.drain_settled(self._cfg.confirmation_delay)
        if not slots:
            return
        # Slots have already aged past the confirmation delay.
        report = await self.coordinator.run(slots, confirmation_delay=0)
        self._record(report)
        if report.cancelled:
            reached = set(report.slots_scanned) | set(report.missing_slots) | set(report.failed_slots)
            unreached = sorted(set(slots) - reached)
            log.warning("Backfill cancelled, returning slot(s) %s to the buffer", unreached)
            for slot in unreached:
                self.buffer.observe(slot)

    def _record(self, report: BackfillReport) -> None:
        self.events_emitted += report.event_count
        self.slots_scanned += len(report.slots_scanned)


async def run_indexer(cfg: IndexerConfig) -> None:
    """Entry point for continuous indexing."""
    indexer = IndexerDaemon(cfg)

    loop = asyncio.get_event_loop()

    def _signal_handler():
        asyncio.ensure_future(indexer.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await indexer.start()
