"""Log scanner - extracts and decodes program events from finalized blocks."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Callable, Collection, Iterator

from sol_indexer.codec import PROGRAM_DATA_PREFIX
from sol_indexer.codec.registry import DiscriminatorRegistry
from sol_indexer.errors import DecodeError, UnsupportedEncodingError
from sol_indexer.models.ledger import FinalizedBlock, TransactionEncoding, TransactionEntry
from sol_indexer.models.records import (
    ISSUE_DECODE_FAILED,
    ISSUE_TRANSACTION_FAILED,
    ScanIssue,
    ScannedEvent,
)

log = logging.getLogger(__name__)

_INVOKE_RE = re.compile(r"^Program ([1-9A-HJ-NP-Za-km-z]{32,44}) invoke \[\d+\]")
_EXIT_RE = re.compile(r"^Program ([1-9A-HJ-NP-Za-km-z]{32,44}) (?:success|failed)")


def iter_data_records(
    log_messages: Collection[str],
    program_id: str | None = None,
) -> Iterator[tuple[int, str]]:
    """Yield ``(line_index, base64_payload)`` for each program data line.

    With ``program_id`` set, only lines emitted while that program is the
    innermost executing program are yielded. The runtime logs
    ``Program <id> invoke [n]`` on entry and ``Program <id> success`` or
    ``failed`` on exit, which is enough to rebuild the call stack.
    """
    stack: list[str] = []
    for index, line in enumerate(log_messages):
        if line.startswith(PROGRAM_DATA_PREFIX):
            if program_id is None or (stack and stack[-1] == program_id):
                yield index, line[len(PROGRAM_DATA_PREFIX):].strip()
            continue
        if m := _INVOKE_RE.match(line):
            stack.append(m.group(1))
        elif m := _EXIT_RE.match(line):
            if stack and stack[-1] == m.group(1):
                stack.pop()


class LogScanner:
    """Walks a finalized block and decodes the events its transactions emitted.

    Policies:
    - A non-JSON transaction encoding rejects the whole block with
      UnsupportedEncodingError before anything is yielded.
    - Transactions carrying a ledger error are skipped; their data lines are
      never decoded. They are reported as ``transaction_failed`` issues.
    - A record that fails base64 or payload decoding is reported as a
      ``decode_failed`` issue and scanning continues.
    - Records with an unregistered discriminator belong to other programs or
      event types and are dropped silently.
    """

    def __init__(
        self,
        registry: DiscriminatorRegistry,
        program_id: str | None = None,
        on_issue: Callable[[ScanIssue], None] | None = None,
    ) -> None:
        self._registry = registry
        self._program_id = program_id
        self._on_issue = on_issue

    def scan(
        self,
        block: FinalizedBlock,
        watched_signatures: Collection[str] | None = None,
        on_issue: Callable[[ScanIssue], None] | None = None,
    ) -> Iterator[ScannedEvent]:
        """Lazily yield every decoded event in ``block``, in block order.

        ``on_issue`` receives this call's issues in addition to the
        scanner-wide callback.
        """
        for tx in block.transactions:
            if tx.encoding is not TransactionEncoding.JSON:
                raise UnsupportedEncodingError(block.slot, tx.signature, tx.encoding.value)
        return self._scan(block, watched_signatures, on_issue)

    def _scan(
        self,
        block: FinalizedBlock,
        watched_signatures: Collection[str] | None,
        on_issue: Callable[[ScanIssue], None] | None,
    ) -> Iterator[ScannedEvent]:
        for tx in block.transactions:
            if watched_signatures is not None and tx.signature not in watched_signatures:
                continue
            if tx.failed:
                self._report(ScanIssue(
                    slot=block.slot,
                    signature=tx.signature,
                    kind=ISSUE_TRANSACTION_FAILED,
                    detail=str(tx.error),
                ), on_issue)
                continue
            yield from self._scan_transaction(block.slot, tx, on_issue)

    def _scan_transaction(
        self,
        slot: int,
        tx: TransactionEntry,
        on_issue: Callable[[ScanIssue], None] | None,
    ) -> Iterator[ScannedEvent]:
        if not tx.log_messages:
            return
        for index, payload in iter_data_records(tx.log_messages, self._program_id):
            try:
                raw = base64.b64decode(payload, validate=True)
                event = self._registry.dispatch(raw)
            except (binascii.Error, DecodeError) as exc:
                self._report(ScanIssue(
                    slot=slot,
                    signature=tx.signature,
                    kind=ISSUE_DECODE_FAILED,
                    detail=f"log line {index}: {exc}",
                ), on_issue)
                continue
            if event is None:
                continue
            log.debug("Decoded %s in %s (slot %d)", type(event).__name__, tx.signature, slot)
            yield ScannedEvent(slot=slot, signature=tx.signature, event=event, index=index)

    def _report(
        self,
        issue: ScanIssue,
        on_issue: Callable[[ScanIssue], None] | None = None,
    ) -> None:
        if issue.kind == ISSUE_TRANSACTION_FAILED:
            log.info("Skipping failed transaction %s (slot %d): %s",
                     issue.signature, issue.slot, issue.detail)
        else:
            log.warning("Undecodable record in %s (slot %d): %s",
                        issue.signature, issue.slot, issue.detail)
        if self._on_issue is not None:
            self._on_issue(issue)
        if on_issue is not None:
            on_issue(issue)
