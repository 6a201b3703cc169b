"""Pipeline output records: scanned events, scan issues, backfill reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ISSUE_TRANSACTION_FAILED = "transaction_failed"
ISSUE_DECODE_FAILED = "decode_failed"


@dataclass(frozen=True)
class ScannedEvent:
    """A decoded program event together with where it was found."""

    slot: int
    signature: str
    event: Any
    index: int = 0  # position of the data line within the transaction logs

    def to_dict(self) -> dict:
        body = self.event.to_dict() if hasattr(self.event, "to_dict") else {"event": repr(self.event)}
        return {"slot": self.slot, "signature": self.signature, "index": self.index, **body}


@dataclass(frozen=True)
class ScanIssue:
    """A transaction or record skipped while scanning a block."""

    slot: int
    signature: str
    kind: str  # ISSUE_TRANSACTION_FAILED | ISSUE_DECODE_FAILED
    detail: str


@dataclass
class BackfillReport:
    """Outcome of one backfill pass over a batch of slots."""

    slots_requested: list[int] = field(default_factory=list)
    slots_scanned: list[int] = field(default_factory=list)
    events: list[ScannedEvent] = field(default_factory=list)
    missing_slots: list[int] = field(default_factory=list)  # BlockNotFound
    failed_slots: dict[int, str] = field(default_factory=dict)  # slot -> error
    issues: list[ScanIssue] = field(default_factory=list)
    cancelled: bool = False

    @property
    def event_count(self) -> int:
        return len(self.events)
