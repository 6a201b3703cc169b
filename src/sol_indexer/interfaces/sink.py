"""EventSink protocol - receives decoded events from the backfill stage."""

from __future__ import annotations

from typing import Protocol

from sol_indexer.models.records import ScannedEvent


class EventSink(Protocol):
    async def emit(self, record: ScannedEvent) -> None:
        ...
