"""Event sinks - where decoded events go once a block has been scanned."""

from __future__ import annotations

import json
import logging
import sys
from typing import TextIO

from sol_indexer.models.records import ScannedEvent

log = logging.getLogger(__name__)


class LoggingEventSink:
    """Logs each event at INFO."""

    async def emit(self, record: ScannedEvent) -> None:
        log.info(
            "slot %d signature %s: %s %s",
            record.slot, record.signature, type(record.event).__name__, record.event,
        )


class JsonLinesEventSink:
    """Writes one JSON object per event to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    async def emit(self, record: ScannedEvent) -> None:
        stream = self._stream or sys.stdout
        stream.write(json.dumps(record.to_dict(), sort_keys=True) + "\n")
        stream.flush()


class CollectingEventSink:
    """Keeps every event in memory."""

    def __init__(self) -> None:
        self.records: list[ScannedEvent] = []

    async def emit(self, record: ScannedEvent) -> None:
        self.records.append(record)

    @property
    def events(self) -> list:
        return [r.event for r in self.records]
