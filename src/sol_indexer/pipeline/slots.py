"""Slot buffer - holds slots seen on the live stream until they are backfilled."""

from __future__ import annotations

import threading
import time


class SlotBuffer:
    """Ordered, duplicate-tolerant buffer of observed slot numbers.

    Guarded by a lock so the subscription side and the backfill side may
    run on different tasks or threads.
    """

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: list[tuple[int, float]] = []  # (slot, observed_at)

    def observe(self, slot: int) -> None:
        with self._lock:
            self._entries.append((slot, self._clock()))

    def drain_when(self, count_threshold: int) -> list[int] | None:
        """Return and clear all slots once ``count_threshold`` were observed.

        Returns None while fewer slots are buffered.
        """
        with self._lock:
            if len(self._entries) < count_threshold:
                return None
            slots = [slot for slot, _ in self._entries]
            self._entries.clear()
            return slots

    def drain_settled(self, min_age: float, now: float | None = None) -> list[int]:
        """Remove and return slots observed at least ``min_age`` seconds ago."""
        now = self._clock() if now is None else now
        with self._lock:
            settled = [slot for slot, seen in self._entries if now - seen >= min_age]
            self._entries = [(slot, seen) for slot, seen in self._entries if now - seen < min_age]
            return settled

    def snapshot(self) -> list[int]:
        with self._lock:
            return [slot for slot, _ in self._entries]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
