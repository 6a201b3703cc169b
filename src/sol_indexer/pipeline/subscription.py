"""Subscription driver - owns the live log-stream lifecycle."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

import base58

from sol_indexer.errors import InvalidFilterError, LedgerConnectionError
from sol_indexer.interfaces.subscriber import LogSubscriber, LogSubscription
from sol_indexer.models.ledger import RawLogNotification
from sol_indexer.pipeline.slots import SlotBuffer

log = logging.getLogger(__name__)

COMMITMENTS = ("processed", "confirmed", "finalized")


class DriverState(str, Enum):
    CLOSED = "closed"
    SUBSCRIBING = "subscribing"
    OPEN = "open"
    DRAINING = "draining"


def validate_filter(program_id: str, commitment: str) -> None:
    """Reject a mentions filter the node would refuse or silently ignore."""
    try:
        raw = base58.b58decode(program_id)
    except ValueError as exc:
        raise InvalidFilterError(f"program id {program_id!r} is not base58: {exc}") from exc
    if len(raw) != 32:
        raise InvalidFilterError(
            f"program id {program_id!r} decodes to {len(raw)} bytes, expected 32"
        )
    if commitment not in COMMITMENTS:
        raise InvalidFilterError(
            f"unknown commitment {commitment!r} (expected one of {', '.join(COMMITMENTS)})"
        )


class SubscriptionDriver:
    """Runs a mentions-filtered log subscription and feeds slots to a buffer.

    State machine::

        CLOSED -> SUBSCRIBING -> OPEN -> DRAINING -> CLOSED
                                   \\-- connection error --> CLOSED

    The subscription is always closed before ``collect()`` returns or raises.
    """

    def __init__(
        self,
        subscriber: LogSubscriber,
        program_id: str,
        commitment: str = "processed",
    ) -> None:
        validate_filter(program_id, commitment)
        self._subscriber = subscriber
        self._program_id = program_id
        self._commitment = commitment
        self._state = DriverState.CLOSED
        self.received = 0
        self.last_slot: int | None = None

    @property
    def state(self) -> DriverState:
        return self._state

    def _set_state(self, state: DriverState) -> None:
        if state is not self._state:
            log.debug("Subscription %s -> %s", self._state.value, state.value)
            self._state = state

    async def collect(
        self,
        buffer: SlotBuffer,
        max_messages: int | None = None,
        stop: asyncio.Event | None = None,
    ) -> int:
        """Forward notification slots to ``buffer`` until bounded or stopped.

        Returns the number of notifications received. Drains when
        ``max_messages`` is reached, when ``stop`` is set, or when the task is
        cancelled. Connection failures propagate as LedgerConnectionError; any
        error closes the subscription and returns the driver to CLOSED first.
        """
        if self._state is not DriverState.CLOSED:
            raise RuntimeError(f"subscription already {self._state.value}")

        self._set_state(DriverState.SUBSCRIBING)
        log.info(
            "Subscribing to logs mentioning %s (commitment: %s)",
            self._program_id, self._commitment,
        )
        try:
            subscription = await self._subscriber.subscribe(self._program_id, self._commitment)
        except BaseException:
            self._set_state(DriverState.CLOSED)
            raise
        self._set_state(DriverState.OPEN)

        count = 0
        try:
            while max_messages is None or count < max_messages:
                notification = await self._next(subscription, stop)
                if notification is None:
                    log.info("Stop requested, draining subscription")
                    break
                buffer.observe(notification.slot)
                count += 1
                self.received += 1
                self.last_slot = notification.slot
                log.info(
                    "slot: %d, is_err: %s, signature: %s",
                    notification.slot, notification.error is not None, notification.signature,
                )
        except LedgerConnectionError as exc:
            log.error("Log subscription failed: %s", exc)
            self._set_state(DriverState.CLOSED)
            await self._close_quietly(subscription)
            raise
        except asyncio.CancelledError:
            self._set_state(DriverState.DRAINING)
            await self._close_quietly(subscription)
            self._set_state(DriverState.CLOSED)
            raise
        except Exception:
            log.exception("Unexpected error on log subscription")
            self._set_state(DriverState.CLOSED)
            await self._close_quietly(subscription)
            raise

        self._set_state(DriverState.DRAINING)
        try:
            await subscription.close()
        finally:
            self._set_state(DriverState.CLOSED)
        log.info("Subscription closed after %d notification(s)", count)
        return count

    async def _next(
        self,
        subscription: LogSubscription,
        stop: asyncio.Event | None,
    ) -> RawLogNotification | None:
        if stop is None:
            return await subscription.recv()
        if stop.is_set():
            return None

        recv_task = asyncio.ensure_future(subscription.recv())
        stop_task = asyncio.ensure_future(stop.wait())
        try:
            done, _ = await asyncio.wait(
                {recv_task, stop_task}, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            pending = [t for t in (recv_task, stop_task) if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if recv_task in done:
            return recv_task.result()
        return None

    async def _close_quietly(self, subscription: LogSubscription) -> None:
        try:
            await subscription.close()
        except LedgerConnectionError as exc:
            log.warning("Error closing subscription: %s", exc)
