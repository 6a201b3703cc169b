"""Solana PubSub log subscriber - logsSubscribe over a websocket."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from sol_indexer.errors import (
    LedgerConnectionError,
    MalformedNotificationError,
    SubscriptionClosedError,
)
from sol_indexer.models.ledger import RawLogNotification

log = logging.getLogger(__name__)

_SUBSCRIBE_ID = 1
_UNSUBSCRIBE_ID = 2


def parse_notification(message: dict[str, Any]) -> RawLogNotification:
    """Convert a ``logsNotification`` message into a RawLogNotification."""
    try:
        result = message["params"]["result"]
        value = result["value"]
        return RawLogNotification(
            slot=int(result["context"]["slot"]),
            signature=str(value["signature"]),
            error=value.get("err"),
            log_lines=tuple(value.get("logs") or ()),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedNotificationError(f"bad logsNotification: {exc!r}") from exc


class SolanaLogSubscription:
    """An open logsSubscribe stream on one websocket connection."""

    def __init__(self, ws: Any, subscription_id: int) -> None:
        self._ws = ws
        self.subscription_id = subscription_id
        self._closed = False

    async def recv(self) -> RawLogNotification:
        while True:
            try:
                raw = await self._ws.recv()
            except ConnectionClosed as exc:
                raise SubscriptionClosedError(f"log stream closed: {exc}") from exc

            try:
                message = json.loads(raw)
            except ValueError as exc:
                raise MalformedNotificationError(f"non-JSON message: {raw!r:.80}") from exc
            if not isinstance(message, dict):
                raise MalformedNotificationError(f"unexpected message: {raw!r:.80}")

            if message.get("method") == "logsNotification":
                return parse_notification(message)
            log.debug("Ignoring pubsub message: %.200s", raw)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        request = {
            "jsonrpc": "2.0",
            "id": _UNSUBSCRIBE_ID,
            "method": "logsUnsubscribe",
            "params": [self.subscription_id],
        }
        try:
            await self._ws.send(json.dumps(request))
        except ConnectionClosed:
            log.debug("Connection already closed, skipping logsUnsubscribe")
        try:
            await self._ws.close()
        except (OSError, WebSocketException) as exc:
            raise LedgerConnectionError(f"error closing log stream: {exc}") from exc
        log.debug("Unsubscribed %d and closed websocket", self.subscription_id)


class SolanaLogSubscriber:
    """Opens mentions-filtered ``logsSubscribe`` streams on a PubSub endpoint."""

    def __init__(
        self,
        ws_url: str,
        open_timeout: float = 10.0,
        ping_interval: float | None = 20.0,
    ) -> None:
        self._ws_url = ws_url
        self._open_timeout = open_timeout
        self._ping_interval = ping_interval

    async def subscribe(self, program_id: str, commitment: str) -> SolanaLogSubscription:
        try:
            ws = await websockets.connect(
                self._ws_url,
                open_timeout=self._open_timeout,
                ping_interval=self._ping_interval,
                close_timeout=5,
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            raise LedgerConnectionError(f"could not connect to {self._ws_url}: {exc}") from exc

        request = {
            "jsonrpc": "2.0",
            "id": _SUBSCRIBE_ID,
            "method": "logsSubscribe",
            "params": [{"mentions": [program_id]}, {"commitment": commitment}],
        }
        try:
            await ws.send(json.dumps(request))
            subscription_id = await asyncio.wait_for(self._await_ack(ws), self._open_timeout)
        except (ConnectionClosed, asyncio.TimeoutError) as exc:
            await ws.close()
            raise LedgerConnectionError(f"logsSubscribe failed: {exc!r}") from exc
        except BaseException:
            await ws.close()
            raise

        log.info("logsSubscribe accepted by %s (subscription %s)", self._ws_url, subscription_id)
        return SolanaLogSubscription(ws, subscription_id)

    async def _await_ack(self, ws: Any) -> int:
        while True:
            try:
                raw = await ws.recv()
            except ConnectionClosed as exc:
                raise LedgerConnectionError(f"closed before subscription ack: {exc}") from exc
            try:
                message = json.loads(raw)
            except ValueError as exc:
                raise LedgerConnectionError(f"non-JSON subscription ack: {raw!r:.80}") from exc
            if not isinstance(message, dict) or message.get("id") != _SUBSCRIBE_ID:
                continue
            if error := message.get("error"):
                detail = error.get("message", error) if isinstance(error, dict) else error
                raise LedgerConnectionError(f"logsSubscribe rejected: {detail}")
            try:
                return int(message["result"])
            except (KeyError, TypeError, ValueError) as exc:
                raise LedgerConnectionError(f"malformed subscription ack: {raw!r:.80}") from exc
