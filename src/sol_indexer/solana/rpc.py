"""Solana JSON-RPC block fetcher - getBlock over HTTP."""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from sol_indexer.errors import BlockFetchError, BlockNotFoundError
from sol_indexer.models.ledger import FinalizedBlock, TransactionEncoding, TransactionEntry

log = logging.getLogger(__name__)

# RPC error codes meaning "there is no block for this slot (yet)":
#   -32004 block not available, -32007 slot skipped,
#   -32009 missing in long-term storage, -32014 status not yet available
BLOCK_UNAVAILABLE_CODES = frozenset({-32004, -32007, -32009, -32014})


def parse_transaction(raw: dict[str, Any]) -> TransactionEntry:
    """Normalise one getBlock transaction into a TransactionEntry."""
    if not isinstance(raw, dict):
        raise ValueError(f"transaction entry is {type(raw).__name__}, expected an object")
    meta = raw.get("meta") or {}
    tx = raw.get("transaction")

    signatures: tuple[str, ...] = ()
    if isinstance(tx, dict):
        signatures = tuple(tx.get("signatures") or ())
        if "message" in tx:
            encoding = TransactionEncoding.JSON
        elif "accountKeys" in tx:
            encoding = TransactionEncoding.ACCOUNTS
        else:
            raise ValueError(f"unrecognised transaction object keys: {sorted(tx)}")
    elif isinstance(tx, list):
        encoding = TransactionEncoding.BINARY
    elif isinstance(tx, str):
        encoding = TransactionEncoding.LEGACY_BINARY
    else:
        raise ValueError(f"unrecognised transaction shape: {type(tx).__name__}")

    logs = meta.get("logMessages")
    return TransactionEntry(
        signatures=signatures,
        error=meta.get("err"),
        log_messages=tuple(logs) if logs is not None else None,
        encoding=encoding,
    )


def parse_block(slot: int, result: dict[str, Any]) -> FinalizedBlock:
    return FinalizedBlock(
        slot=slot,
        parent_slot=int(result["parentSlot"]),
        transactions=tuple(parse_transaction(t) for t in result.get("transactions") or ()),
        blockhash=result.get("blockhash"),
        block_time=result.get("blockTime"),
    )


class SolanaBlockFetcher:
    """Fetches blocks by slot with ``getBlock`` (json encoding, full details).

    Opens a short-lived httpx client per request.
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = "finalized",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: list) -> dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(self._rpc_url, json=payload)
            resp.raise_for_status()
            return resp.json()

    async def fetch_block(self, slot: int) -> FinalizedBlock:
        params = [
            slot,
            {
                "encoding": "json",
                "commitment": self._commitment,
                "transactionDetails": "full",
                "rewards": False,
                "maxSupportedTransactionVersion": 0,
            },
        ]
        try:
            body = await self._call("getBlock", params)
        except httpx.HTTPError as exc:
            raise BlockFetchError(slot, f"getBlock request failed: {exc}") from exc
        except ValueError as exc:
            raise BlockFetchError(slot, f"invalid JSON response: {exc}") from exc

        if not isinstance(body, dict):
            raise BlockFetchError(slot, f"unexpected response: {body!r:.80}")
        if error := body.get("error"):
            if not isinstance(error, dict):
                raise BlockFetchError(slot, f"RPC error: {error!r:.80}")
            code = error.get("code")
            message = error.get("message", "")
            if code in BLOCK_UNAVAILABLE_CODES:
                raise BlockNotFoundError(slot, message or f"RPC error {code}")
            raise BlockFetchError(slot, f"RPC error {code}: {message}")

        result = body.get("result")
        if result is None:
            raise BlockNotFoundError(slot, "no block returned")

        try:
            block = parse_block(slot, result)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise BlockFetchError(slot, f"malformed block: {exc}") from exc

        log.debug("Fetched block %d: %d transactions", slot, len(block.transactions))
        return block

    async def get_slot(self) -> int:
        """Current slot at the configured commitment."""
        body = await self._call("getSlot", [{"commitment": self._commitment}])
        if error := body.get("error"):
            if not isinstance(error, dict):
                raise BlockFetchError(-1, f"RPC error: {error!r:.80}")
            raise BlockFetchError(-1, f"RPC error {error.get('code')}: {error.get('message', '')}")
        return int(body["result"])
