"""SolanaBlockFetcher against a mocked JSON-RPC endpoint."""

from __future__ import annotations

import json

import httpx
import pytest

from sol_indexer.errors import BlockFetchError, BlockNotFoundError
from sol_indexer.models.ledger import TransactionEncoding
from sol_indexer.pipeline.backfill import BackfillCoordinator
from sol_indexer.solana.rpc import SolanaBlockFetcher, parse_transaction
from tests.conftest import RPC_URL
from tests.factories import INSTRUCTION_ERROR, make_event_logs, make_withdraw_event


def _json_tx(signature: str, logs: list[str] | None, err=None) -> dict:
    return {
        "transaction": {
            "signatures": [signature],
            "message": {"accountKeys": [], "instructions": [], "recentBlockhash": "x"},
        },
        "meta": {"err": err, "fee": 5000, "logMessages": logs},
    }


def _block_result(*txs: dict) -> dict:
    return {
        "blockhash": "9fE1pBpQk2tD5G6vLgLkR8ZYgqtNwN3pLzNwxUBLsVnP",
        "blockHeight": 41,
        "blockTime": 1_700_000_000,
        "parentSlot": 99,
        "previousBlockhash": "5ZkJgXgRyM6pBjK4VxJ5tBvH7NkbQ2aK9f3JpQ8CzWrE",
        "transactions": list(txs),
    }


def _fetcher(handler) -> tuple[SolanaBlockFetcher, list[dict]]:
    requests: list[dict] = []

    def record(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        return handler(body)

    return SolanaBlockFetcher(RPC_URL, transport=httpx.MockTransport(record)), requests


def _reply(result=None, error=None):
    def handler(body):
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result
        return httpx.Response(200, json=payload)
    return handler


# ── getBlock ──────────────────────────────────────────────────────


async def test_fetch_block_parses_transactions():
    logs = make_event_logs(make_withdraw_event())
    fetcher, _ = _fetcher(_reply(_block_result(
        _json_tx("sigA", logs),
        _json_tx("sigB", ["Program log: hi"], err=INSTRUCTION_ERROR),
    )))

    block = await fetcher.fetch_block(100)

    assert block.slot == 100
    assert block.parent_slot == 99
    assert block.block_time == 1_700_000_000
    assert [t.signature for t in block.transactions] == ["sigA", "sigB"]
    assert block.transactions[0].log_messages == tuple(logs)
    assert not block.transactions[0].failed
    assert block.transactions[1].failed
    assert block.transactions[1].error == INSTRUCTION_ERROR


async def test_fetch_block_request_params():
    fetcher, requests = _fetcher(_reply(_block_result()))

    await fetcher.fetch_block(12345)

    (body,) = requests
    assert body["method"] == "getBlock"
    slot, options = body["params"]
    assert slot == 12345
    assert options == {
        "encoding": "json",
        "commitment": "finalized",
        "transactionDetails": "full",
        "rewards": False,
        "maxSupportedTransactionVersion": 0,
    }


async def test_empty_block():
    fetcher, _ = _fetcher(_reply(_block_result()))
    block = await fetcher.fetch_block(100)
    assert block.transactions == ()


@pytest.mark.parametrize(
    "error",
    [
        {"code": -32007, "message": "Slot 100 was skipped, or missing due to ledger jump to recent snapshot"},
        {"code": -32004, "message": "Block not available for slot 100"},
        {"code": -32009, "message": "Slot 100 was skipped, or missing in long-term storage"},
        {"code": -32014, "message": "Block status not yet available for slot 100"},
    ],
)
async def test_unavailable_block_codes(error):
    fetcher, _ = _fetcher(_reply(error=error))
    with pytest.raises(BlockNotFoundError) as exc_info:
        await fetcher.fetch_block(100)
    assert exc_info.value.slot == 100


async def test_null_result_is_not_found():
    fetcher, _ = _fetcher(_reply(None))
    with pytest.raises(BlockNotFoundError):
        await fetcher.fetch_block(100)


async def test_other_rpc_error_is_fetch_error():
    fetcher, _ = _fetcher(_reply(error={"code": -32600, "message": "Invalid request"}))
    with pytest.raises(BlockFetchError) as exc_info:
        await fetcher.fetch_block(100)
    assert not isinstance(exc_info.value, BlockNotFoundError)
    assert "-32600" in str(exc_info.value)


async def test_http_error_is_fetch_error():
    fetcher, _ = _fetcher(lambda body: httpx.Response(500, text="upstream down"))
    with pytest.raises(BlockFetchError):
        await fetcher.fetch_block(100)


async def test_non_json_body_is_fetch_error():
    fetcher, _ = _fetcher(lambda body: httpx.Response(200, text="<html>"))
    with pytest.raises(BlockFetchError):
        await fetcher.fetch_block(100)


async def test_malformed_block_is_fetch_error():
    fetcher, _ = _fetcher(_reply({"transactions": []}))
    with pytest.raises(BlockFetchError, match="malformed block"):
        await fetcher.fetch_block(100)


async def test_get_slot():
    fetcher, requests = _fetcher(_reply(4242))
    assert await fetcher.get_slot() == 4242
    assert requests[0]["method"] == "getSlot"


# ── Transaction shapes ────────────────────────────────────────────


@pytest.mark.parametrize(
    "transaction, expected",
    [
        ({"signatures": ["s"], "message": {}}, TransactionEncoding.JSON),
        ({"signatures": ["s"], "accountKeys": []}, TransactionEncoding.ACCOUNTS),
        (["AQID", "base64"], TransactionEncoding.BINARY),
        ("3Bxs4h24hBtQy9rw", TransactionEncoding.LEGACY_BINARY),
    ],
)
def test_parse_transaction_encoding(transaction, expected):
    entry = parse_transaction({"transaction": transaction, "meta": {"err": None}})
    assert entry.encoding is expected


def test_parse_transaction_without_log_messages():
    entry = parse_transaction({"transaction": {"signatures": ["s"], "message": {}}, "meta": {"err": None}})
    assert entry.log_messages is None
    assert entry.signature == "s"


# ── Malformed responses stay per-slot failures ────────────────────


@pytest.mark.parametrize(
    "handler",
    [
        lambda body: httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": "rate limited"}),
        lambda body: httpx.Response(200, json=[{"jsonrpc": "2.0", "id": body["id"], "result": None}]),
        _reply({"parentSlot": 99, "transactions": [None]}),
        _reply({"parentSlot": 99, "transactions": [{"transaction": {"message": {}}, "meta": "oops"}]}),
    ],
    ids=["string-error", "batch-body", "null-transaction", "non-object-meta"],
)
async def test_malformed_response_is_fetch_error(handler):
    fetcher, _ = _fetcher(handler)
    with pytest.raises(BlockFetchError) as exc_info:
        await fetcher.fetch_block(100)
    assert not isinstance(exc_info.value, BlockNotFoundError)


async def test_malformed_block_does_not_stop_backfill(scanner, sink):
    good = _block_result(_json_tx("sigB", make_event_logs(make_withdraw_event())))

    def handler(body):
        slot = body["params"][0]
        if slot == 10:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": "rate limited"})
        if slot == 11:
            return _reply({"parentSlot": 10, "transactions": [None]})(body)
        return _reply(good)(body)

    fetcher, _ = _fetcher(handler)
    report = await BackfillCoordinator(fetcher, scanner, sink).run([10, 11, 12])

    assert sorted(report.failed_slots) == [10, 11]
    assert report.slots_scanned == [12]
    assert len(sink.records) == 1
