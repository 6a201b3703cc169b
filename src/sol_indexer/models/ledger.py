"""Ledger-side models: live log notifications and finalized blocks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TransactionEncoding(str, Enum):
    """Shape a transaction was returned in by getBlock."""

    JSON = "json"
    LEGACY_BINARY = "legacy_binary"  # bare base58 string
    BINARY = "binary"  # [data, "base64" | "base58"]
    ACCOUNTS = "accounts"  # transactionDetails=accounts


@dataclass(frozen=True)
class RawLogNotification:
    """One logsNotification from the live subscription."""

    slot: int
    signature: str
    error: Any | None
    log_lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class TransactionEntry:
    """A block transaction normalised at the RPC boundary."""

    signatures: tuple[str, ...]
    error: Any | None = None
    log_messages: tuple[str, ...] | None = None
    encoding: TransactionEncoding = TransactionEncoding.JSON

    @property
    def signature(self) -> str:
        """First signature - the transaction id."""
        return self.signatures[0] if self.signatures else ""

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class FinalizedBlock:
    """A block fetched at finalized commitment."""

    slot: int
    parent_slot: int
    transactions: tuple[TransactionEntry, ...] = ()
    blockhash: str | None = None
    block_time: int | None = None
