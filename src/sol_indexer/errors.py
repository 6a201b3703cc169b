"""Exception hierarchy for the indexer pipeline."""

from __future__ import annotations


class IndexerError(Exception):
    """Base class for all indexer errors."""


# ── Connection ─────────────────────────────────────────


class LedgerConnectionError(IndexerError):
    """Subscription open/close failed or the channel broke. Fatal."""


class SubscriptionClosedError(LedgerConnectionError):
    """The log stream closed while the driver was receiving."""


class MalformedNotificationError(LedgerConnectionError):
    """A notification could not be parsed into a RawLogNotification."""


# ── Blocks ─────────────────────────────────────────────


class BlockFetchError(IndexerError):
    """A getBlock call failed for a reason other than a missing block."""

    def __init__(self, slot: int, message: str) -> None:
        super().__init__(f"slot {slot}: {message}")
        self.slot = slot


class BlockNotFoundError(BlockFetchError):
    """The slot produced no block (skipped leader slot, pruned, not yet final)."""


class UnsupportedEncodingError(IndexerError):
    """A transaction arrived in a non-JSON encoding. Fatal for its block."""

    def __init__(self, slot: int, signature: str, encoding: str) -> None:
        super().__init__(
            f"slot {slot}: transaction {signature} uses unsupported encoding {encoding!r}"
        )
        self.slot = slot
        self.signature = signature
        self.encoding = encoding


# ── Decoding ───────────────────────────────────────────


class DecodeError(IndexerError, ValueError):
    """An event payload could not be decoded."""


class DecodeLengthMismatch(DecodeError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"expected {expected} payload bytes, got {actual}")
        self.expected = expected
        self.actual = actual


# ── Configuration ──────────────────────────────────────


class ConfigurationError(IndexerError):
    """Invalid start-up configuration."""


class DuplicateDiscriminatorError(ConfigurationError):
    pass


class InvalidFilterError(ConfigurationError):
    """The subscription filter (program address or commitment) is malformed."""
