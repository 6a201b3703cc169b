"""Data models for the sol_indexer pipeline."""

from sol_indexer.models.events import WithdrawEvent
from sol_indexer.models.ledger import (
    FinalizedBlock,
    RawLogNotification,
    TransactionEncoding,
    TransactionEntry,
)
from sol_indexer.models.records import (
    BackfillReport,
    ScanIssue,
    ScannedEvent,
    ISSUE_DECODE_FAILED,
    ISSUE_TRANSACTION_FAILED,
)
from sol_indexer.models.config import IndexerConfig, OutputFormat

__all__ = [
    "WithdrawEvent",
    "FinalizedBlock", "RawLogNotification", "TransactionEncoding", "TransactionEntry",
    "BackfillReport", "ScanIssue", "ScannedEvent",
    "ISSUE_DECODE_FAILED", "ISSUE_TRANSACTION_FAILED",
    "IndexerConfig", "OutputFormat",
]
