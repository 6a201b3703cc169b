"""Configuration models for the indexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutputFormat(str, Enum):
    """How decoded events are reported."""

    LOG = "log"
    JSON = "json"


@dataclass
class IndexerConfig:
    """Complete indexer configuration."""

    # Indexer
    log_level: str = "info"
    output: OutputFormat = OutputFormat.LOG
    batch_size: int = 2  # slots buffered before a one-shot backfill
    max_notifications: int = 2  # one-shot capture bound

    # Solana
    ws_url: str = "ws://127.0.0.1:8900"
    rpc_url: str = "http://127.0.0.1:8899"
    program_id: str = "24bUpv6ppELeWpwkhwwefm5V9Dd2RobqQvuQ1YWDA7qn"
    commitment: str = "processed"  # live subscription
    block_commitment: str = "finalized"
    request_timeout: float = 30.0  # seconds

    # Backfill
    confirmation_delay: float = 20.0  # seconds
    backfill_interval: float = 5.0  # seconds, continuous mode
    not_found_retries: int = 0
    retry_backoff: float = 2.0  # seconds, doubled per retry
    filter_program_logs: bool = True  # only count data lines emitted by program_id
