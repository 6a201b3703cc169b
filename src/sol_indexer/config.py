"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from sol_indexer.models.config import IndexerConfig, OutputFormat


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "SOL_INDEXER_",
) -> IndexerConfig:
    """Load indexer configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (SOL_INDEXER_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from IndexerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = IndexerConfig()

    # ── Indexer section ────────────────────────────────────
    indexer = raw.get("indexer", {})
    if v := indexer.get("log_level"):
        cfg.log_level = str(v)
    if v := indexer.get("output"):
        cfg.output = OutputFormat(v)
    if v := indexer.get("batch_size"):
        cfg.batch_size = int(v)
    if v := indexer.get("max_notifications"):
        cfg.max_notifications = int(v)

    # ── Solana section ─────────────────────────────────────
    solana = raw.get("solana", {})
    if v := solana.get("ws_url"):
        cfg.ws_url = str(v)
    if v := solana.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := solana.get("program_id"):
        cfg.program_id = str(v)
    if v := solana.get("commitment"):
        cfg.commitment = str(v)
    if v := solana.get("block_commitment"):
        cfg.block_commitment = str(v)
    if v := solana.get("request_timeout"):
        cfg.request_timeout = float(v)

    # ── Backfill section ───────────────────────────────────
    backfill = raw.get("backfill", {})
    if (v := backfill.get("confirmation_delay")) is not None:
        cfg.confirmation_delay = float(v)
    if v := backfill.get("interval"):
        cfg.backfill_interval = float(v)
    if (v := backfill.get("not_found_retries")) is not None:
        cfg.not_found_retries = int(v)
    if v := backfill.get("retry_backoff"):
        cfg.retry_backoff = float(v)
    if (v := backfill.get("filter_program_logs")) is not None:
        cfg.filter_program_logs = bool(v)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if ws := os.environ.get(f"{env_prefix}WS_URL"):
        cfg.ws_url = ws
    if program := os.environ.get(f"{env_prefix}PROGRAM_ID"):
        cfg.program_id = program
    if commitment := os.environ.get(f"{env_prefix}COMMITMENT"):
        cfg.commitment = commitment
    if delay := os.environ.get(f"{env_prefix}CONFIRMATION_DELAY"):
        cfg.confirmation_delay = float(delay)

    return cfg
