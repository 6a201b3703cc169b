"""Shared fixtures for sol_indexer tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from sol_indexer.codec.registry import default_registry
from sol_indexer.models.config import IndexerConfig
from sol_indexer.pipeline.backfill import BackfillCoordinator
from sol_indexer.pipeline.scanner import LogScanner
from sol_indexer.pipeline.slots import SlotBuffer
from sol_indexer.sinks import CollectingEventSink

from tests.factories import PROGRAM_ID
from tests.mocks import MockBlockSource, MockSubscriber

RPC_URL = "http://127.0.0.1:8899"
WS_URL = "ws://127.0.0.1:8900"

EXPLORER_BASE = "https://explorer.solana.com"


def solana_explorer_link(kind: str, id: str, label: str | None = None) -> str:
    """Build an HTML anchor to the Solana explorer for the report."""
    url = f"{EXPLORER_BASE}/{kind}/{id}?cluster=custom&customUrl={RPC_URL}"
    text = label or f"{id[:8]}...{id[-4:]}"
    return f'<a href="{url}" target="_blank">{text}</a>'


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add cluster info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Cluster"] = "solana-test-validator"
    meta["Program"] = PROGRAM_ID
    meta["RPC"] = RPC_URL


def pytest_html_results_summary(prefix, summary, postfix):
    """Inject an explorer link for the indexed program into the report summary."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Solana Explorer</strong><br/>"
        f'Program: {solana_explorer_link("address", PROGRAM_ID, PROGRAM_ID)}'
        "</div>"
    )


def make_test_config(**overrides) -> IndexerConfig:
    """Build an IndexerConfig suitable for testing."""
    defaults = dict(
        ws_url=WS_URL,
        rpc_url=RPC_URL,
        program_id=PROGRAM_ID,
        commitment="processed",
        confirmation_delay=0.0,
        backfill_interval=0.01,
        batch_size=2,
        max_notifications=2,
        not_found_retries=0,
        retry_backoff=0.0,
    )
    defaults.update(overrides)
    return IndexerConfig(**defaults)


@pytest.fixture
def test_config():
    """Default IndexerConfig for tests."""
    return make_test_config()


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def scanner(registry):
    return LogScanner(registry, program_id=PROGRAM_ID)


@pytest.fixture
def buffer():
    return SlotBuffer()


@pytest.fixture
def sink():
    return CollectingEventSink()


@pytest.fixture
def mock_subscriber():
    return MockSubscriber()


@pytest.fixture
def mock_source():
    return MockBlockSource()


@pytest.fixture
def coordinator(mock_source, scanner, sink):
    return BackfillCoordinator(mock_source, scanner, sink)
