"""CLI commands through click's CliRunner."""

from __future__ import annotations

import json
import logging

import pytest
from click.testing import CliRunner

from sol_indexer.cli import cli
from sol_indexer.codec import PROGRAM_DATA_PREFIX
from tests.test_codec import GOLDEN_RECORD_B64


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RPC_URL", "WS_URL", "PROGRAM_ID", "COMMITMENT", "CONFIRMATION_DELAY"):
        monkeypatch.delenv(f"SOL_INDEXER_{name}", raising=False)


def test_discriminator(runner):
    result = runner.invoke(cli, ["discriminator", "AccountWithdrawSol"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "b5ce8f3ca691d6d5  tc6PPKaR1tU="


def test_encode_defaults_produce_reference_record(runner):
    result = runner.invoke(cli, ["encode"])
    assert result.exit_code == 0
    assert result.stdout.strip() == PROGRAM_DATA_PREFIX + GOLDEN_RECORD_B64


def test_encode_options(runner):
    result = runner.invoke(cli, ["encode", "--sender", "ab" * 32, "--withdraw-nonce", "7"])
    assert result.exit_code == 0
    decoded = runner.invoke(cli, ["decode", result.stdout.strip()])
    body = json.loads(decoded.stdout.split("\n", 1)[1])
    assert body["sender"] == "ab" * 32
    assert body["withdraw_nonce"] == 7


def test_encode_rejects_out_of_range(runner):
    result = runner.invoke(cli, ["encode", "--withdraw-nonce", str(2**64)])
    assert result.exit_code == 1


@pytest.mark.parametrize("data", [GOLDEN_RECORD_B64, PROGRAM_DATA_PREFIX + GOLDEN_RECORD_B64])
def test_decode_golden(runner, data):
    result = runner.invoke(cli, ["decode", data])

    assert result.exit_code == 0
    header, body = result.stdout.split("\n", 1)
    assert header == "discriminator: b5ce8f3ca691d6d5 (AccountWithdrawSol)"
    event = json.loads(body)
    assert event["account_id"] == "01" * 32
    assert event["token_amount"] == "1000"
    assert event["fee"] == "10"
    assert event["chain_id"] == "1"
    assert event["withdraw_nonce"] == 1


@pytest.mark.parametrize(
    "data",
    [
        "AAAAAAAAAAAAAAAA",  # unknown discriminator
        "tc6PPKaR1tUAAAA=",  # known discriminator, truncated payload
        "not base64!",
    ],
)
def test_decode_rejects(runner, data):
    result = runner.invoke(cli, ["decode", data])
    assert result.exit_code == 1


def test_status(runner, tmp_path):
    path = tmp_path / "indexer.toml"
    path.write_text('[backfill]\nconfirmation_delay = 5\n')

    result = runner.invoke(cli, ["-c", str(path), "status"])

    assert result.exit_code == 0
    assert "24bUpv6ppELeWpwkhwwefm5V9Dd2RobqQvuQ1YWDA7qn" in result.stdout
    assert "Delay:      5s" in result.stdout
    assert "AccountWithdrawSol" in result.stdout


# ── Log level ─────────────────────────────────────────────────────


@pytest.fixture
def package_logger():
    logger = logging.getLogger("sol_indexer")
    saved = logger.level
    yield logger
    logger.setLevel(saved)


def test_log_level_from_config(runner, tmp_path, package_logger):
    path = tmp_path / "indexer.toml"
    path.write_text('[indexer]\nlog_level = "warning"\n')

    result = runner.invoke(cli, ["-c", str(path), "status"])

    assert result.exit_code == 0
    assert package_logger.level == logging.WARNING


def test_verbose_overrides_config_log_level(runner, tmp_path, package_logger):
    path = tmp_path / "indexer.toml"
    path.write_text('[indexer]\nlog_level = "error"\n')

    result = runner.invoke(cli, ["-c", str(path), "-v", "status"])

    assert result.exit_code == 0
    assert package_logger.level == logging.DEBUG


def test_unknown_log_level_rejected(runner, tmp_path):
    path = tmp_path / "indexer.toml"
    path.write_text('[indexer]\nlog_level = "chatty"\n')

    result = runner.invoke(cli, ["-c", str(path), "status"])

    assert result.exit_code == 2
