"""CLI entry point for sol_indexer."""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import sys

import click

from sol_indexer.codec import (
    DISCRIMINATOR_SIZE,
    PROGRAM_DATA_PREFIX,
    default_registry,
    discriminator_for,
    record_to_log_line,
)
from sol_indexer.config import load_config
from sol_indexer.errors import ConfigurationError, DecodeError, IndexerError
from sol_indexer.indexer import IndexerDaemon, run_indexer
from sol_indexer.models.config import OutputFormat
from sol_indexer.models.events import WithdrawEvent
from sol_indexer.models.records import BackfillReport


def _load(ctx: click.Context, json_output: bool = False):
    cfg = load_config(ctx.obj["config_path"])
    if json_output:
        cfg.output = OutputFormat.JSON
    return cfg


def _build_indexer(cfg) -> IndexerDaemon:
    try:
        return IndexerDaemon(cfg)
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)


def _print_report(report: BackfillReport) -> None:
    click.echo(
        f"Scanned {len(report.slots_scanned)} slot(s), {report.event_count} event(s)",
        err=True,
    )
    if report.missing_slots:
        click.echo(f"  No block:  {', '.join(map(str, report.missing_slots))}", err=True)
    for slot, error in report.failed_slots.items():
        click.echo(f"  Failed:    {slot}: {error}", err=True)
    for issue in report.issues:
        click.echo(f"  Skipped:   {issue.signature} ({issue.kind}): {issue.detail}", err=True)


def _log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise click.BadParameter(f"unknown log_level {name!r}", param_hint="[indexer] log_level")
    return level


def _bytes32(value: str) -> bytes:
    """Accept 64 hex chars, or a single byte value repeated 32 times."""
    if len(value) == 64:
        return bytes.fromhex(value)
    return bytes([int(value, 0)]) * 32


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """sol-indexer - decode program events from finalized Solana blocks."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else _log_level(load_config(config_path).log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("sol_indexer").setLevel(level)


# ── Indexing ───────────────────────────────────────────


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Print events as JSON lines")
@click.pass_context
def run(ctx: click.Context, json_output: bool) -> None:
    """Index continuously until interrupted."""
    cfg = _load(ctx, json_output)
    click.echo(f"Indexing {cfg.program_id} (delay: {cfg.confirmation_delay:g}s)", err=True)
    try:
        asyncio.run(run_indexer(cfg))
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    except IndexerError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command()
@click.option("-n", "--count", type=int, default=None, help="Notifications to collect")
@click.option("--json", "json_output", is_flag=True, help="Print events as JSON lines")
@click.pass_context
def capture(ctx: click.Context, count: int | None, json_output: bool) -> None:
    """Collect a few notifications, then backfill their finalized blocks."""
    cfg = _load(ctx, json_output)
    indexer = _build_indexer(cfg)
    try:
        report = asyncio.run(indexer.run_once(count))
    except IndexerError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    _print_report(report)


@cli.command("scan-block")
@click.argument("slot", type=int)
@click.option("--json", "json_output", is_flag=True, help="Print events as JSON lines")
@click.pass_context
def scan_block(ctx: click.Context, slot: int, json_output: bool) -> None:
    """Scan one slot's block right away."""
    cfg = _load(ctx, json_output)
    indexer = _build_indexer(cfg)
    report = asyncio.run(indexer.scan_slot(slot))
    _print_report(report)
    if report.failed_slots or report.missing_slots:
        sys.exit(1)


# ── Codec ──────────────────────────────────────────────


@cli.command()
@click.argument("data")
def decode(data: str) -> None:
    """Decode a base64 `Program data:` payload."""
    if data.startswith(PROGRAM_DATA_PREFIX):
        data = data[len(PROGRAM_DATA_PREFIX):]
    try:
        raw = base64.b64decode(data, validate=True)
    except binascii.Error as exc:
        click.echo(f"Error: invalid base64: {exc}", err=True)
        sys.exit(1)

    registry = default_registry()
    tag = raw[:DISCRIMINATOR_SIZE]
    try:
        event = registry.dispatch(raw)
    except DecodeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if event is None:
        click.echo(f"Unrecognized discriminator: {tag.hex()}", err=True)
        sys.exit(1)

    click.echo(f"discriminator: {tag.hex()} ({registry.name_for(tag)})")
    click.echo(json.dumps(event.to_dict(), indent=2))


@cli.command()
@click.option("--account-id", default="1", show_default=True, help="64 hex chars or a byte value")
@click.option("--sender", default="2", show_default=True)
@click.option("--receiver", default="3", show_default=True)
@click.option("--broker-hash", default="4", show_default=True)
@click.option("--token-hash", default="5", show_default=True)
@click.option("--token-amount", type=int, default=1000, show_default=True)
@click.option("--fee", type=int, default=10, show_default=True)
@click.option("--chain-id", type=int, default=1, show_default=True)
@click.option("--withdraw-nonce", type=int, default=1, show_default=True)
def encode(**fields) -> None:
    """Print the `Program data:` log line for a withdraw event."""
    try:
        event = WithdrawEvent(
            account_id=_bytes32(fields["account_id"]),
            sender=_bytes32(fields["sender"]),
            receiver=_bytes32(fields["receiver"]),
            broker_hash=_bytes32(fields["broker_hash"]),
            token_hash=_bytes32(fields["token_hash"]),
            token_amount=fields["token_amount"],
            fee=fields["fee"],
            chain_id=fields["chain_id"],
            withdraw_nonce=fields["withdraw_nonce"],
        )
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(record_to_log_line(event))


@cli.command()
@click.argument("name")
def discriminator(name: str) -> None:
    """Print the 8-byte discriminator for an event name."""
    tag = discriminator_for(name)
    click.echo(f"{tag.hex()}  {base64.b64encode(tag).decode('ascii')}")


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show indexer configuration."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"Program:    {cfg.program_id}")
    click.echo(f"PubSub:     {cfg.ws_url} ({cfg.commitment})")
    click.echo(f"RPC:        {cfg.rpc_url} ({cfg.block_commitment})")
    click.echo(f"Delay:      {cfg.confirmation_delay:g}s")
    click.echo(f"Batch size: {cfg.batch_size}")
    click.echo(f"Retries:    {cfg.not_found_retries} (backoff {cfg.retry_backoff:g}s)")
    click.echo(f"Output:     {cfg.output.value}")
    click.echo(f"Events:     {', '.join(default_registry().event_names)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
