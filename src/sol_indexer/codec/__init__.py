"""Binary codec for program events: discriminators, payloads, log records."""

from __future__ import annotations

import base64

from sol_indexer.codec.discriminator import DISCRIMINATOR_SIZE, discriminator_for
from sol_indexer.codec.registry import DiscriminatorRegistry, default_registry
from sol_indexer.codec.withdraw import (
    WITHDRAW_PAYLOAD_SIZE,
    decode_withdraw,
    encode_withdraw,
)
from sol_indexer.models.events import WithdrawEvent

PROGRAM_DATA_PREFIX = "Program data: "

_ENCODERS = {
    WithdrawEvent: encode_withdraw,
}


def encode_record(event: WithdrawEvent) -> bytes:
    """Full on-wire record: discriminator || payload."""
    encode = _ENCODERS[type(event)]
    return discriminator_for(event.EVENT_NAME) + encode(event)


def record_to_log_line(event: WithdrawEvent) -> str:
    """The log line a program emits for ``event``."""
    return PROGRAM_DATA_PREFIX + base64.b64encode(encode_record(event)).decode("ascii")


__all__ = [
    "DISCRIMINATOR_SIZE", "PROGRAM_DATA_PREFIX", "WITHDRAW_PAYLOAD_SIZE",
    "DiscriminatorRegistry", "default_registry",
    "decode_withdraw", "discriminator_for", "encode_withdraw",
    "encode_record", "record_to_log_line",
]
