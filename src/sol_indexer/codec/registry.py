"""Discriminator registry - maps 8-byte event tags to payload decoders."""

from __future__ import annotations

import logging
from typing import Any, Callable

from sol_indexer.codec.discriminator import DISCRIMINATOR_SIZE, discriminator_for
from sol_indexer.codec.withdraw import decode_withdraw
from sol_indexer.errors import DuplicateDiscriminatorError
from sol_indexer.models.events import WithdrawEvent

log = logging.getLogger(__name__)

Decoder = Callable[[bytes], Any]


class DiscriminatorRegistry:
    """Resolves which event type a raw ``Program data`` record encodes.

    Populated once at start-up and read-only afterwards, so a single
    instance can be shared by any number of scanners.
    """

    def __init__(self) -> None:
        self._decoders: dict[bytes, tuple[str, Decoder]] = {}

    def register(self, name: str, decode_fn: Decoder) -> bytes:
        """Register ``decode_fn`` under the discriminator of ``name``."""
        tag = discriminator_for(name)
        existing = self._decoders.get(tag)
        if existing is not None:
            raise DuplicateDiscriminatorError(
                f"discriminator {tag.hex()} for {name!r} already registered by {existing[0]!r}"
            )
        self._decoders[tag] = (name, decode_fn)
        log.debug("Registered event %s (discriminator %s)", name, tag.hex())
        return tag

    def dispatch(self, raw_record: bytes) -> Any | None:
        """Decode a record, or return None when its tag is not registered.

        Decoder failures (DecodeError) propagate to the caller.
        """
        if len(raw_record) < DISCRIMINATOR_SIZE:
            return None
        entry = self._decoders.get(bytes(raw_record[:DISCRIMINATOR_SIZE]))
        if entry is None:
            return None
        _, decode_fn = entry
        return decode_fn(raw_record[DISCRIMINATOR_SIZE:])

    def name_for(self, tag: bytes) -> str | None:
        entry = self._decoders.get(bytes(tag))
        return entry[0] if entry else None

    @property
    def event_names(self) -> list[str]:
        return [name for name, _ in self._decoders.values()]

    def __contains__(self, tag: bytes) -> bool:
        return bytes(tag) in self._decoders

    def __len__(self) -> int:
        return len(self._decoders)


def default_registry() -> DiscriminatorRegistry:
    """Registry with every event the indexed program emits."""
    registry = DiscriminatorRegistry()
    registry.register(WithdrawEvent.EVENT_NAME, decode_withdraw)
    return registry
