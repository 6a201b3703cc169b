"""Event discriminators: leading 8 bytes of sha256("event:<Name>")."""

from __future__ import annotations

import hashlib

DISCRIMINATOR_SIZE = 8
EVENT_NAMESPACE = "event"


def discriminator_for(event_type_name: str) -> bytes:
    preimage = f"{EVENT_NAMESPACE}:{event_type_name}".encode("ascii")
    return hashlib.sha256(preimage).digest()[:DISCRIMINATOR_SIZE]
