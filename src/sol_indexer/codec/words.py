"""Fixed-width 32-byte word helpers for event payloads."""

from __future__ import annotations

WORD_SIZE = 32


def to_word(value: int, width: int) -> bytes:
    """Big-endian ``width``-byte integer, left-padded with zeros to a full word."""
    return value.to_bytes(width, "big").rjust(WORD_SIZE, b"\x00")


def from_word(word: bytes, width: int) -> int:
    """Read the low-order ``width`` bytes of a word. Padding is ignored."""
    return int.from_bytes(word[WORD_SIZE - width:WORD_SIZE], "big")


def split_words(payload: bytes) -> list[bytes]:
    return [payload[i:i + WORD_SIZE] for i in range(0, len(payload), WORD_SIZE)]
