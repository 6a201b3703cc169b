"""Codec for the AccountWithdrawSol event payload.

Layout (288 bytes, nine 32-byte words, big-endian, right-aligned)::

    0    account_id      bytes32
    32   sender          bytes32
    64   receiver        bytes32
    96   broker_hash     bytes32
    128  token_hash      bytes32
    160  token_amount    u128  (low 16 bytes of the word)
    192  fee             u128
    224  chain_id        u128
    256  withdraw_nonce  u64   (low 8 bytes of the word)
"""

from __future__ import annotations

from sol_indexer.codec.words import WORD_SIZE, from_word, split_words, to_word
from sol_indexer.errors import DecodeLengthMismatch
from sol_indexer.models.events import WithdrawEvent

_U128 = 16
_U64 = 8

WITHDRAW_PAYLOAD_SIZE = 9 * WORD_SIZE


def encode_withdraw(event: WithdrawEvent) -> bytes:
    return b"".join((
        event.account_id,
        event.sender,
        event.receiver,
        event.broker_hash,
        event.token_hash,
        to_word(event.token_amount, _U128),
        to_word(event.fee, _U128),
        to_word(event.chain_id, _U128),
        to_word(event.withdraw_nonce, _U64),
    ))


def decode_withdraw(payload: bytes) -> WithdrawEvent:
    if len(payload) != WITHDRAW_PAYLOAD_SIZE:
        raise DecodeLengthMismatch(WITHDRAW_PAYLOAD_SIZE, len(payload))

    words = split_words(bytes(payload))
    return WithdrawEvent(
        account_id=words[0],
        sender=words[1],
        receiver=words[2],
        broker_hash=words[3],
        token_hash=words[4],
        token_amount=from_word(words[5], _U128),
        fee=from_word(words[6], _U128),
        chain_id=from_word(words[7], _U128),
        withdraw_nonce=from_word(words[8], _U64),
    )
