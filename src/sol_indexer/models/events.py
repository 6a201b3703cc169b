"""Program event models decoded from `Program data:` log records."""

from __future__ import annotations

from dataclasses import dataclass

U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1


def _check_bytes32(name: str, value: bytes) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise ValueError(f"{name} must be 32 bytes")


def _check_uint(name: str, value: int, maximum: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= maximum:
        raise ValueError(f"{name} out of range: {value!r}")


@dataclass(frozen=True)
class WithdrawEvent:
    """Emitted by the vault program when an account withdraws SOL.

    On-chain event name is ``AccountWithdrawSol``; the discriminator is
    derived from that name, not from the Python class name.
    """

    EVENT_NAME = "AccountWithdrawSol"

    account_id: bytes
    sender: bytes
    receiver: bytes
    broker_hash: bytes
    token_hash: bytes
    token_amount: int  # u128
    fee: int  # u128
    chain_id: int  # u128
    withdraw_nonce: int  # u64

    def __post_init__(self) -> None:
        for name in ("account_id", "sender", "receiver", "broker_hash", "token_hash"):
            value = getattr(self, name)
            _check_bytes32(name, value)
            if isinstance(value, bytearray):
                object.__setattr__(self, name, bytes(value))
        _check_uint("token_amount", self.token_amount, U128_MAX)
        _check_uint("fee", self.fee, U128_MAX)
        _check_uint("chain_id", self.chain_id, U128_MAX)
        _check_uint("withdraw_nonce", self.withdraw_nonce, U64_MAX)

    def to_dict(self) -> dict:
        return {
            "event": self.EVENT_NAME,
            "account_id": self.account_id.hex(),
            "sender": self.sender.hex(),
            "receiver": self.receiver.hex(),
            "broker_hash": self.broker_hash.hex(),
            "token_hash": self.token_hash.hex(),
            "token_amount": str(self.token_amount),
            "fee": str(self.fee),
            "chain_id": str(self.chain_id),
            "withdraw_nonce": self.withdraw_nonce,
        }
