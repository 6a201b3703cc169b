"""LogSubscriber protocol - live program log stream."""

from __future__ import annotations

from typing import Protocol

from sol_indexer.models.ledger import RawLogNotification


class LogSubscription(Protocol):
    """An open log stream."""

    async def recv(self) -> RawLogNotification:
        """Block until the next notification arrives.

        Raises SubscriptionClosedError when the stream ends and
        MalformedNotificationError on an unparseable message.
        """
        ...

    async def close(self) -> None:
        """Unsubscribe and release the connection. Safe to call twice."""
        ...


class LogSubscriber(Protocol):
    """Opens log subscriptions filtered by a mentioned address."""

    async def subscribe(self, program_id: str, commitment: str) -> LogSubscription:
        ...
