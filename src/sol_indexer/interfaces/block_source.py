"""BlockSource protocol - fetches finalized blocks by slot."""

from __future__ import annotations

from typing import Protocol

from sol_indexer.models.ledger import FinalizedBlock


class BlockSource(Protocol):
    async def fetch_block(self, slot: int) -> FinalizedBlock:
        """Fetch the block for ``slot``.

        Raises BlockNotFoundError when the slot has no block and
        BlockFetchError for any other failure.
        """
        ...
