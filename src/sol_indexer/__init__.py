"""sol_indexer - finalized-block event indexer for a Solana program."""

__version__ = "0.1.0"
