"""Solana RPC and PubSub integration components."""

from sol_indexer.solana.pubsub import SolanaLogSubscriber, SolanaLogSubscription
from sol_indexer.solana.rpc import SolanaBlockFetcher

__all__ = ["SolanaBlockFetcher", "SolanaLogSubscriber", "SolanaLogSubscription"]
