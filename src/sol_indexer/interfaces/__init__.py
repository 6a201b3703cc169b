"""Protocol interfaces for the external collaborators of the pipeline."""

from sol_indexer.interfaces.block_source import BlockSource
from sol_indexer.interfaces.sink import EventSink
from sol_indexer.interfaces.subscriber import LogSubscriber, LogSubscription

__all__ = ["BlockSource", "EventSink", "LogSubscriber", "LogSubscription"]
