"""Capture-and-decode pipeline stages."""

from sol_indexer.pipeline.backfill import BackfillCoordinator
from sol_indexer.pipeline.scanner import LogScanner, iter_data_records
from sol_indexer.pipeline.slots import SlotBuffer
from sol_indexer.pipeline.subscription import DriverState, SubscriptionDriver, validate_filter

__all__ = [
    "BackfillCoordinator",
    "LogScanner", "iter_data_records",
    "SlotBuffer",
    "DriverState", "SubscriptionDriver", "validate_filter",
]
