from library_sync.sync.coordinator import MutationCoordinator
from library_sync.sync.reconcile import ReconciliationEngine
from library_sync.sync.scheduler import AsyncioSettleScheduler, ScheduledTask, SettleScheduler

__all__ = [
    "MutationCoordinator",
    "ReconciliationEngine",
    "SettleScheduler",
    "AsyncioSettleScheduler",
    "ScheduledTask",
]
