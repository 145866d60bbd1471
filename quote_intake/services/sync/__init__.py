from quote_intake.services.sync.consistency import ConsistencyIssue, IssueType, check_consistency
from quote_intake.services.sync.synchronization_service import (
    SyncChanges,
    SyncOptions,
    SyncResult,
    can_delete_driver,
    can_delete_vehicle,
    on_driver_removed,
    on_vehicle_added,
    on_vehicle_removed,
    reassign_driver_references,
    reassign_vehicle_references,
    synchronize,
)

__all__ = [
    "ConsistencyIssue",
    "IssueType",
    "check_consistency",
    "SyncChanges",
    "SyncOptions",
    "SyncResult",
    "can_delete_driver",
    "can_delete_vehicle",
    "on_driver_removed",
    "on_vehicle_added",
    "on_vehicle_removed",
    "reassign_driver_references",
    "reassign_vehicle_references",
    "synchronize",
]
