"""Read-only consistency audit of a collection snapshot."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from quote_intake.models.entities import CollectionState
from quote_intake.services.references.graph import vehicles_missing_deductibles
from quote_intake.services.references.labels import vehicle_label
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class IssueType(str, Enum):
    ORPHANED_DEDUCTIBLE = "orphaned_deductible"
    ORPHANED_LIENHOLDER = "orphaned_lienholder"
    ORPHANED_ACCIDENT = "orphaned_accident"
    ORPHANED_TICKET = "orphaned_ticket"
    MISSING_DEDUCTIBLE = "missing_deductible"


@dataclass(frozen=True)
class ConsistencyIssue:
    """A reference problem with a suggested fix for the reviewer."""
    type: IssueType
    item_id: str
    message: str
    suggestion: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "item_id": self.item_id,
            "message": self.message,
            "suggestion": self.suggestion,
        }


def check_consistency(state: CollectionState) -> List[ConsistencyIssue]:
    """List every reference problem in ``state`` without changing it.

    Issues are reported in a stable order: orphaned deductibles, orphaned
    lienholders, orphaned accidents, orphaned tickets, then vehicles without
    a deductible. Owner and spouse driver references are always valid.

    Args:
        state: Snapshot to audit

    Returns:
        List of issues, empty when the snapshot is consistent
    """
    issues: List[ConsistencyIssue] = []
    vehicle_ids = state.vehicle_ids
    driver_ids = state.driver_ids

    for deductible in state.deductibles:
        if deductible.vehicle_target.is_dangling(vehicle_ids):
            issues.append(ConsistencyIssue(
                type=IssueType.ORPHANED_DEDUCTIBLE,
                item_id=deductible.id,
                message="Deductible references a non-existent vehicle",
                suggestion="Reassign to a valid vehicle or remove this deductible entry",
            ))

    for lienholder in state.lienholders:
        if lienholder.vehicle_target.is_dangling(vehicle_ids):
            issues.append(ConsistencyIssue(
                type=IssueType.ORPHANED_LIENHOLDER,
                item_id=lienholder.id,
                message="Lienholder references a non-existent vehicle",
                suggestion="Reassign to a valid vehicle or remove this lienholder entry",
            ))

    for accident in state.accidents:
        if accident.driver_target.is_dangling(driver_ids):
            issues.append(ConsistencyIssue(
                type=IssueType.ORPHANED_ACCIDENT,
                item_id=accident.id,
                message="Accident references a non-existent driver",
                suggestion="Reassign to a valid driver or clear the driver reference",
            ))

    for ticket in state.tickets:
        if ticket.driver_target.is_dangling(driver_ids):
            issues.append(ConsistencyIssue(
                type=IssueType.ORPHANED_TICKET,
                item_id=ticket.id,
                message="Ticket references a non-existent driver",
                suggestion="Reassign to a valid driver or clear the driver reference",
            ))

    for vehicle in vehicles_missing_deductibles(state.vehicles, state.deductibles):
        issues.append(ConsistencyIssue(
            type=IssueType.MISSING_DEDUCTIBLE,
            item_id=vehicle.id,
            message=f'Vehicle "{vehicle_label(vehicle)}" does not have a deductible entry',
            suggestion="Add a deductible entry for this vehicle",
        ))

    if issues:
        LOGGER.debug(
            f"Consistency check found {len(issues)} issue(s)",
            extra={"issue_types": sorted({issue.type.value for issue in issues})},
        )
    return issues
