"""Synchronization of cross-collection references.

Whenever vehicles or drivers change, the collections that point at them are
brought back in line:

- Every vehicle gets a deductible entry (optional, on by default).
- Deductibles and lienholders pointing at a missing vehicle are removed or,
  by default, only reported.
- Accidents and tickets pointing at a missing driver keep their record; only
  the driver reference is cleared and flagged for review.

All functions are pure: they never change their inputs and return new
snapshots alongside what changed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from quote_intake.config import Settings
from quote_intake.models.entities import (
    AccidentData,
    CollectionState,
    DeductibleData,
    DeletionCheck,
    DriverLinkedEntity,
    LienholderData,
    ReferencedType,
    ReferenceWarning,
    TicketData,
    VehicleData,
    VehicleLinkedEntity,
)
from quote_intake.models.references import ReferenceTarget
from quote_intake.services.factories import EntityFactory, default_factory
from quote_intake.services.references.graph import get_driver_dependencies, get_vehicle_dependencies
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SyncOptions(BaseModel):
    """Switches controlling what ``synchronize`` is allowed to change."""

    auto_create_deductibles: bool = True
    remove_orphaned_deductibles: bool = False
    remove_orphaned_lienholders: bool = False
    clear_orphaned_driver_refs: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncOptions":
        return cls(
            auto_create_deductibles=settings.auto_create_deductibles,
            remove_orphaned_deductibles=settings.remove_orphaned_deductibles,
            remove_orphaned_lienholders=settings.remove_orphaned_lienholders,
            clear_orphaned_driver_refs=settings.clear_orphaned_driver_refs,
        )


@dataclass
class SyncChanges:
    """Ids of the items a synchronization pass added, removed or changed."""
    added_deductibles: List[str] = field(default_factory=list)
    removed_deductibles: List[str] = field(default_factory=list)
    removed_lienholders: List[str] = field(default_factory=list)
    cleared_driver_refs: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.added_deductibles)
            + len(self.removed_deductibles)
            + len(self.removed_lienholders)
            + len(self.cleared_driver_refs)
        )

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added_deductibles": list(self.added_deductibles),
            "removed_deductibles": list(self.removed_deductibles),
            "removed_lienholders": list(self.removed_lienholders),
            "cleared_driver_refs": list(self.cleared_driver_refs),
        }


@dataclass
class SyncResult:
    state: CollectionState
    changes: SyncChanges
    warnings: List[str] = field(default_factory=list)


@dataclass
class VehicleReassignment:
    deductibles: Tuple[DeductibleData, ...]
    lienholders: Tuple[LienholderData, ...]
    updated_count: int


@dataclass
class DriverReassignment:
    accidents: Tuple[AccidentData, ...]
    tickets: Tuple[TicketData, ...]
    updated_count: int


@dataclass
class VehicleRemovalResult:
    deductibles: Tuple[DeductibleData, ...]
    lienholders: Tuple[LienholderData, ...]
    removed_deductibles: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DriverRemovalResult:
    accidents: Tuple[AccidentData, ...]
    tickets: Tuple[TicketData, ...]
    warnings: List[str] = field(default_factory=list)


@dataclass
class VehicleAddition:
    deductibles: Tuple[DeductibleData, ...]
    added_deductible: Optional[DeductibleData] = None


# =============================================================================
# Helpers
# =============================================================================

def _is_orphaned_vehicle_link(item: VehicleLinkedEntity, vehicle_ids) -> bool:
    return item.vehicle_target.is_dangling(vehicle_ids)


def _is_orphaned_driver_link(item: DriverLinkedEntity, driver_ids) -> bool:
    return item.driver_target.is_dangling(driver_ids)


def _clear_driver_ref(item):
    return item.model_copy(update={"driver_ref": item.driver_ref.cleared()})


def _with_vehicle_ref(item, vehicle_id: str):
    return item.model_copy(update={"vehicle_ref": item.vehicle_ref.with_value(vehicle_id)})


def _with_driver_ref(item, driver_ref: str):
    value = ReferenceTarget.from_driver_value(driver_ref).value
    return item.model_copy(update={"driver_ref": item.driver_ref.with_value(value)})


# =============================================================================
# Full state synchronization
# =============================================================================

def synchronize(
    state: CollectionState,
    options: Optional[SyncOptions] = None,
    factory: Optional[EntityFactory] = None,
) -> SyncResult:
    """Bring every reference in ``state`` back in line with vehicles and drivers.

    Steps run in a fixed order: deductibles are created for uncovered
    vehicles, orphaned deductibles and lienholders are removed when enabled,
    orphaned driver references on accidents then tickets are cleared, and
    finally warnings are produced for orphans that were kept.

    Args:
        state: Snapshot to synchronize; never modified
        options: What the pass may change; defaults to ``SyncOptions()``
        factory: Entity factory used for new deductibles

    Returns:
        SyncResult: New snapshot, the changes made and any warnings
    """
    options = options or SyncOptions()
    factory = factory or default_factory
    changes = SyncChanges()
    warnings: List[str] = []

    vehicle_ids = state.vehicle_ids
    driver_ids = state.driver_ids

    deductibles = list(state.deductibles)
    if options.auto_create_deductibles:
        covered = {d.vehicle_ref.value for d in deductibles if d.vehicle_ref.value is not None}
        for vehicle in state.vehicles:
            if vehicle.id not in covered:
                deductible = factory.create_deductible_for_vehicle(vehicle.id)
                deductibles.append(deductible)
                changes.added_deductibles.append(deductible.id)

    if options.remove_orphaned_deductibles:
        kept = []
        for d in deductibles:
            if _is_orphaned_vehicle_link(d, vehicle_ids):
                changes.removed_deductibles.append(d.id)
            else:
                kept.append(d)
        deductibles = kept

    lienholders = list(state.lienholders)
    if options.remove_orphaned_lienholders:
        kept = []
        for l in lienholders:
            if _is_orphaned_vehicle_link(l, vehicle_ids):
                changes.removed_lienholders.append(l.id)
            else:
                kept.append(l)
        lienholders = kept

    accidents = list(state.accidents)
    tickets = list(state.tickets)
    if options.clear_orphaned_driver_refs:
        for incidents in (accidents, tickets):
            for index, incident in enumerate(incidents):
                if _is_orphaned_driver_link(incident, driver_ids):
                    changes.cleared_driver_refs.append(incident.id)
                    incidents[index] = _clear_driver_ref(incident)

    orphaned_deductibles = sum(1 for d in deductibles if _is_orphaned_vehicle_link(d, vehicle_ids))
    orphaned_lienholders = sum(1 for l in lienholders if _is_orphaned_vehicle_link(l, vehicle_ids))
    if orphaned_deductibles > 0 and not options.remove_orphaned_deductibles:
        warnings.append(f"{orphaned_deductibles} deductible(s) reference non-existent vehicles")
    if orphaned_lienholders > 0 and not options.remove_orphaned_lienholders:
        warnings.append(f"{orphaned_lienholders} lienholder(s) reference non-existent vehicles")

    if changes.is_empty:
        new_state = state
    else:
        new_state = state.model_copy(update={
            "deductibles": tuple(deductibles),
            "lienholders": tuple(lienholders),
            "accidents": tuple(accidents),
            "tickets": tuple(tickets),
        })

    if not changes.is_empty:
        LOGGER.info(
            f"Synchronized collections with {changes.total} change(s)",
            extra=changes.to_dict(),
        )
    for warning in warnings:
        LOGGER.warning(warning)

    return SyncResult(state=new_state, changes=changes, warnings=warnings)


# =============================================================================
# Deletion guards
# =============================================================================

def can_delete_vehicle(
    vehicle_id: str,
    deductibles: Sequence[DeductibleData],
    lienholders: Sequence[LienholderData],
) -> DeletionCheck:
    """Check if a vehicle can be deleted without leaving dangling references."""
    dependencies = get_vehicle_dependencies(vehicle_id, deductibles, lienholders)
    if not dependencies:
        return DeletionCheck(can_delete=True)

    return DeletionCheck(
        can_delete=False,
        warning=ReferenceWarning(
            referenced_id=vehicle_id,
            referenced_type=ReferencedType.VEHICLE,
            referenced_label="This vehicle",
            dependencies=dependencies,
            message=(
                f"This vehicle is referenced by {len(dependencies)} other item(s). "
                "Please remove or reassign these references before deleting."
            ),
        ),
    )


def can_delete_driver(
    driver_id: str,
    accidents: Sequence[AccidentData],
    tickets: Sequence[TicketData],
) -> DeletionCheck:
    """Check if a driver can be deleted without leaving dangling references."""
    dependencies = get_driver_dependencies(driver_id, accidents, tickets)
    if not dependencies:
        return DeletionCheck(can_delete=True)

    return DeletionCheck(
        can_delete=False,
        warning=ReferenceWarning(
            referenced_id=driver_id,
            referenced_type=ReferencedType.DRIVER,
            referenced_label="This driver",
            dependencies=dependencies,
            message=(
                f"This driver is referenced by {len(dependencies)} accident/ticket record(s). "
                "Please remove or reassign these references before deleting."
            ),
        ),
    )


# =============================================================================
# Reassignment
# =============================================================================

def reassign_vehicle_references(
    from_vehicle_id: str,
    to_vehicle_id: str,
    deductibles: Sequence[DeductibleData],
    lienholders: Sequence[LienholderData],
) -> VehicleReassignment:
    """Point every deductible and lienholder of one vehicle at another."""
    updated_count = 0
    new_deductibles = []
    for d in deductibles:
        if d.vehicle_ref.value == from_vehicle_id:
            d = _with_vehicle_ref(d, to_vehicle_id)
            updated_count += 1
        new_deductibles.append(d)

    new_lienholders = []
    for l in lienholders:
        if l.vehicle_ref.value == from_vehicle_id:
            l = _with_vehicle_ref(l, to_vehicle_id)
            updated_count += 1
        new_lienholders.append(l)

    LOGGER.debug(
        "Reassigned vehicle references",
        extra={"from_vehicle_id": from_vehicle_id, "to_vehicle_id": to_vehicle_id, "updated_count": updated_count},
    )
    return VehicleReassignment(tuple(new_deductibles), tuple(new_lienholders), updated_count)


def reassign_driver_references(
    from_driver_id: str,
    to_driver_id: str,
    accidents: Sequence[AccidentData],
    tickets: Sequence[TicketData],
) -> DriverReassignment:
    """Point every accident and ticket of one driver at another.

    ``to_driver_id`` may be one of the reserved owner/spouse values.
    """
    updated_count = 0
    new_accidents = []
    for a in accidents:
        if a.driver_ref.value == from_driver_id:
            a = _with_driver_ref(a, to_driver_id)
            updated_count += 1
        new_accidents.append(a)

    new_tickets = []
    for t in tickets:
        if t.driver_ref.value == from_driver_id:
            t = _with_driver_ref(t, to_driver_id)
            updated_count += 1
        new_tickets.append(t)

    LOGGER.debug(
        "Reassigned driver references",
        extra={"from_driver_id": from_driver_id, "to_driver_id": to_driver_id, "updated_count": updated_count},
    )
    return DriverReassignment(tuple(new_accidents), tuple(new_tickets), updated_count)


# =============================================================================
# Add/remove follow-ups
# =============================================================================

def on_vehicle_added(
    vehicle: VehicleData,
    deductibles: Sequence[DeductibleData],
    create_deductible: bool = True,
    default_comprehensive: Optional[str] = None,
    default_collision: Optional[str] = None,
    factory: Optional[EntityFactory] = None,
) -> VehicleAddition:
    """Create the deductible entry that accompanies a new vehicle."""
    if not create_deductible:
        return VehicleAddition(deductibles=tuple(deductibles))

    factory = factory or default_factory
    deductible = factory.create_deductible_for_vehicle(
        vehicle.id,
        comprehensive=default_comprehensive,
        collision=default_collision,
    )
    return VehicleAddition(
        deductibles=tuple(deductibles) + (deductible,),
        added_deductible=deductible,
    )


def on_vehicle_removed(
    vehicle_id: str,
    deductibles: Sequence[DeductibleData],
    lienholders: Sequence[LienholderData],
    remove_deductibles: bool = False,
    remove_lienholders: bool = False,
) -> VehicleRemovalResult:
    """Handle the dependents of a vehicle that is being removed.

    Dependents are either removed with it or left in place with a warning
    that they will be orphaned.
    """
    warnings: List[str] = []
    removed_deductibles: List[str] = []

    linked_deductibles = [d for d in deductibles if d.vehicle_ref.value == vehicle_id]
    if remove_deductibles:
        removed_deductibles = [d.id for d in linked_deductibles]
        new_deductibles = tuple(d for d in deductibles if d.vehicle_ref.value != vehicle_id)
    else:
        new_deductibles = tuple(deductibles)
        if linked_deductibles:
            warnings.append(
                f"{len(linked_deductibles)} deductible(s) reference this vehicle and will become orphaned"
            )

    linked_lienholders = [l for l in lienholders if l.vehicle_ref.value == vehicle_id]
    if remove_lienholders:
        new_lienholders = tuple(l for l in lienholders if l.vehicle_ref.value != vehicle_id)
    else:
        new_lienholders = tuple(lienholders)
        if linked_lienholders:
            warnings.append(
                f"{len(linked_lienholders)} lienholder(s) reference this vehicle and will become orphaned"
            )

    return VehicleRemovalResult(
        deductibles=new_deductibles,
        lienholders=new_lienholders,
        removed_deductibles=removed_deductibles,
        warnings=warnings,
    )


def on_driver_removed(
    driver_id: str,
    accidents: Sequence[AccidentData],
    tickets: Sequence[TicketData],
    remove_incidents: bool = False,
    clear_references: bool = False,
) -> DriverRemovalResult:
    """Handle the accidents and tickets of a driver that is being removed.

    Incidents are removed, have their driver reference cleared, or are left
    untouched with a warning, in that order of precedence.
    """
    warnings: List[str] = []
    dependencies = get_driver_dependencies(driver_id, accidents, tickets)

    if remove_incidents:
        new_accidents = tuple(a for a in accidents if a.driver_ref.value != driver_id)
        new_tickets = tuple(t for t in tickets if t.driver_ref.value != driver_id)
    elif clear_references:
        new_accidents = tuple(
            _clear_driver_ref(a) if a.driver_ref.value == driver_id else a for a in accidents
        )
        new_tickets = tuple(
            _clear_driver_ref(t) if t.driver_ref.value == driver_id else t for t in tickets
        )
        if dependencies:
            warnings.append(f"{len(dependencies)} incident(s) had their driver reference cleared")
    else:
        new_accidents = tuple(accidents)
        new_tickets = tuple(tickets)
        if dependencies:
            warnings.append(
                f"{len(dependencies)} incident(s) reference this driver and will have invalid references"
            )

    return DriverRemovalResult(accidents=new_accidents, tickets=new_tickets, warnings=warnings)
