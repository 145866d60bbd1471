"""Single writer for the editable collections of one record.

The editor owns the current ``CollectionState`` snapshot. Every structural
change goes through the container bounds configured in settings and is
followed by a synchronization pass, so the snapshot it exposes always has a
deductible per vehicle (when enabled) and no driver reference to an unknown
driver. Callers must not share one editor between concurrent writers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from quote_intake.config import Settings, settings as default_settings
from quote_intake.core.exceptions import EntityNotFoundError, ValidationError
from quote_intake.models.entities import (
    CollectionName,
    CollectionState,
    EntityModel,
    ReferenceWarning,
)
from quote_intake.models.fields import BaseExtractionField, ConfidenceLevel
from quote_intake.models.references import ReferenceTarget
from quote_intake.services.collections.array_field import ArrayField
from quote_intake.services.factories import EntityFactory
from quote_intake.services.references.labels import driver_deletion_message, vehicle_deletion_message
from quote_intake.services.sync.consistency import ConsistencyIssue, check_consistency
from quote_intake.services.sync.synchronization_service import (
    SyncOptions,
    SyncResult,
    can_delete_driver,
    can_delete_vehicle,
    on_driver_removed,
    on_vehicle_removed,
    reassign_driver_references,
    reassign_vehicle_references,
    synchronize,
)
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DeletionPolicy(str, Enum):
    """What to do with the dependents of a vehicle or driver being deleted."""

    BLOCK = "block"
    CASCADE = "cascade"
    ORPHAN = "orphan"
    CLEAR_REFERENCES = "clear_references"


@dataclass
class EditResult:
    """Outcome of one editor operation.

    Attributes:
        state: Snapshot after the operation (unchanged when not applied)
        applied: Whether the operation changed anything
        warning: Why a deletion was refused, for BLOCK policy refusals
        warnings: Follow-up warnings from removal and synchronization
        sync: Synchronization pass that ran after the change, if any
        item_id: Id of the item the operation created, if any
    """
    state: CollectionState
    applied: bool = True
    warning: Optional[ReferenceWarning] = None
    warnings: List[str] = field(default_factory=list)
    sync: Optional[SyncResult] = None
    item_id: Optional[str] = None


class CollectionEditor:
    """Applies review-form edits to a collection snapshot.

    Args:
        state: Starting snapshot; an empty one when omitted
        settings: Source of cardinality limits and synchronization defaults
        factory: Entity factory for new items and ids
        options: Synchronization options; derived from ``settings`` when omitted
    """

    def __init__(
        self,
        state: Optional[CollectionState] = None,
        settings: Optional[Settings] = None,
        factory: Optional[EntityFactory] = None,
        options: Optional[SyncOptions] = None,
    ):
        self.settings = settings or default_settings
        self.factory = factory or EntityFactory()
        self.options = options or SyncOptions.from_settings(self.settings)
        self._state = state or CollectionState()
        self._defaults: Dict[CollectionName, Callable[[], EntityModel]] = {
            CollectionName.VEHICLES: self.factory.create_vehicle,
            CollectionName.DRIVERS: self.factory.create_driver,
            CollectionName.DEDUCTIBLES: self.factory.create_deductible,
            CollectionName.LIENHOLDERS: self.factory.create_lienholder,
            CollectionName.ACCIDENTS: self.factory.create_accident,
            CollectionName.TICKETS: self.factory.create_ticket,
            CollectionName.CLAIMS: self.factory.create_claim,
            CollectionName.SCHEDULED_ITEMS: self.factory.create_scheduled_item,
        }
        LOGGER.info("Initialized CollectionEditor")

    @property
    def state(self) -> CollectionState:
        return self._state

    # =========================================================================
    # Internals
    # =========================================================================

    def _bounds(self, name: CollectionName) -> Tuple[int, int]:
        s = self.settings
        bounds = {
            CollectionName.VEHICLES: (s.min_vehicles, s.max_vehicles),
            CollectionName.DRIVERS: (s.min_drivers, s.max_drivers),
            CollectionName.DEDUCTIBLES: (0, s.max_deductibles),
            CollectionName.LIENHOLDERS: (0, s.max_lienholders),
            CollectionName.ACCIDENTS: (0, s.max_accidents),
            CollectionName.TICKETS: (0, s.max_tickets),
            CollectionName.CLAIMS: (0, s.max_claims),
            CollectionName.SCHEDULED_ITEMS: (0, s.max_scheduled_items),
        }
        return bounds[name]

    def _container(self, name: CollectionName, state: Optional[CollectionState] = None) -> ArrayField:
        name = CollectionName(name)
        min_items, max_items = self._bounds(name)
        return ArrayField(
            self._defaults[name],
            (state or self._state).collection(name),
            min_items=min_items,
            max_items=max_items,
        )

    def _require(self, name: CollectionName, item_id: str) -> EntityModel:
        item = self._container(name).get(item_id)
        if item is None:
            raise EntityNotFoundError(f"No {CollectionName(name).value} item with id {item_id}")
        return item

    def _commit(
        self,
        state: CollectionState,
        warnings: Optional[List[str]] = None,
        item_id: Optional[str] = None,
        options: Optional[SyncOptions] = None,
    ) -> EditResult:
        sync = synchronize(state, options or self.options, self.factory)
        self._state = sync.state
        return EditResult(
            state=self._state,
            applied=True,
            warnings=list(warnings or []) + sync.warnings,
            sync=sync,
            item_id=item_id,
        )

    def _refused(self, warning: Optional[ReferenceWarning] = None, message: Optional[str] = None) -> EditResult:
        return EditResult(
            state=self._state,
            applied=False,
            warning=warning,
            warnings=[message] if message else [],
        )

    def _add(self, name: CollectionName, item: EntityModel) -> EditResult:
        container = self._container(name).add(item)
        LOGGER.debug(f"Added {CollectionName(name).value} item", extra={"item_id": item.id})
        return self._commit(self._state.with_collection(name, container.items), item_id=item.id)

    # =========================================================================
    # Vehicles
    # =========================================================================

    def add_vehicle(self) -> EditResult:
        """Add an empty vehicle; synchronization gives it a deductible."""
        return self._add(CollectionName.VEHICLES, self.factory.create_vehicle())

    def duplicate_vehicle(self, vehicle_id: str) -> EditResult:
        """Copy a vehicle right after the original.

        The copy does not take over the original's deductibles or
        lienholders; synchronization creates its own deductible.
        """
        new_id = self.factory.new_id()
        container = self._container(CollectionName.VEHICLES).duplicate(vehicle_id, new_id)
        return self._commit(
            self._state.with_collection(CollectionName.VEHICLES, container.items),
            item_id=new_id,
        )

    def remove_vehicle(self, vehicle_id: str, policy: DeletionPolicy = DeletionPolicy.BLOCK) -> EditResult:
        """Remove a vehicle, handling its deductibles and lienholders per ``policy``.

        Raises:
            EntityNotFoundError: If no vehicle has ``vehicle_id``
            ValidationError: If ``policy`` is CLEAR_REFERENCES, which only applies to drivers
        """
        vehicle = self._require(CollectionName.VEHICLES, vehicle_id)
        policy = DeletionPolicy(policy)
        if policy == DeletionPolicy.CLEAR_REFERENCES:
            raise ValidationError("CLEAR_REFERENCES only applies to driver deletion")

        state = self._state
        if policy == DeletionPolicy.BLOCK:
            check = can_delete_vehicle(vehicle_id, state.deductibles, state.lienholders)
            if not check.can_delete:
                LOGGER.info(
                    "Vehicle deletion refused",
                    extra={"vehicle_id": vehicle_id, "dependencies": len(check.warning.dependencies)},
                )
                message = vehicle_deletion_message(vehicle, check.warning.dependencies)
                return self._refused(check.warning, message)

        container, removed = self._container(CollectionName.VEHICLES).remove(vehicle_id)
        if not removed:
            return self._refused()

        cascade = policy == DeletionPolicy.CASCADE
        follow_up = on_vehicle_removed(
            vehicle_id,
            state.deductibles,
            state.lienholders,
            remove_deductibles=cascade,
            remove_lienholders=cascade,
        )
        new_state = state.model_copy(update={
            "vehicles": container.items,
            "deductibles": follow_up.deductibles,
            "lienholders": follow_up.lienholders,
        })
        LOGGER.info(
            "Removed vehicle",
            extra={"vehicle_id": vehicle_id, "policy": policy.value},
        )
        return self._commit(new_state, warnings=follow_up.warnings)

    # =========================================================================
    # Drivers
    # =========================================================================

    def add_driver(self) -> EditResult:
        return self._add(CollectionName.DRIVERS, self.factory.create_driver())

    def duplicate_driver(self, driver_id: str) -> EditResult:
        """Copy a driver right after the original. Incidents stay with the original."""
        new_id = self.factory.new_id()
        container = self._container(CollectionName.DRIVERS).duplicate(driver_id, new_id)
        return self._commit(
            self._state.with_collection(CollectionName.DRIVERS, container.items),
            item_id=new_id,
        )

    def remove_driver(self, driver_id: str, policy: DeletionPolicy = DeletionPolicy.BLOCK) -> EditResult:
        """Remove a driver, handling its accidents and tickets per ``policy``.

        ORPHAN leaves the references in place, but the synchronization that
        follows still clears them when ``clear_orphaned_driver_refs`` is on
        (the default). ORPHAN only keeps dangling driver references when that
        option is off.

        Raises:
            EntityNotFoundError: If no driver has ``driver_id``
        """
        driver = self._require(CollectionName.DRIVERS, driver_id)
        policy = DeletionPolicy(policy)

        state = self._state
        if policy == DeletionPolicy.BLOCK:
            check = can_delete_driver(driver_id, state.accidents, state.tickets)
            if not check.can_delete:
                LOGGER.info(
                    "Driver deletion refused",
                    extra={"driver_id": driver_id, "dependencies": len(check.warning.dependencies)},
                )
                message = driver_deletion_message(driver, check.warning.dependencies)
                return self._refused(check.warning, message)

        container, removed = self._container(CollectionName.DRIVERS).remove(driver_id)
        if not removed:
            return self._refused()

        follow_up = on_driver_removed(
            driver_id,
            state.accidents,
            state.tickets,
            remove_incidents=policy == DeletionPolicy.CASCADE,
            clear_references=policy == DeletionPolicy.CLEAR_REFERENCES,
        )
        new_state = state.model_copy(update={
            "drivers": container.items,
            "accidents": follow_up.accidents,
            "tickets": follow_up.tickets,
        })
        LOGGER.info(
            "Removed driver",
            extra={"driver_id": driver_id, "policy": policy.value},
        )
        return self._commit(new_state, warnings=follow_up.warnings)

    # =========================================================================
    # Dependent collections
    # =========================================================================

    def add_deductible(self, vehicle_id: Optional[str] = None) -> EditResult:
        if vehicle_id:
            self._require(CollectionName.VEHICLES, vehicle_id)
            deductible = self.factory.create_deductible_for_vehicle(vehicle_id)
        else:
            deductible = self.factory.create_deductible()
        return self._add(CollectionName.DEDUCTIBLES, deductible)

    def add_lienholder(self, vehicle_id: Optional[str] = None) -> EditResult:
        if vehicle_id:
            self._require(CollectionName.VEHICLES, vehicle_id)
        return self._add(CollectionName.LIENHOLDERS, self.factory.create_lienholder(vehicle_id))

    def _check_driver_ref(self, driver_ref: Optional[str]) -> None:
        target = ReferenceTarget.from_driver_value(driver_ref)
        if target.is_dangling(self._state.driver_ids):
            raise EntityNotFoundError(f"No driver with id {driver_ref}")

    def add_accident(self, driver_ref: Optional[str] = None) -> EditResult:
        self._check_driver_ref(driver_ref)
        return self._add(CollectionName.ACCIDENTS, self.factory.create_accident(driver_ref))

    def add_ticket(self, driver_ref: Optional[str] = None) -> EditResult:
        self._check_driver_ref(driver_ref)
        return self._add(CollectionName.TICKETS, self.factory.create_ticket(driver_ref))

    def add_claim(self) -> EditResult:
        return self._add(CollectionName.CLAIMS, self.factory.create_claim())

    def add_scheduled_item(self) -> EditResult:
        return self._add(CollectionName.SCHEDULED_ITEMS, self.factory.create_scheduled_item())

    def remove_item(self, collection: CollectionName, item_id: str) -> EditResult:
        """Remove an item from a collection that nothing else references.

        Vehicles and drivers must go through ``remove_vehicle`` and
        ``remove_driver``. Removing the only deductible of a vehicle is
        followed by a fresh one when deductibles are auto-created.

        Raises:
            ValidationError: If ``collection`` is vehicles or drivers
            EntityNotFoundError: If the id is unknown
        """
        name = CollectionName(collection)
        if name in (CollectionName.VEHICLES, CollectionName.DRIVERS):
            raise ValidationError(f"Use the dedicated removal for {name.value}")
        self._require(name, item_id)

        container, removed = self._container(name).remove(item_id)
        if not removed:
            return self._refused()
        return self._commit(self._state.with_collection(name, container.items))

    def update_field(
        self,
        collection: CollectionName,
        item_id: str,
        field_name: str,
        value: Union[BaseExtractionField, Any],
    ) -> EditResult:
        """Set one field of one item.

        A plain value is stored as a reviewer-confirmed value (high confidence,
        not flagged); a field instance is stored as given.

        Raises:
            EntityNotFoundError: If the id is unknown
            ValidationError: If the item has no such field
        """
        name = CollectionName(collection)
        item = self._require(name, item_id)
        if field_name == "id" or field_name not in type(item).model_fields:
            raise ValidationError(f"{type(item).__name__} has no field {field_name}")

        if isinstance(value, BaseExtractionField):
            new_field = value
        else:
            new_field = getattr(item, field_name).with_value(
                value, confidence=ConfidenceLevel.HIGH, flagged=False
            )

        container = self._container(name).update(item_id, **{field_name: new_field})
        return self._commit(self._state.with_collection(name, container.items))

    # =========================================================================
    # Reassignment and synchronization
    # =========================================================================

    def reassign_vehicle(self, from_vehicle_id: str, to_vehicle_id: str) -> EditResult:
        """Move every deductible and lienholder of one vehicle to another.

        The synchronization after a reassignment does not auto-create a
        deductible, so the vacated vehicle can be removed next without being
        blocked. Any later edit gives it a deductible again if it is kept.
        """
        self._require(CollectionName.VEHICLES, to_vehicle_id)
        result = reassign_vehicle_references(
            from_vehicle_id, to_vehicle_id, self._state.deductibles, self._state.lienholders
        )
        if result.updated_count == 0:
            return self._refused()
        new_state = self._state.model_copy(update={
            "deductibles": result.deductibles,
            "lienholders": result.lienholders,
        })
        no_auto_create = self.options.model_copy(update={"auto_create_deductibles": False})
        return self._commit(new_state, options=no_auto_create)

    def reassign_driver(self, from_driver_id: str, to_driver_ref: str) -> EditResult:
        """Move every accident and ticket of one driver to another driver, owner or spouse."""
        if not to_driver_ref:
            raise ValidationError("A target driver is required")
        self._check_driver_ref(to_driver_ref)
        result = reassign_driver_references(
            from_driver_id, to_driver_ref, self._state.accidents, self._state.tickets
        )
        if result.updated_count == 0:
            return self._refused()
        new_state = self._state.model_copy(update={
            "accidents": result.accidents,
            "tickets": result.tickets,
        })
        return self._commit(new_state)

    def synchronize(self) -> SyncResult:
        """Run a synchronization pass on the current snapshot."""
        result = synchronize(self._state, self.options, self.factory)
        self._state = result.state
        return result

    def consistency_issues(self) -> List[ConsistencyIssue]:
        return check_consistency(self._state)
