"""Factories for new collection entities.

Every entity created here starts with all fields empty and flagged, except
references the caller sets deliberately, which are stored as confirmed values.
"""

import uuid
from typing import Callable, Optional, TypeVar

from quote_intake.models.entities import (
    AccidentData,
    ClaimData,
    DeductibleData,
    DriverData,
    EntityModel,
    LienholderData,
    ScheduledItemData,
    TicketData,
    VehicleData,
)
from quote_intake.models.fields import create_confirmed_field, create_default_field
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

EntityT = TypeVar("EntityT", bound=EntityModel)


def generate_entity_id() -> str:
    """Generate a new unique entity id."""
    return uuid.uuid4().hex


def _reference_field(value: Optional[str]):
    if value:
        return create_confirmed_field(value)
    return create_default_field()


def _amount_field(value: Optional[str]):
    if value is not None:
        return create_confirmed_field(value)
    return create_default_field()


class EntityFactory:
    """Creates entities with fresh ids.

    Args:
        id_generator: Callable returning a new id on every call. Defaults to
            ``generate_entity_id``; tests inject a deterministic one.
    """

    def __init__(self, id_generator: Optional[Callable[[], str]] = None):
        self._id_generator = id_generator or generate_entity_id

    def new_id(self) -> str:
        return self._id_generator()

    def create_vehicle(self) -> VehicleData:
        return VehicleData(id=self.new_id())

    def create_driver(self) -> DriverData:
        return DriverData(id=self.new_id())

    def create_deductible(self) -> DeductibleData:
        return DeductibleData(id=self.new_id())

    def create_deductible_for_vehicle(
        self,
        vehicle_id: str,
        comprehensive: Optional[str] = None,
        collision: Optional[str] = None,
    ) -> DeductibleData:
        """Create a deductible linked to ``vehicle_id``.

        Args:
            vehicle_id: Vehicle the deductible belongs to
            comprehensive: Optional default comprehensive deductible
            collision: Optional default collision deductible

        Returns:
            DeductibleData: New deductible with a confirmed vehicle reference
        """
        deductible = DeductibleData(
            id=self.new_id(),
            vehicle_ref=create_confirmed_field(vehicle_id),
            comprehensive_deductible=_amount_field(comprehensive),
            collision_deductible=_amount_field(collision),
        )
        LOGGER.debug(
            "Created deductible for vehicle",
            extra={"deductible_id": deductible.id, "vehicle_id": vehicle_id},
        )
        return deductible

    def create_lienholder(self, vehicle_id: Optional[str] = None) -> LienholderData:
        return LienholderData(id=self.new_id(), vehicle_ref=_reference_field(vehicle_id))

    def create_accident(self, driver_ref: Optional[str] = None) -> AccidentData:
        return AccidentData(id=self.new_id(), driver_ref=_reference_field(driver_ref))

    def create_ticket(self, driver_ref: Optional[str] = None) -> TicketData:
        return TicketData(id=self.new_id(), driver_ref=_reference_field(driver_ref))

    def create_claim(self) -> ClaimData:
        return ClaimData(id=self.new_id())

    def create_scheduled_item(self) -> ScheduledItemData:
        return ScheduledItemData(id=self.new_id())

    def duplicate(self, entity: EntityT) -> EntityT:
        """Copy an entity under a new id. Field values are shared, not copied."""
        return entity.model_copy(update={"id": self.new_id()})


default_factory = EntityFactory()
