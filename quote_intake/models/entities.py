"""Collection entities edited on the review form and their dependency records.

Each entity carries a caller-generated ``id`` that is unique within its
collection. Deductibles and lienholders reference a vehicle id; accidents and
tickets reference a driver id or one of the reserved owner/spouse values.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from quote_intake.core.exceptions import MalformedEntityError
from quote_intake.models.fields import ExtractionField, FrozenModel, text_field
from quote_intake.models.references import ReferenceTarget


class EntityModel(FrozenModel):
    """Base for every collection entity."""

    id: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("entity id must be a non-empty string")
        return v

    def field_items(self) -> List[Tuple[str, ExtractionField]]:
        """All extraction fields of the entity, in declaration order."""
        return [
            (name, getattr(self, name))
            for name in type(self).model_fields
            if name != "id"
        ]


class VehicleData(EntityModel):
    year: ExtractionField = text_field()
    make: ExtractionField = text_field()
    model: ExtractionField = text_field()
    vin: ExtractionField = text_field()
    ownership: ExtractionField = text_field()
    usage: ExtractionField = text_field()
    annual_mileage: ExtractionField = text_field()
    garaging_address: ExtractionField = text_field()


class DriverData(EntityModel):
    first_name: ExtractionField = text_field()
    last_name: ExtractionField = text_field()
    date_of_birth: ExtractionField = text_field()
    license_number: ExtractionField = text_field()
    license_state: ExtractionField = text_field()
    relationship: ExtractionField = text_field()
    gender: ExtractionField = text_field()
    marital_status: ExtractionField = text_field()


class VehicleLinkedEntity(EntityModel):
    """Entity that belongs to a vehicle through ``vehicle_ref``."""

    vehicle_ref: ExtractionField = text_field()

    @property
    def vehicle_target(self) -> ReferenceTarget:
        return ReferenceTarget.from_vehicle_value(self.vehicle_ref.value)


class DeductibleData(VehicleLinkedEntity):
    comprehensive_deductible: ExtractionField = text_field()
    collision_deductible: ExtractionField = text_field()


class LienholderData(VehicleLinkedEntity):
    name: ExtractionField = text_field()
    address: ExtractionField = text_field()
    city: ExtractionField = text_field()
    state: ExtractionField = text_field()
    zip: ExtractionField = text_field()
    loan_number: ExtractionField = text_field()


class DriverLinkedEntity(EntityModel):
    """Incident that belongs to a driver through ``driver_ref``."""

    date: ExtractionField = text_field()
    type: ExtractionField = text_field()
    description: ExtractionField = text_field()
    driver_ref: ExtractionField = text_field()

    @property
    def driver_target(self) -> ReferenceTarget:
        return ReferenceTarget.from_driver_value(self.driver_ref.value)


class AccidentData(DriverLinkedEntity):
    at_fault: ExtractionField = text_field()
    amount_paid: ExtractionField = text_field()


class TicketData(DriverLinkedEntity):
    points: ExtractionField = text_field()


class ClaimData(EntityModel):
    date: ExtractionField = text_field()
    type: ExtractionField = text_field()
    description: ExtractionField = text_field()
    amount: ExtractionField = text_field()
    status: ExtractionField = text_field()


class ScheduledItemData(EntityModel):
    category: ExtractionField = text_field()
    description: ExtractionField = text_field()
    value: ExtractionField = text_field()
    serial_number: ExtractionField = text_field()
    appraisal_date: ExtractionField = text_field()


class CollectionName(str, Enum):
    """Collections held in a ``CollectionState``."""

    VEHICLES = "vehicles"
    DRIVERS = "drivers"
    DEDUCTIBLES = "deductibles"
    LIENHOLDERS = "lienholders"
    ACCIDENTS = "accidents"
    TICKETS = "tickets"
    CLAIMS = "claims"
    SCHEDULED_ITEMS = "scheduled_items"


COLLECTION_ENTITY_TYPES = {
    CollectionName.VEHICLES: VehicleData,
    CollectionName.DRIVERS: DriverData,
    CollectionName.DEDUCTIBLES: DeductibleData,
    CollectionName.LIENHOLDERS: LienholderData,
    CollectionName.ACCIDENTS: AccidentData,
    CollectionName.TICKETS: TicketData,
    CollectionName.CLAIMS: ClaimData,
    CollectionName.SCHEDULED_ITEMS: ScheduledItemData,
}


class CollectionState(FrozenModel):
    """Snapshot of every form collection.

    Collections are tuples so a snapshot can be shared safely; producing a
    new snapshot with ``model_copy(update=...)`` reuses every collection that
    did not change.
    """

    vehicles: Tuple[VehicleData, ...] = ()
    drivers: Tuple[DriverData, ...] = ()
    deductibles: Tuple[DeductibleData, ...] = ()
    lienholders: Tuple[LienholderData, ...] = ()
    accidents: Tuple[AccidentData, ...] = ()
    tickets: Tuple[TicketData, ...] = ()
    claims: Tuple[ClaimData, ...] = ()
    scheduled_items: Tuple[ScheduledItemData, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CollectionState":
        """Build a snapshot from a loosely-typed payload (e.g. a stored draft).

        Raises:
            MalformedEntityError: If any entity is structurally malformed
        """
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedEntityError(
                f"Malformed collection state: {e.error_count()} error(s)",
                original_error=e,
            )

    def collection(self, name: CollectionName) -> Tuple[EntityModel, ...]:
        return getattr(self, CollectionName(name).value)

    def with_collection(self, name: CollectionName, items) -> "CollectionState":
        return self.model_copy(update={CollectionName(name).value: tuple(items)})

    @property
    def vehicle_ids(self) -> frozenset:
        return frozenset(v.id for v in self.vehicles)

    @property
    def driver_ids(self) -> frozenset:
        return frozenset(d.id for d in self.drivers)


class DependentType(str, Enum):
    """Type of entity that depends on a vehicle or driver."""

    DEDUCTIBLE = "deductible"
    LIENHOLDER = "lienholder"
    ACCIDENT = "accident"
    TICKET = "ticket"


class ReferencedType(str, Enum):
    VEHICLE = "vehicle"
    DRIVER = "driver"


class ReferenceDependency(FrozenModel):
    """An item in another collection that references an entity."""

    dependent_type: DependentType
    dependent_id: str
    field_name: str
    label: str


class ReferenceWarning(FrozenModel):
    """Explanation of why an entity cannot be deleted as-is."""

    referenced_id: str
    referenced_type: ReferencedType
    referenced_label: str
    dependencies: List[ReferenceDependency] = Field(default_factory=list)
    message: str


class DeletionCheck(FrozenModel):
    """Outcome of a deletion guard."""

    can_delete: bool
    warning: Optional[ReferenceWarning] = None


def parse_entity(entity_type, payload: Dict[str, Any]) -> EntityModel:
    """Validate a single loosely-typed entity.

    Raises:
        MalformedEntityError: If the payload does not describe a valid entity
    """
    try:
        return entity_type.model_validate(payload)
    except PydanticValidationError as e:
        raise MalformedEntityError(
            f"Malformed {entity_type.__name__}: {e.error_count()} error(s)",
            original_error=e,
        )
