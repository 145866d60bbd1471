"""Build editable collections from a merged Auto record.

The recognition service describes links between array items in free text:
a deductible names its vehicle as "Vehicle 2", a VIN or "2019 Honda Civic";
an incident names its driver. This module assigns ids to vehicles and drivers
and resolves that text into id references. Text that cannot be resolved is
kept in ``raw_text`` and the reference is left empty and flagged for review.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from quote_intake.config import Settings, settings as default_settings
from quote_intake.models.entities import (
    AccidentData,
    CollectionName,
    CollectionState,
    DeductibleData,
    DriverData,
    LienholderData,
    TicketData,
    VehicleData,
)
from quote_intake.models.fields import ExtractionField
from quote_intake.models.records import (
    AutoAccidentOrTicket,
    AutoAdditionalDriver,
    AutoExtractionResult,
    AutoVehicle,
)
from quote_intake.models.references import DriverSentinel
from quote_intake.services.factories import EntityFactory
from quote_intake.services.references.graph import find_vehicle_by_vin, normalize_vin
from quote_intake.services.references.labels import vehicle_label
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

_VEHICLE_ORDINAL = re.compile(r"^\s*(?:vehicle|veh|auto|car)?\s*#?\s*(\d{1,2})\s*$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
MIN_VIN_SUFFIX = 4


@dataclass(frozen=True)
class UnresolvedReference:
    """Reference text that matched no vehicle or driver."""
    collection: CollectionName
    item_id: str
    text: str


@dataclass
class StateBuildResult:
    state: CollectionState
    unresolved: List[UnresolvedReference] = field(default_factory=list)


def _normalize_name(text: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", (text or "").strip().lower())


def _full_name(first: Optional[str], last: Optional[str]) -> str:
    return _normalize_name(" ".join(p for p in (first, last) if p))


def _name_variants(first: Optional[str], last: Optional[str]) -> List[str]:
    """Ways a name is written on forms: "Jane Smith" and "Smith, Jane"."""
    variants = []
    full = _full_name(first, last)
    if full:
        variants.append(full)
    if first and last:
        variants.append(_normalize_name(f"{last}, {first}"))
    return variants


def _resolved(source: ExtractionField, value: str) -> ExtractionField:
    return source.model_copy(update={"value": value, "raw_text": source.value})


def _unresolved(source: ExtractionField) -> ExtractionField:
    return source.model_copy(update={
        "value": None,
        "flagged": True,
        "raw_text": source.value if source.value is not None else source.raw_text,
    })


def _single(matches: Sequence[VehicleData]) -> Optional[VehicleData]:
    return matches[0] if len(matches) == 1 else None


def resolve_vehicle_reference(text: Optional[str], vehicles: Sequence[VehicleData]) -> Optional[VehicleData]:
    """Resolve free-text vehicle reference to one of ``vehicles``.

    Tried in order: ordinal ("Vehicle 2", "#2", "2"), full VIN, unique VIN
    suffix of at least four characters, unique year/make/model label.

    Returns:
        Matching vehicle, or None when the text is empty, unknown or ambiguous
    """
    if not text or not text.strip():
        return None

    ordinal = _VEHICLE_ORDINAL.match(text)
    if ordinal:
        index = int(ordinal.group(1)) - 1
        return vehicles[index] if 0 <= index < len(vehicles) else None

    by_vin = find_vehicle_by_vin(vehicles, text)
    if by_vin is not None:
        return by_vin

    suffix = normalize_vin(text)
    if len(suffix) >= MIN_VIN_SUFFIX:
        match = _single([
            v for v in vehicles
            if v.vin.value and normalize_vin(v.vin.value).endswith(suffix)
        ])
        if match is not None:
            return match

    wanted = _normalize_name(text)
    return _single([
        v for v in vehicles
        if wanted in (
            _normalize_name(vehicle_label(v)),
            _full_name(v.make.value, v.model.value),
        )
    ])


def resolve_driver_reference(
    text: Optional[str],
    record: AutoExtractionResult,
    drivers: Sequence[DriverData],
) -> Optional[str]:
    """Resolve a free-text driver name to a driver reference value.

    The primary applicant and spouse resolve to the reserved owner and spouse
    values; other names resolve to the id of a uniquely matching driver.
    """
    wanted = _normalize_name(text)
    if not wanted:
        return None

    personal = record.personal
    if wanted in _name_variants(personal.owner_first_name.value, personal.owner_last_name.value):
        return DriverSentinel.OWNER.value
    if wanted in _name_variants(personal.spouse_first_name.value, personal.spouse_last_name.value):
        return DriverSentinel.SPOUSE.value

    matches = [
        d for d in drivers
        if wanted in _name_variants(d.first_name.value, d.last_name.value)
    ]
    if len(matches) == 1:
        return matches[0].id
    return None


class CollectionStateBuilder:
    """Converts a merged ``AutoExtractionResult`` into a ``CollectionState``.

    Args:
        settings: Supplies the incident type keywords that mark a ticket
        factory: Supplies ids for the new entities
    """

    def __init__(self, settings: Optional[Settings] = None, factory: Optional[EntityFactory] = None):
        self.settings = settings or default_settings
        self.factory = factory or EntityFactory()
        self.ticket_keywords = [k.lower() for k in self.settings.ticket_type_keywords]

    def is_ticket(self, incident: AutoAccidentOrTicket) -> bool:
        incident_type = (incident.type.value or "").lower()
        return any(keyword in incident_type for keyword in self.ticket_keywords)

    def _vehicle(self, vehicle: AutoVehicle) -> VehicleData:
        return VehicleData(
            id=self.factory.new_id(),
            year=vehicle.year,
            make=vehicle.make,
            model=vehicle.model,
            vin=vehicle.vin,
            ownership=vehicle.ownership,
            usage=vehicle.vehicle_usage,
            annual_mileage=vehicle.estimated_mileage,
        )

    def _driver(self, driver: AutoAdditionalDriver) -> DriverData:
        return DriverData(
            id=self.factory.new_id(),
            first_name=driver.first_name,
            last_name=driver.last_name,
            date_of_birth=driver.date_of_birth,
            license_number=driver.license_number,
            license_state=driver.license_state,
            relationship=driver.relationship,
        )

    def _vehicle_ref(
        self,
        source: ExtractionField,
        vehicles: Sequence[VehicleData],
        collection: CollectionName,
        item_id: str,
        unresolved: List[UnresolvedReference],
    ) -> ExtractionField:
        if source.value is None:
            return source
        vehicle = resolve_vehicle_reference(source.value, vehicles)
        if vehicle is not None:
            return _resolved(source, vehicle.id)
        unresolved.append(UnresolvedReference(collection, item_id, source.value))
        return _unresolved(source)

    def _driver_ref(
        self,
        source: ExtractionField,
        record: AutoExtractionResult,
        drivers: Sequence[DriverData],
        collection: CollectionName,
        item_id: str,
        unresolved: List[UnresolvedReference],
    ) -> ExtractionField:
        if source.value is None:
            return source
        reference = resolve_driver_reference(source.value, record, drivers)
        if reference is not None:
            return _resolved(source, reference)
        unresolved.append(UnresolvedReference(collection, item_id, source.value))
        return _unresolved(source)

    def build(self, record: AutoExtractionResult) -> StateBuildResult:
        """Build the collection snapshot for a merged Auto record.

        Args:
            record: Canonical Auto record

        Returns:
            StateBuildResult: Snapshot plus every reference left unresolved
        """
        unresolved: List[UnresolvedReference] = []
        vehicles = [self._vehicle(v) for v in record.vehicles]
        drivers = [self._driver(d) for d in record.additional_drivers]

        deductibles = []
        for item in record.deductibles:
            item_id = self.factory.new_id()
            deductibles.append(DeductibleData(
                id=item_id,
                vehicle_ref=self._vehicle_ref(
                    item.vehicle_reference, vehicles, CollectionName.DEDUCTIBLES, item_id, unresolved
                ),
                comprehensive_deductible=item.comprehensive_deductible,
                collision_deductible=item.collision_deductible,
            ))

        lienholders = []
        for item in record.lienholders:
            item_id = self.factory.new_id()
            lienholders.append(LienholderData(
                id=item_id,
                vehicle_ref=self._vehicle_ref(
                    item.vehicle_reference, vehicles, CollectionName.LIENHOLDERS, item_id, unresolved
                ),
                name=item.lienholder_name,
                address=item.lienholder_address,
                city=item.lienholder_city,
                state=item.lienholder_state,
                zip=item.lienholder_zip,
            ))

        accidents = []
        tickets = []
        for incident in record.accidents_or_tickets:
            item_id = self.factory.new_id()
            collection = CollectionName.TICKETS if self.is_ticket(incident) else CollectionName.ACCIDENTS
            driver_ref = self._driver_ref(
                incident.driver_name, record, drivers, collection, item_id, unresolved
            )
            if collection == CollectionName.TICKETS:
                tickets.append(TicketData(
                    id=item_id,
                    date=incident.date,
                    type=incident.type,
                    description=incident.description,
                    driver_ref=driver_ref,
                ))
            else:
                accidents.append(AccidentData(
                    id=item_id,
                    date=incident.date,
                    type=incident.type,
                    description=incident.description,
                    driver_ref=driver_ref,
                    at_fault=incident.at_fault,
                    amount_paid=incident.amount,
                ))

        state = CollectionState(
            vehicles=tuple(vehicles),
            drivers=tuple(drivers),
            deductibles=tuple(deductibles),
            lienholders=tuple(lienholders),
            accidents=tuple(accidents),
            tickets=tuple(tickets),
        )

        LOGGER.info(
            "Built collection state from Auto record",
            extra={
                "vehicles": len(vehicles),
                "drivers": len(drivers),
                "deductibles": len(deductibles),
                "lienholders": len(lienholders),
                "accidents": len(accidents),
                "tickets": len(tickets),
                "unresolved_references": len(unresolved),
            },
        )
        for reference in unresolved:
            LOGGER.warning(
                f"Could not resolve reference in {reference.collection.value}",
                extra={"item_id": reference.item_id, "text": reference.text},
            )
        return StateBuildResult(state=state, unresolved=unresolved)

