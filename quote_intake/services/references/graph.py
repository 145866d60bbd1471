"""Read-only accessors over the vehicle and driver reference graph.

Deductibles and lienholders depend on vehicles, accidents and tickets depend
on drivers. Nothing here changes a collection; the functions answer "who
points at what" so the synchronization engine and the editor can decide.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from quote_intake.models.entities import (
    AccidentData,
    DeductibleData,
    DependentType,
    DriverData,
    LienholderData,
    ReferenceDependency,
    TicketData,
    VehicleData,
)
from quote_intake.models.references import ReferenceKind, ReferenceTarget
from quote_intake.services.references.labels import (
    accident_dependency_label,
    deductible_dependency_label,
    lienholder_dependency_label,
    ticket_dependency_label,
)

_VIN_NOISE = re.compile(r"[^A-Z0-9]")


@dataclass(frozen=True)
class DriverLookup:
    """Result of resolving a driver reference.

    Attributes:
        driver: Matching driver, never set for the owner or spouse
        is_owner: Reference names the primary applicant
        is_spouse: Reference names the applicant's spouse
    """
    driver: Optional[DriverData] = None
    is_owner: bool = False
    is_spouse: bool = False

    @property
    def found(self) -> bool:
        return self.driver is not None or self.is_owner or self.is_spouse


def normalize_vin(vin: Optional[str]) -> str:
    """Uppercase a VIN and drop everything that is not a letter or digit."""
    return _VIN_NOISE.sub("", (vin or "").upper())


def find_vehicle(vehicles: Sequence[VehicleData], vehicle_id: str) -> Optional[VehicleData]:
    for vehicle in vehicles:
        if vehicle.id == vehicle_id:
            return vehicle
    return None


def find_vehicle_by_vin(vehicles: Sequence[VehicleData], vin: Optional[str]) -> Optional[VehicleData]:
    """Find a vehicle whose normalized VIN equals the normalized ``vin``."""
    if not vin:
        return None
    wanted = normalize_vin(vin)
    for vehicle in vehicles:
        if vehicle.vin.value is not None and normalize_vin(vehicle.vin.value) == wanted:
            return vehicle
    return None


def find_driver(drivers: Sequence[DriverData], driver_ref: Optional[str]) -> DriverLookup:
    """Resolve a driver reference, recognizing the owner and spouse values."""
    target = ReferenceTarget.from_driver_value(driver_ref)
    if target.kind == ReferenceKind.OWNER:
        return DriverLookup(is_owner=True)
    if target.kind == ReferenceKind.SPOUSE:
        return DriverLookup(is_spouse=True)
    if target.kind == ReferenceKind.NONE:
        return DriverLookup()
    for driver in drivers:
        if driver.id == target.entity_id:
            return DriverLookup(driver=driver)
    return DriverLookup()


def find_driver_by_name(
    drivers: Sequence[DriverData],
    first_name: str,
    last_name: str,
) -> Optional[DriverData]:
    """Find a driver by case-insensitive first and last name."""
    wanted_first = first_name.lower().strip()
    wanted_last = last_name.lower().strip()
    for driver in drivers:
        if driver.first_name.value is None or driver.last_name.value is None:
            continue
        if (
            driver.first_name.value.lower().strip() == wanted_first
            and driver.last_name.value.lower().strip() == wanted_last
        ):
            return driver
    return None


def deductibles_for_vehicle(vehicle_id: str, deductibles: Sequence[DeductibleData]) -> List[DeductibleData]:
    return [d for d in deductibles if d.vehicle_ref.value == vehicle_id]


def lienholders_for_vehicle(vehicle_id: str, lienholders: Sequence[LienholderData]) -> List[LienholderData]:
    return [l for l in lienholders if l.vehicle_ref.value == vehicle_id]


def vehicles_missing_deductibles(
    vehicles: Sequence[VehicleData],
    deductibles: Sequence[DeductibleData],
) -> List[VehicleData]:
    """Vehicles that no deductible references, in vehicle order."""
    covered = {d.vehicle_ref.value for d in deductibles}
    return [v for v in vehicles if v.id not in covered]


def incidents_for_driver(
    driver_id: str,
    accidents: Sequence[AccidentData],
    tickets: Sequence[TicketData],
):
    """Accidents and tickets whose driver reference equals ``driver_id``.

    Returns:
        Tuple of (accidents, tickets) lists
    """
    return (
        [a for a in accidents if a.driver_ref.value == driver_id],
        [t for t in tickets if t.driver_ref.value == driver_id],
    )


def get_vehicle_dependencies(
    vehicle_id: str,
    deductibles: Sequence[DeductibleData],
    lienholders: Sequence[LienholderData],
) -> List[ReferenceDependency]:
    """Every deductible and lienholder that references the vehicle.

    Args:
        vehicle_id: Id of the vehicle
        deductibles: Deductible collection
        lienholders: Lienholder collection

    Returns:
        Dependencies, deductibles first, each in collection order
    """
    dependencies = [
        ReferenceDependency(
            dependent_type=DependentType.DEDUCTIBLE,
            dependent_id=d.id,
            field_name="vehicleRef",
            label=deductible_dependency_label(d),
        )
        for d in deductibles_for_vehicle(vehicle_id, deductibles)
    ]
    dependencies.extend(
        ReferenceDependency(
            dependent_type=DependentType.LIENHOLDER,
            dependent_id=l.id,
            field_name="vehicleRef",
            label=lienholder_dependency_label(l),
        )
        for l in lienholders_for_vehicle(vehicle_id, lienholders)
    )
    return dependencies


def get_driver_dependencies(
    driver_id: str,
    accidents: Sequence[AccidentData],
    tickets: Sequence[TicketData],
) -> List[ReferenceDependency]:
    """Every accident and ticket that references the driver.

    Returns:
        Dependencies, accidents first, each in collection order
    """
    driver_accidents, driver_tickets = incidents_for_driver(driver_id, accidents, tickets)
    dependencies = [
        ReferenceDependency(
            dependent_type=DependentType.ACCIDENT,
            dependent_id=a.id,
            field_name="driverRef",
            label=accident_dependency_label(a),
        )
        for a in driver_accidents
    ]
    dependencies.extend(
        ReferenceDependency(
            dependent_type=DependentType.TICKET,
            dependent_id=t.id,
            field_name="driverRef",
            label=ticket_dependency_label(t),
        )
        for t in driver_tickets
    )
    return dependencies
