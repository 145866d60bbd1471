"""Human-readable labels for vehicles, drivers and their dependents."""

from typing import Iterable, List, Optional

from quote_intake.models.entities import (
    AccidentData,
    DeductibleData,
    DriverData,
    LienholderData,
    ReferenceDependency,
    TicketData,
    VehicleData,
)


def _join_present(values: Iterable[Optional[str]]) -> str:
    return " ".join(v for v in values if v)


def vehicle_label(vehicle: VehicleData) -> str:
    """Display label for a vehicle, e.g. "2024 Toyota Camry"."""
    label = _join_present((vehicle.year.value, vehicle.make.value, vehicle.model.value))
    return label or f"Vehicle {vehicle.id[:6]}"


def vehicle_short_label(vehicle: VehicleData) -> str:
    """Compact label, e.g. "2024 Camry"."""
    label = _join_present((vehicle.year.value, vehicle.model.value))
    return label or f"Vehicle {vehicle.id[:6]}"


def vehicle_label_with_vin(vehicle: VehicleData) -> str:
    """Vehicle label with the last four VIN characters for disambiguation."""
    label = vehicle_label(vehicle)
    vin = vehicle.vin.value
    if vin and len(vin) >= 4:
        return f"{label} (VIN: ...{vin[-4:]})"
    return label


def driver_label(driver: DriverData) -> str:
    """Display label for a driver, e.g. "John Smith"."""
    label = _join_present((driver.first_name.value, driver.last_name.value))
    return label or f"Driver {driver.id[:6]}"


def driver_short_label(driver: DriverData) -> str:
    first_name = driver.first_name.value
    last_name = driver.last_name.value
    if first_name and last_name:
        return f"{first_name[0]}. {last_name}"
    return first_name or last_name or f"Driver {driver.id[:6]}"


def driver_label_with_relationship(driver: DriverData) -> str:
    """Driver label with relationship, e.g. "Jane Smith (Spouse)"."""
    label = driver_label(driver)
    relationship = driver.relationship.value
    if relationship:
        return f"{label} ({relationship})"
    return label


def deductible_dependency_label(deductible: DeductibleData) -> str:
    comprehensive = deductible.comprehensive_deductible.value or "N/A"
    collision = deductible.collision_deductible.value or "N/A"
    return f"Deductible entry (Comp: {comprehensive}, Coll: {collision})"


def lienholder_dependency_label(lienholder: LienholderData) -> str:
    return f"Lienholder: {lienholder.name.value or 'Unknown'}"


def accident_dependency_label(accident: AccidentData) -> str:
    return f"Accident on {accident.date.value or 'unknown date'}"


def ticket_dependency_label(ticket: TicketData) -> str:
    return f"Ticket on {ticket.date.value or 'unknown date'}"


def vehicle_deletion_message(vehicle: VehicleData, dependencies: List[ReferenceDependency]) -> str:
    """Sentence explaining why a specific vehicle cannot be deleted."""
    labels = ", ".join(d.label for d in dependencies)
    return (
        f'Cannot delete "{vehicle_label(vehicle)}" because it is referenced by: '
        f"{labels}. Please remove or reassign these references first."
    )


def driver_deletion_message(driver: DriverData, dependencies: List[ReferenceDependency]) -> str:
    """Sentence explaining why a specific driver cannot be deleted."""
    labels = ", ".join(d.label for d in dependencies)
    return (
        f'Cannot delete "{driver_label(driver)}" because they are associated with: '
        f"{labels}. Please remove or reassign these records first."
    )
