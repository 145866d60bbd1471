"""Pytest configuration and shared fixtures."""

import itertools
from typing import Optional

import pytest

from quote_intake.config import Settings
from quote_intake.models.entities import (
    AccidentData,
    DeductibleData,
    DriverData,
    LienholderData,
    TicketData,
    VehicleData,
)
from quote_intake.models.fields import ConfidenceLevel, ExtractionField
from quote_intake.services.factories import EntityFactory


def make_field(
    value: Optional[str],
    confidence: str = "high",
    flagged: bool = False,
    raw_text: Optional[str] = None,
) -> ExtractionField:
    """Build an extraction field for tests."""
    return ExtractionField(
        value=value,
        confidence=ConfidenceLevel(confidence),
        flagged=flagged,
        raw_text=raw_text,
    )


def wire_field(value, confidence: str = "high", flagged: bool = False) -> dict:
    """Build a field the way it arrives in a partial record."""
    return {"value": value, "confidence": confidence, "flagged": flagged}


def make_vehicle(vehicle_id: str, year=None, make=None, model=None, vin=None) -> VehicleData:
    return VehicleData(
        id=vehicle_id,
        year=make_field(year),
        make=make_field(make),
        model=make_field(model),
        vin=make_field(vin),
    )


def make_driver(driver_id: str, first_name=None, last_name=None, relationship=None) -> DriverData:
    return DriverData(
        id=driver_id,
        first_name=make_field(first_name),
        last_name=make_field(last_name),
        relationship=make_field(relationship),
    )


def make_deductible(deductible_id: str, vehicle_ref, comprehensive=None, collision=None) -> DeductibleData:
    return DeductibleData(
        id=deductible_id,
        vehicle_ref=make_field(vehicle_ref),
        comprehensive_deductible=make_field(comprehensive),
        collision_deductible=make_field(collision),
    )


def make_lienholder(lienholder_id: str, vehicle_ref, name=None) -> LienholderData:
    return LienholderData(
        id=lienholder_id,
        vehicle_ref=make_field(vehicle_ref),
        name=make_field(name),
    )


def make_accident(accident_id: str, driver_ref, date=None) -> AccidentData:
    return AccidentData(id=accident_id, driver_ref=make_field(driver_ref), date=make_field(date))


def make_ticket(ticket_id: str, driver_ref, date=None) -> TicketData:
    return TicketData(id=ticket_id, driver_ref=make_field(driver_ref), date=make_field(date))


@pytest.fixture
def id_generator():
    """Deterministic id generator: new-0001, new-0002, ..."""
    counter = itertools.count(1)
    return lambda: f"new-{next(counter):04d}"


@pytest.fixture
def factory(id_generator) -> EntityFactory:
    """Entity factory with deterministic ids.

    Returns:
        EntityFactory: Factory whose ids are predictable
    """
    return EntityFactory(id_generator=id_generator)


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None)
