"""Canonical extraction records.

A canonical record is what remains after every per-page partial result has
been folded together. Each record type declares its scalar categories and
array collections explicitly; the merge walks these declarations, so a field
added to a category model is merged without further changes and a key the
models do not declare is never carried over.
"""

from enum import Enum
from typing import List, Tuple, Type

from pydantic import Field

from quote_intake.models.fields import (
    ExtractionBooleanField,
    ExtractionField,
    FrozenModel,
    boolean_field,
    text_field,
)


class RecordType(str, Enum):
    """Kind of quote a form was extracted for."""

    HOME = "home"
    AUTO = "auto"


class Category(FrozenModel):
    """Group of scalar fields within a record."""


# =============================================================================
# Home
# =============================================================================

class HomePersonalInfo(Category):
    first_name: ExtractionField = text_field()
    last_name: ExtractionField = text_field()
    date_of_birth: ExtractionField = text_field()
    ssn: ExtractionField = text_field()
    spouse_first_name: ExtractionField = text_field()
    spouse_last_name: ExtractionField = text_field()
    spouse_date_of_birth: ExtractionField = text_field()
    spouse_ssn: ExtractionField = text_field()
    street_address: ExtractionField = text_field()
    city: ExtractionField = text_field()
    state: ExtractionField = text_field()
    zip_code: ExtractionField = text_field()
    prior_street_address: ExtractionField = text_field()
    prior_city: ExtractionField = text_field()
    prior_state: ExtractionField = text_field()
    prior_zip_code: ExtractionField = text_field()
    years_at_current_address: ExtractionField = text_field()
    phone: ExtractionField = text_field()
    email: ExtractionField = text_field()


class HomePropertyInfo(Category):
    purchase_date: ExtractionField = text_field()
    year_built: ExtractionField = text_field()
    square_footage: ExtractionField = text_field()
    number_of_stories: ExtractionField = text_field()
    number_of_kitchens: ExtractionField = text_field()
    kitchen_style: ExtractionField = text_field()
    number_of_bathrooms: ExtractionField = text_field()
    bathroom_style: ExtractionField = text_field()
    flooring_percentage: ExtractionField = text_field()
    heat_type: ExtractionField = text_field()
    exterior_construction: ExtractionField = text_field()
    exterior_features: ExtractionField = text_field()
    roof_age: ExtractionField = text_field()
    roof_construction: ExtractionField = text_field()
    foundation_type: ExtractionField = text_field()
    has_finished_basement: ExtractionBooleanField = boolean_field()
    garage_type: ExtractionField = text_field()
    number_of_car_garage: ExtractionField = text_field()
    number_of_fireplaces: ExtractionField = text_field()
    fireplace_type: ExtractionField = text_field()
    deck_patio_details: ExtractionField = text_field()
    is_condo_or_townhouse: ExtractionBooleanField = boolean_field()
    special_features: ExtractionField = text_field()


class HomeSafetyInfo(Category):
    has_alarm_system: ExtractionBooleanField = boolean_field()
    is_alarm_monitored: ExtractionBooleanField = boolean_field()
    has_pool: ExtractionBooleanField = boolean_field()
    has_trampoline: ExtractionBooleanField = boolean_field()
    has_enclosed_yard: ExtractionBooleanField = boolean_field()
    has_dog: ExtractionBooleanField = boolean_field()
    dog_breed: ExtractionField = text_field()


class HomeCoverageInfo(Category):
    dwelling_coverage: ExtractionField = text_field()
    liability_coverage: ExtractionField = text_field()
    medical_payments: ExtractionField = text_field()
    deductible: ExtractionField = text_field()
    personal_property_coverage: ExtractionField = text_field()
    loss_of_use_coverage: ExtractionField = text_field()


class HomeClaimsHistory(Category):
    claims_in_last5_years: ExtractionField = text_field()
    number_of_claims: ExtractionField = text_field()
    claim_details: ExtractionField = text_field()


class HomeLienholderInfo(Category):
    lienholder_name: ExtractionField = text_field()
    lienholder_address: ExtractionField = text_field()
    loan_number: ExtractionField = text_field()
    current_insurance_company: ExtractionField = text_field()
    current_policy_number: ExtractionField = text_field()
    current_effective_date: ExtractionField = text_field()
    current_premium: ExtractionField = text_field()
    is_escrowed: ExtractionBooleanField = boolean_field()
    has_been_cancelled_or_declined: ExtractionBooleanField = boolean_field()
    cancel_decline_details: ExtractionField = text_field()
    referred_by: ExtractionField = text_field()


class HomeUpdatesInfo(Category):
    hvac_update_year: ExtractionField = text_field()
    plumbing_update_year: ExtractionField = text_field()
    roof_update_year: ExtractionField = text_field()
    electrical_update_year: ExtractionField = text_field()
    has_circuit_breakers: ExtractionBooleanField = boolean_field()


class HomeExtractionResult(FrozenModel):
    """Canonical Home record."""

    personal: HomePersonalInfo = Field(default_factory=HomePersonalInfo)
    property: HomePropertyInfo = Field(default_factory=HomePropertyInfo)
    safety: HomeSafetyInfo = Field(default_factory=HomeSafetyInfo)
    coverage: HomeCoverageInfo = Field(default_factory=HomeCoverageInfo)
    claims: HomeClaimsHistory = Field(default_factory=HomeClaimsHistory)
    lienholder: HomeLienholderInfo = Field(default_factory=HomeLienholderInfo)
    updates: HomeUpdatesInfo = Field(default_factory=HomeUpdatesInfo)


# =============================================================================
# Auto
# =============================================================================

class AutoPersonalInfo(Category):
    effective_date: ExtractionField = text_field()
    owner_first_name: ExtractionField = text_field()
    owner_last_name: ExtractionField = text_field()
    owner_dob: ExtractionField = text_field(alias="ownerDOB")
    marital_status: ExtractionField = text_field()
    spouse_first_name: ExtractionField = text_field()
    spouse_last_name: ExtractionField = text_field()
    spouse_dob: ExtractionField = text_field(alias="spouseDOB")
    street_address: ExtractionField = text_field()
    city: ExtractionField = text_field()
    state: ExtractionField = text_field()
    zip_code: ExtractionField = text_field()
    garaging_address_same_as_mailing: ExtractionBooleanField = boolean_field()
    garaging_street_address: ExtractionField = text_field()
    garaging_city: ExtractionField = text_field()
    garaging_state: ExtractionField = text_field()
    garaging_zip_code: ExtractionField = text_field()
    prior_street_address: ExtractionField = text_field()
    prior_city: ExtractionField = text_field()
    prior_state: ExtractionField = text_field()
    prior_zip_code: ExtractionField = text_field()
    years_at_current_address: ExtractionField = text_field()
    phone: ExtractionField = text_field()
    email: ExtractionField = text_field()
    owner_drivers_license: ExtractionField = text_field()
    owner_license_state: ExtractionField = text_field()
    spouse_drivers_license: ExtractionField = text_field()
    spouse_license_state: ExtractionField = text_field()
    owner_occupation: ExtractionField = text_field()
    spouse_occupation: ExtractionField = text_field()
    owner_education: ExtractionField = text_field()
    spouse_education: ExtractionField = text_field()
    ride_share: ExtractionBooleanField = boolean_field()
    delivery: ExtractionBooleanField = boolean_field()


class AutoCoverageInfo(Category):
    bodily_injury: ExtractionField = text_field()
    property_damage: ExtractionField = text_field()
    uninsured_motorist: ExtractionField = text_field()
    underinsured_motorist: ExtractionField = text_field()
    medical_payments: ExtractionField = text_field()
    towing: ExtractionBooleanField = boolean_field()
    rental: ExtractionBooleanField = boolean_field()
    off_road_vehicle_liability: ExtractionBooleanField = boolean_field()


class AutoPriorInsurance(Category):
    insurance_company: ExtractionField = text_field()
    premium: ExtractionField = text_field()
    policy_number: ExtractionField = text_field()
    expiration_date: ExtractionField = text_field()


class AutoAdditionalDriver(FrozenModel):
    first_name: ExtractionField = text_field()
    last_name: ExtractionField = text_field()
    date_of_birth: ExtractionField = text_field()
    license_number: ExtractionField = text_field()
    license_state: ExtractionField = text_field()
    relationship: ExtractionField = text_field()
    good_student_discount: ExtractionBooleanField = boolean_field()
    vehicle_assigned: ExtractionField = text_field()


class AutoVehicle(FrozenModel):
    year: ExtractionField = text_field()
    make: ExtractionField = text_field()
    model: ExtractionField = text_field()
    vin: ExtractionField = text_field()
    estimated_mileage: ExtractionField = text_field()
    vehicle_usage: ExtractionField = text_field()
    ownership: ExtractionField = text_field()


class AutoVehicleDeductible(FrozenModel):
    vehicle_reference: ExtractionField = text_field()
    comprehensive_deductible: ExtractionField = text_field()
    collision_deductible: ExtractionField = text_field()
    road_trouble_service: ExtractionField = text_field()
    limited_tnc_coverage: ExtractionBooleanField = boolean_field(alias="limitedTNCCoverage")
    additional_expense_coverage: ExtractionField = text_field()


class AutoVehicleLienholder(FrozenModel):
    vehicle_reference: ExtractionField = text_field()
    lienholder_name: ExtractionField = text_field()
    lienholder_address: ExtractionField = text_field()
    lienholder_city: ExtractionField = text_field()
    lienholder_state: ExtractionField = text_field()
    lienholder_zip: ExtractionField = text_field()


class AutoAccidentOrTicket(FrozenModel):
    driver_name: ExtractionField = text_field()
    date: ExtractionField = text_field()
    type: ExtractionField = text_field()
    description: ExtractionField = text_field()
    amount: ExtractionField = text_field()
    at_fault: ExtractionField = text_field()


class AutoExtractionResult(FrozenModel):
    """Canonical Auto record."""

    personal: AutoPersonalInfo = Field(default_factory=AutoPersonalInfo)
    additional_drivers: Tuple[AutoAdditionalDriver, ...] = ()
    vehicles: Tuple[AutoVehicle, ...] = ()
    coverage: AutoCoverageInfo = Field(default_factory=AutoCoverageInfo)
    deductibles: Tuple[AutoVehicleDeductible, ...] = ()
    lienholders: Tuple[AutoVehicleLienholder, ...] = ()
    prior_insurance: AutoPriorInsurance = Field(default_factory=AutoPriorInsurance)
    accidents_or_tickets: Tuple[AutoAccidentOrTicket, ...] = ()


def scalar_categories(record_type: Type[FrozenModel]) -> List[Tuple[str, Type[Category]]]:
    """Declared scalar categories of a record model, in declaration order."""
    categories = []
    for name, info in record_type.model_fields.items():
        annotation = info.annotation
        if isinstance(annotation, type) and issubclass(annotation, Category):
            categories.append((name, annotation))
    return categories
