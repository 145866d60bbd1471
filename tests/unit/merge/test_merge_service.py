"""Unit tests for the extraction merge service.

Covers confidence-based field replacement, flag override, array
deduplication and the Home/Auto merge entry points.
"""

import pytest

from conftest import make_field, wire_field
from quote_intake.core.exceptions import MalformedEntityError
from quote_intake.models.fields import ConfidenceLevel, ExtractionBooleanField
from quote_intake.models.records import (
    AutoExtractionResult,
    AutoVehicle,
    HomeExtractionResult,
    HomePersonalInfo,
    RecordType,
)
from quote_intake.services.merge import (
    ExtractionMergeService,
    merge,
    merge_auto_results,
    merge_home_results,
    should_replace_field,
)


class TestShouldReplaceField:
    """Replacement decision between an existing and an incoming field."""

    @pytest.mark.parametrize("existing,incoming,expected", [
        ("low", "medium", True),
        ("low", "high", True),
        ("medium", "high", True),
        ("high", "high", False),
        ("medium", "medium", False),
        ("low", "low", False),
        ("high", "medium", False),
        ("high", "low", False),
        ("medium", "low", False),
    ])
    def test_confidence_ordering(self, existing, incoming, expected):
        """Test that only a strictly higher confidence replaces a value."""
        assert should_replace_field(
            make_field("old", existing), make_field("new", incoming)
        ) is expected

    def test_flagged_existing_is_always_replaced(self):
        """A flagged value is replaced even by a lower confidence one."""
        existing = make_field("old", "high", flagged=True)
        assert should_replace_field(existing, make_field("new", "low")) is True

    def test_null_existing_is_always_replaced(self):
        """Test that an empty value is replaced by any incoming value."""
        existing = make_field(None, "high")
        assert should_replace_field(existing, make_field("new", "low")) is True


class TestMergeHomeResults:
    """Scalar merge over Home partials."""

    def test_higher_confidence_later_page_wins(self):
        """Smith read at low confidence, then Smyth at high: Smyth is kept."""
        partials = [
            {"personal": {"lastName": wire_field("Smith", "low")}},
            {"personal": {"lastName": wire_field("Smyth", "high")}},
        ]

        result = merge_home_results(partials)

        assert result.personal.last_name.value == "Smyth"
        assert result.personal.last_name.confidence == ConfidenceLevel.HIGH

    def test_lower_confidence_later_page_does_not_replace(self):
        """Test that a lower confidence later page keeps the earlier value."""
        partials = [
            {"personal": {"lastName": wire_field("Smyth", "high")}},
            {"personal": {"lastName": wire_field("Smith", "low")}},
        ]

        result = merge_home_results(partials)

        assert result.personal.last_name.value == "Smyth"

    def test_equal_confidence_keeps_first_value(self):
        """Test that the first value wins a confidence tie."""
        partials = [
            {"personal": {"firstName": wire_field("Ann", "medium")}},
            {"personal": {"firstName": wire_field("Anne", "medium")}},
        ]

        result = merge_home_results(partials)

        assert result.personal.first_name.value == "Ann"

    def test_flagged_value_is_overridden(self):
        """Test that a flagged value is overridden by a later one."""
        partials = [
            {"personal": {"phone": wire_field("555-0100", "high", flagged=True)}},
            {"personal": {"phone": wire_field("555-0199", "low")}},
        ]

        result = merge_home_results(partials)

        assert result.personal.phone.value == "555-0199"
        assert result.personal.phone.flagged is False

    def test_null_incoming_value_is_ignored(self):
        """Test that an incoming null never replaces a value."""
        partials = [
            {"personal": {"city": wire_field("Austin", "low")}},
            {"personal": {"city": wire_field(None, "high")}},
        ]

        result = merge_home_results(partials)

        assert result.personal.city.value == "Austin"

    def test_no_partials_gives_default_record(self):
        """Test that merging nothing gives an empty record."""
        result = merge_home_results([])

        assert result == HomeExtractionResult()
        assert result.personal.first_name.value is None
        assert result.personal.first_name.flagged is True
        assert result.personal.first_name.confidence == ConfidenceLevel.LOW

    def test_boolean_fields_merge(self):
        """Test that boolean fields follow the same replacement rule."""
        partials = [
            {"safety": {"hasPool": wire_field(False, "medium")}},
            {"safety": {"hasPool": wire_field(True, "high")}},
        ]

        result = merge_home_results(partials)

        assert isinstance(result.safety.has_pool, ExtractionBooleanField)
        assert result.safety.has_pool.value is True

    def test_snake_case_keys_accepted(self):
        """Test that snake_case keys are read as well as camelCase."""
        partials = [{"updates": {"roof_update_year": wire_field("2015", "high")}}]

        result = merge_home_results(partials)

        assert result.updates.roof_update_year.value == "2015"

    def test_unknown_keys_are_not_carried_over(self):
        """Test that undeclared keys are dropped."""
        partials = [{"personal": {"favoriteColor": wire_field("blue", "high")}, "extras": {}}]

        result = merge_home_results(partials)

        assert "favoriteColor" not in result.personal.model_dump(by_alias=True)

    def test_values_that_are_not_fields_are_skipped(self):
        """Test that values missing field metadata are skipped."""
        partials = [{"personal": {"firstName": "Jane", "lastName": {"value": "Doe"}}}]

        result = merge_home_results(partials)

        assert result.personal.first_name.value is None
        assert result.personal.last_name.value is None

    def test_typed_partials_accepted(self):
        """Test that typed records can be merged directly."""
        partial = HomeExtractionResult(
            personal=HomePersonalInfo(first_name=make_field("Jane", "high"))
        )

        result = merge_home_results([partial])

        assert result.personal.first_name.value == "Jane"

    def test_malformed_field_raises(self):
        """Test that a field with an unknown confidence is rejected."""
        partials = [{"personal": {"firstName": wire_field("Jane", "certain")}}]

        with pytest.raises(MalformedEntityError):
            merge_home_results(partials)

    def test_inputs_are_not_modified(self):
        """Test that merging leaves the partials untouched."""
        partial = {"personal": {"lastName": wire_field("Smith", "low")}}
        snapshot = {"personal": {"lastName": dict(partial["personal"]["lastName"])}}

        merge_home_results([partial])

        assert partial == snapshot


class TestMergeAutoResults:
    """Scalar and array merge over Auto partials."""

    def _vehicle(self, vin, make="Honda"):
        return {"make": wire_field(make), "vin": wire_field(vin)}

    def test_vehicles_deduplicated_by_vin(self):
        """VINs A, A, null, null merge to three vehicles."""
        partials = [
            {"vehicles": [self._vehicle("A"), self._vehicle("A", make="Toyota")]},
            {"vehicles": [self._vehicle(None), self._vehicle(None)]},
        ]

        result = merge_auto_results(partials)

        assert [v.vin.value for v in result.vehicles] == ["A", None, None]
        assert result.vehicles[0].make.value == "Honda"

    def test_duplicate_item_dropped_whole(self):
        """No field-level merge inside array items."""
        partials = [
            {"vehicles": [{"vin": wire_field("VIN1"), "year": wire_field("2019", "low")}]},
            {"vehicles": [{"vin": wire_field("VIN1"), "year": wire_field("2020", "high")}]},
        ]

        result = merge_auto_results(partials)

        assert len(result.vehicles) == 1
        assert result.vehicles[0].year.value == "2019"

    def test_drivers_deduplicated_by_license(self):
        """Test that drivers are deduplicated by license number."""
        partials = [
            {"additionalDrivers": [{"licenseNumber": wire_field("D1")}]},
            {"additionalDrivers": [{"licenseNumber": wire_field("D1")}, {"licenseNumber": wire_field("D2")}]},
        ]

        result = merge_auto_results(partials)

        assert [d.license_number.value for d in result.additional_drivers] == ["D1", "D2"]

    def test_deductibles_and_lienholders_deduplicated_by_vehicle_reference(self):
        """Test that deductibles and lienholders dedupe on their vehicle reference."""
        partials = [
            {
                "deductibles": [{"vehicleReference": wire_field("Vehicle 1")}],
                "lienholders": [{"vehicleReference": wire_field("Vehicle 1")}],
            },
            {
                "deductibles": [
                    {"vehicleReference": wire_field("Vehicle 1")},
                    {"vehicleReference": wire_field("Vehicle 2")},
                ],
                "lienholders": [{"vehicleReference": wire_field("Vehicle 1")}],
            },
        ]

        result = merge_auto_results(partials)

        assert len(result.deductibles) == 2
        assert len(result.lienholders) == 1

    def test_incidents_deduplicated_by_date_and_driver(self):
        """Test that incidents dedupe on date and driver name."""
        incident = {"date": wire_field("2022-03-01"), "driverName": wire_field("Jane Doe")}
        other_driver = {"date": wire_field("2022-03-01"), "driverName": wire_field("John Doe")}
        partials = [
            {"accidentsOrTickets": [incident]},
            {"accidentsOrTickets": [incident, other_driver]},
        ]

        result = merge_auto_results(partials)

        assert [i.driver_name.value for i in result.accidents_or_tickets] == ["Jane Doe", "John Doe"]

    def test_incidents_without_date_never_duplicate(self):
        """Test that undated incidents are always kept."""
        undated = {"date": wire_field(None), "driverName": wire_field("Jane Doe")}
        partials = [{"accidentsOrTickets": [undated]}, {"accidentsOrTickets": [undated]}]

        result = merge_auto_results(partials)

        assert len(result.accidents_or_tickets) == 2

    def test_incidents_with_same_date_and_no_driver_are_duplicates(self):
        """Test that same-date incidents without a driver are duplicates."""
        dated = {"date": wire_field("2021-07-04")}
        partials = [{"accidentsOrTickets": [dated]}, {"accidentsOrTickets": [dated]}]

        result = merge_auto_results(partials)

        assert len(result.accidents_or_tickets) == 1

    def test_scalar_categories_merge(self):
        """Test scalar category merge for Auto records."""
        partials = [
            {"personal": {"ownerDOB": wire_field("01/02/1980", "low")}, "priorInsurance": {}},
            {"personal": {"ownerDOB": wire_field("01/02/1981", "high")},
             "priorInsurance": {"insuranceCompany": wire_field("Acme")}},
        ]

        result = merge_auto_results(partials)

        assert result.personal.owner_dob.value == "01/02/1981"
        assert result.prior_insurance.insurance_company.value == "Acme"

    def test_merge_is_deterministic(self):
        """Test that the same partials always give the same record."""
        partials = [
            {"vehicles": [self._vehicle("A")], "personal": {"city": wire_field("Reno", "low")}},
            {"vehicles": [self._vehicle("B")], "personal": {"city": wire_field("Elko", "high")}},
        ]

        assert merge_auto_results(partials) == merge_auto_results(partials)

    def test_typed_array_items_accepted(self):
        """Test that typed array items are accepted."""
        partials = [{"vehicles": [AutoVehicle(vin=make_field("X1"))]}]

        result = merge_auto_results(partials)

        assert result.vehicles[0].vin.value == "X1"

    def test_null_item_fields_fall_back_to_defaults(self):
        """Null entries inside an array item leave that field empty and flagged."""
        partials = [{"vehicles": [{"vin": wire_field("A"), "make": None}]}]

        result = merge_auto_results(partials)

        vehicle = result.vehicles[0]
        assert vehicle.vin.value == "A"
        assert vehicle.make.value is None
        assert vehicle.make.flagged is True

    def test_non_field_item_entries_are_skipped(self):
        """Entries that are not field-shaped are dropped before validation."""
        partials = [{"deductibles": [{
            "vehicleReference": wire_field("Vehicle 1"),
            "collisionDeductible": "500",
            "comprehensiveDeductible": {"value": "250"},
        }]}]

        result = merge_auto_results(partials)

        deductible = result.deductibles[0]
        assert deductible.vehicle_reference.value == "Vehicle 1"
        assert deductible.collision_deductible.value is None
        assert deductible.comprehensive_deductible.value is None

    def test_malformed_array_field_raises(self):
        """A field-shaped entry with an unknown confidence is still rejected."""
        partials = [{"vehicles": [{"vin": wire_field("A", "certain")}]}]

        with pytest.raises(MalformedEntityError):
            merge_auto_results(partials)

    def test_non_list_arrays_ignored(self):
        """Test that array keys holding non-lists are ignored."""
        result = merge_auto_results([{"vehicles": None}, {"vehicles": "n/a"}])

        assert result.vehicles == ()


class TestMergeEntryPoints:
    def test_merge_dispatches_on_record_type(self):
        """Test that merge picks the record model from the record type."""
        assert isinstance(merge([], RecordType.HOME), HomeExtractionResult)
        assert isinstance(merge([], "auto"), AutoExtractionResult)

    def test_service_merge(self):
        """Test the merge service and its statistics."""
        service = ExtractionMergeService()
        partials = [{"coverage": {"bodilyInjury": wire_field("100/300")}}]

        result = service.merge(RecordType.AUTO, partials)

        assert result.coverage.bodily_injury.value == "100/300"
