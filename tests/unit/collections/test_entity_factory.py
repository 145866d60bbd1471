"""Unit tests for the entity factory."""

from quote_intake.models.fields import ConfidenceLevel
from quote_intake.services.factories import EntityFactory, generate_entity_id


class TestEntityFactory:
    def test_generated_ids_are_unique(self):
        """Test that generated ids do not repeat."""
        ids = {generate_entity_id() for _ in range(100)}

        assert len(ids) == 100

    def test_default_factory_uses_random_ids(self):
        """Test that a factory without a generator uses random ids."""
        factory = EntityFactory()

        assert factory.create_vehicle().id != factory.create_vehicle().id

    def test_new_entities_are_empty_and_flagged(self, factory):
        """Test that new entities carry empty flagged fields."""
        driver = factory.create_driver()

        assert driver.id == "new-0001"
        assert all(f.value is None and f.flagged for _, f in driver.field_items())

    def test_deductible_for_vehicle(self, factory):
        """Test that a vehicle deductible has a confirmed link and given amounts."""
        deductible = factory.create_deductible_for_vehicle("v1", comprehensive="250", collision="500")

        assert deductible.vehicle_ref.value == "v1"
        assert deductible.vehicle_ref.confidence == ConfidenceLevel.HIGH
        assert deductible.vehicle_ref.flagged is False
        assert deductible.comprehensive_deductible.value == "250"
        assert deductible.collision_deductible.value == "500"

    def test_linked_entities(self, factory):
        """Test optional vehicle and driver links on new entities."""
        assert factory.create_lienholder("v1").vehicle_ref.value == "v1"
        assert factory.create_lienholder().vehicle_ref.value is None
        assert factory.create_accident("__owner__").driver_ref.value == "__owner__"
        assert factory.create_ticket().driver_ref.flagged is True

    def test_home_entities(self, factory):
        """Test claim and scheduled item creation."""
        assert factory.create_claim().id == "new-0001"
        assert factory.create_scheduled_item().id == "new-0002"

    def test_duplicate_gets_new_id(self, factory):
        """Test that a duplicate copies the fields under a new id."""
        original = factory.create_deductible_for_vehicle("v1", comprehensive="250")

        copy = factory.duplicate(original)

        assert copy.id != original.id
        assert copy.comprehensive_deductible == original.comprehensive_deductible
