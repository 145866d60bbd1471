"""Unit tests for the bounded ArrayField container."""

import pytest

from quote_intake.core.exceptions import CardinalityError, ConfigurationError, EntityNotFoundError
from quote_intake.models.entities import VehicleData
from quote_intake.services.collections.array_field import ArrayField


class TestArrayField:
    """Container operations and cardinality bounds."""

    @pytest.fixture
    def vehicles(self, factory):
        return ArrayField(factory.create_vehicle, max_items=3)

    def _ids(self, container):
        return [item.id for item in container]

    def test_padded_to_minimum(self, factory):
        """Test that a container is padded with defaults up to its minimum."""
        container = ArrayField(factory.create_vehicle, min_items=2).padded()

        assert container.count == 2
        assert container.meets_minimum is True

    def test_padded_keeps_existing_items(self, factory):
        """Test that padding keeps items already present."""
        container = ArrayField(factory.create_vehicle, [VehicleData(id="v1")], min_items=1)

        assert container.padded() is container

    def test_add_default_and_given_item(self, vehicles):
        """Test adding a default item and a given item."""
        container = vehicles.add().add(VehicleData(id="mine"))

        assert self._ids(container) == ["new-0001", "mine"]
        assert vehicles.count == 0

    def test_add_beyond_maximum_raises(self, vehicles):
        """Test that adding past the maximum raises."""
        full = vehicles.add().add().add()

        assert full.can_add is False
        with pytest.raises(CardinalityError):
            full.add()

    def test_duplicate_inserted_after_source(self, factory):
        """Test that a duplicate lands right after its source."""
        container = ArrayField(
            factory.create_vehicle, [VehicleData(id="a"), VehicleData(id="b")]
        )

        duplicated = container.duplicate("a", "a-copy")

        assert self._ids(duplicated) == ["a", "a-copy", "b"]

    def test_duplicate_unknown_id_raises(self, vehicles):
        """Test that duplicating an unknown id raises."""
        with pytest.raises(EntityNotFoundError):
            vehicles.duplicate("missing", "x")

    def test_remove(self, factory):
        """Test removing an item by id."""
        container = ArrayField(factory.create_vehicle, [VehicleData(id="a"), VehicleData(id="b")])

        updated, removed = container.remove("a")

        assert removed is True
        assert self._ids(updated) == ["b"]
        assert self._ids(container) == ["a", "b"]

    def test_remove_refused_at_minimum(self, factory):
        """Test that removal is refused at the minimum."""
        container = ArrayField(factory.create_vehicle, [VehicleData(id="a")], min_items=1)

        updated, removed = container.remove("a")

        assert removed is False
        assert updated is container
        assert container.can_remove is False

    def test_remove_vetoed_by_hook(self, factory):
        """Test that the before-remove hook can veto removal."""
        container = ArrayField(factory.create_vehicle, [VehicleData(id="a")])

        _, removed = container.remove("a", before_remove=lambda item, items: False)

        assert removed is False

    def test_remove_unknown_id(self, vehicles):
        """Test that removing an unknown id changes nothing."""
        assert vehicles.remove("missing") == (vehicles, False)

    def test_move(self, factory):
        """Test moving an item to a new position."""
        container = ArrayField(
            factory.create_vehicle, [VehicleData(id=i) for i in ("a", "b", "c")]
        )

        assert self._ids(container.move(0, 2)) == ["b", "c", "a"]
        assert container.move(0, 5) is container
        assert container.move(1, 1) is container

    def test_replace_pads_and_truncates(self, factory):
        """Test that replacing items respects both bounds."""
        container = ArrayField(factory.create_vehicle, min_items=1, max_items=2)

        assert self._ids(container.replace([])) == ["new-0001"]
        truncated = container.replace([VehicleData(id=i) for i in ("a", "b", "c")])
        assert self._ids(truncated) == ["a", "b"]

    def test_clear_keeps_minimum(self, factory):
        """Test that clearing leaves the minimum number of defaults."""
        container = ArrayField(factory.create_vehicle, [VehicleData(id="a")], min_items=1)

        cleared = container.clear()

        assert cleared.count == 1
        assert cleared.items[0].id != "a"

    def test_get_and_index_of(self, factory):
        """Test item lookup and position by id."""
        container = ArrayField(factory.create_vehicle, [VehicleData(id="a"), VehicleData(id="b")])

        assert container.get("b").id == "b"
        assert container.get("z") is None
        assert container.index_of("b") == 1
        assert container.index_of("z") == -1

    def test_update(self, factory):
        """Test updating fields of one item."""
        container = ArrayField(factory.create_vehicle, [VehicleData(id="a")])
        vin = container.items[0].vin.with_value("VIN9")

        updated = container.update("a", vin=vin)

        assert updated.get("a").vin.value == "VIN9"

    def test_invalid_bounds(self, factory):
        """Test that inconsistent bounds raise a configuration error."""
        with pytest.raises(ConfigurationError):
            ArrayField(factory.create_vehicle, min_items=3, max_items=2)
