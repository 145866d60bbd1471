"""Unit tests for the consistency audit."""

from conftest import (
    make_accident,
    make_deductible,
    make_driver,
    make_lienholder,
    make_ticket,
    make_vehicle,
)
from quote_intake.models.entities import CollectionState
from quote_intake.services.sync import IssueType, SyncOptions, check_consistency, synchronize


class TestCheckConsistency:
    def test_consistent_state_has_no_issues(self):
        """Test that a synchronized state reports nothing."""
        state = CollectionState(
            vehicles=(make_vehicle("v1"),),
            drivers=(make_driver("drv1"),),
            deductibles=(make_deductible("d1", "v1"),),
            accidents=(make_accident("a1", "drv1"), make_accident("a2", "__owner__")),
            tickets=(make_ticket("t1", "__spouse__"), make_ticket("t2", None)),
        )

        assert check_consistency(state) == []

    def test_single_vehicle_without_deductible(self):
        """Test the issue raised for a vehicle without a deductible."""
        state = CollectionState(vehicles=(make_vehicle("v1", year="2024", make="Toyota", model="Camry"),))

        issues = check_consistency(state)

        assert len(issues) == 1
        assert issues[0].type == IssueType.MISSING_DEDUCTIBLE
        assert issues[0].item_id == "v1"
        assert issues[0].message == 'Vehicle "2024 Toyota Camry" does not have a deductible entry'
        assert issues[0].suggestion == "Add a deductible entry for this vehicle"

    def test_issue_order_and_messages(self):
        """Test issue order and wording across every collection."""
        state = CollectionState(
            vehicles=(make_vehicle("v1"),),
            deductibles=(make_deductible("d-orphan", "gone"),),
            lienholders=(make_lienholder("l-orphan", "gone"),),
            accidents=(make_accident("a-orphan", "nobody"),),
            tickets=(make_ticket("t-orphan", "nobody"),),
        )

        issues = check_consistency(state)

        assert [(i.type, i.item_id) for i in issues] == [
            (IssueType.ORPHANED_DEDUCTIBLE, "d-orphan"),
            (IssueType.ORPHANED_LIENHOLDER, "l-orphan"),
            (IssueType.ORPHANED_ACCIDENT, "a-orphan"),
            (IssueType.ORPHANED_TICKET, "t-orphan"),
            (IssueType.MISSING_DEDUCTIBLE, "v1"),
        ]
        assert issues[0].message == "Deductible references a non-existent vehicle"
        assert issues[1].suggestion == "Reassign to a valid vehicle or remove this lienholder entry"
        assert issues[3].message == "Ticket references a non-existent driver"
        assert issues[3].suggestion == "Reassign to a valid driver or clear the driver reference"

    def test_empty_references_are_not_orphans(self):
        """Test that empty references are never reported as orphans."""
        state = CollectionState(
            deductibles=(make_deductible("d1", ""), make_deductible("d2", None)),
            accidents=(make_accident("a1", ""),),
        )

        assert check_consistency(state) == []

    def test_audit_is_read_only(self):
        """Test that checking consistency leaves the state untouched."""
        state = CollectionState(vehicles=(make_vehicle("v1"),))
        before = state.model_copy(deep=True)

        check_consistency(state)

        assert state == before

    def test_full_sync_with_removal_leaves_no_issues(self, factory):
        """Test that a full sync with orphan removal leaves no issues."""
        state = CollectionState(
            vehicles=(make_vehicle("v1"),),
            deductibles=(make_deductible("d-orphan", "gone"),),
            lienholders=(make_lienholder("l-orphan", "gone"),),
            accidents=(make_accident("a-orphan", "nobody"),),
        )
        options = SyncOptions(remove_orphaned_deductibles=True, remove_orphaned_lienholders=True)

        synced = synchronize(state, options, factory).state

        assert check_consistency(synced) == []

    def test_issue_to_dict(self):
        """Test the serialized form of an issue."""
        issue = check_consistency(CollectionState(vehicles=(make_vehicle("v1"),)))[0]

        assert issue.to_dict()["type"] == "missing_deductible"
