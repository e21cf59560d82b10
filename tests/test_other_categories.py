"""Tests for user-defined category records."""

import pytest

from health_tracker.records import OtherCategoryManager, OtherRecord


@pytest.fixture
def manager() -> OtherCategoryManager:
    manager = OtherCategoryManager()
    manager.add_record("alice", "steps", "2024-01-01", 8000, "walk")
    manager.add_record("alice", "weight", "2024-01-01", 70.2)
    manager.add_record("alice", "steps", "2024-01-02", 12000, "hike")
    return manager


def test_categories_appear_on_first_record_in_order(manager: OtherCategoryManager):
    assert manager.get_categories("alice") == ["steps", "weight"]
    assert manager.get_categories("bob") == []


def test_get_records(manager: OtherCategoryManager):
    assert manager.get_records("alice", "steps") == [
        OtherRecord("2024-01-01", 8000.0, "walk"),
        OtherRecord("2024-01-02", 12000.0, "hike"),
    ]
    assert manager.get_records("alice", "missing") == []


def test_update_record(manager: OtherCategoryManager):
    assert manager.update_record("alice", "steps", 1, "2024-01-03", 9000, "")

    assert manager.get_records("alice", "steps")[1] == OtherRecord("2024-01-03", 9000.0, "")


def test_update_and_delete_fail_for_unknown_category(manager: OtherCategoryManager):
    assert not manager.update_record("alice", "mood", 0, "2024-01-01", 1, "")
    assert not manager.delete_record("alice", "mood", 0)
    assert not manager.delete_record("bob", "steps", 0)


@pytest.mark.parametrize("index", [2, -1])
def test_update_and_delete_fail_out_of_range(manager: OtherCategoryManager, index):
    assert not manager.update_record("alice", "steps", index, "2024-01-01", 1, "")
    assert not manager.delete_record("alice", "steps", index)


def test_delete_shifts_indices(manager: OtherCategoryManager):
    assert manager.delete_record("alice", "steps", 0)

    assert manager.get_records("alice", "steps") == [OtherRecord("2024-01-02", 12000.0, "hike")]


def test_empty_category_stays_listed(manager: OtherCategoryManager):
    assert manager.delete_record("alice", "weight", 0)

    assert manager.get_categories("alice") == ["steps", "weight"]
    assert manager.get_records("alice", "weight") == []


def test_category_names_are_scoped_per_user(manager: OtherCategoryManager):
    manager.add_record("bob", "steps", "2024-01-01", 100)

    assert len(manager.get_records("bob", "steps")) == 1
    assert len(manager.get_records("alice", "steps")) == 2


def test_json_round_trip_keeps_empty_categories(manager: OtherCategoryManager):
    manager.delete_record("alice", "weight", 0)

    restored = OtherCategoryManager()
    restored.from_json(manager.to_json())

    assert restored.get_categories("alice") == ["steps", "weight"]
    assert restored.get_records("alice", "steps") == manager.get_records("alice", "steps")
    assert restored.count() == 2


def test_purge_user(manager: OtherCategoryManager):
    assert manager.purge_user("alice")
    assert manager.get_categories("alice") == []


def test_from_json_rejects_bad_shapes():
    with pytest.raises(ValueError):
        OtherCategoryManager().from_json({"alice": ["steps"]})
    with pytest.raises(ValueError):
        OtherCategoryManager().from_json({"alice": {"steps": {"date": "2024-01-01"}}})
