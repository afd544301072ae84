"""
Tests for the collection registry.

Uses InMemoryStorage; a failing backend checks that storage errors are
turned into return values.
"""

from datetime import datetime, timedelta, timezone

import pytest

from stromcollect.core.events import EventStore
from stromcollect.core.models import Collection
from stromcollect.core.storage import InMemoryStorage
from stromcollect.errors import StorageError
from stromcollect.registry import CollectionFilter, CollectionRegistry, CollectionSort

BASE_DATE = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


class FailingStorage(InMemoryStorage):
    """Backend whose writes and reads can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail = False

    def load_all(self):
        if self.fail:
            raise StorageError("db_read", "disk unavailable")
        return super().load_all()

    def save(self, collection):
        if self.fail:
            raise StorageError("db_write", "disk full")
        super().save(collection)

    def delete(self, collection_id):
        if self.fail:
            raise StorageError("db_write", "disk full")
        return super().delete(collection_id)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def registry(storage):
    return CollectionRegistry(storage)


def _store(storage, locality, days_ago, is_complete=False, specimens=0):
    collection = Collection(
        locality=locality,
        collector_name="J. Smith",
        collection_date=BASE_DATE - timedelta(days=days_ago),
        is_complete=is_complete,
    )
    for _ in range(specimens):
        collection.add_specimen()
    storage.save(collection)
    return collection


class TestCreate:
    """Tests for creating collections."""

    def test_create_scenario(self, registry):
        assert registry.needs_new_collection is True

        collection = registry.create("Shark Bay", "J. Smith")

        assert collection.is_complete is False
        assert collection.specimens == []
        assert registry.current is collection
        assert registry.has_active is True
        assert registry.needs_new_collection is False

    def test_create_persists(self, registry, storage):
        collection = registry.create("Shark Bay", "J. Smith")

        assert [c.id for c in storage.load_all()] == [collection.id]

    def test_create_with_naive_date(self, registry):
        collection = registry.create("Shark Bay", "J. Smith", datetime(2025, 3, 1))

        assert collection.collection_date == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_create_publishes_event(self, storage):
        store = EventStore()
        received = []
        store.register_handler("*", received.append)
        registry = CollectionRegistry(storage, store)

        collection = registry.create("Shark Bay", "J. Smith")

        assert received[0].event_type == "collection_created"
        assert received[0].collection_id == collection.id
        assert received[0].locality == "Shark Bay"

    def test_create_storage_failure_returns_none(self):
        storage = FailingStorage()
        storage.fail = True
        registry = CollectionRegistry(storage)

        assert registry.create("Shark Bay", "J. Smith") is None
        assert registry.collections == []
        assert registry.current is None


class TestReload:
    """Tests for loading from storage."""

    def test_sorted_newest_first(self, registry, storage):
        _store(storage, "Old", days_ago=10)
        _store(storage, "New", days_ago=1)
        _store(storage, "Middle", days_ago=5)

        registry.reload()

        assert [c.locality for c in registry.collections] == ["New", "Middle", "Old"]

    def test_equal_dates_keep_storage_order(self, registry, storage):
        _store(storage, "First", days_ago=0)
        _store(storage, "Second", days_ago=0)

        registry.reload()

        assert [c.locality for c in registry.collections] == ["First", "Second"]

    def test_auto_selects_most_recent_incomplete(self, registry, storage):
        _store(storage, "Done", days_ago=0, is_complete=True)
        _store(storage, "Open", days_ago=3)
        _store(storage, "Older open", days_ago=7)

        registry.reload()

        assert registry.current.locality == "Open"

    def test_all_complete_needs_new_collection(self, registry, storage):
        _store(storage, "Done", days_ago=0, is_complete=True)

        registry.reload()

        assert registry.current is None
        assert registry.needs_new_collection is True

    def test_current_rebound_by_id(self, registry, storage):
        collection = registry.create("Shark Bay", "J. Smith")

        registry.reload()

        assert registry.current is not collection
        assert registry.current.id == collection.id

    def test_failure_keeps_previous_list(self):
        storage = FailingStorage()
        registry = CollectionRegistry(storage)
        registry.create("Shark Bay", "J. Smith")

        storage.fail = True
        result = registry.reload()

        assert [c.locality for c in result] == ["Shark Bay"]
        assert registry.is_loading is False


class TestSelectAndDelete:
    """Tests for select and delete."""

    def test_select_does_not_validate(self, registry):
        done = Collection(locality="Done", is_complete=True)
        registry.select(done)

        assert registry.current is done
        assert registry.has_active is False

    def test_select_none_clears(self, registry):
        registry.create("Shark Bay", "J. Smith")
        registry.select(None)

        assert registry.current is None

    def test_delete_current_clears_selection(self, registry, storage):
        collection = registry.create("Shark Bay", "J. Smith")
        collection.add_specimen()
        registry.save(collection)

        assert registry.delete(collection) is True

        assert registry.current is None
        assert registry.collections == []
        assert storage.load_all() == []

    def test_delete_other_keeps_selection(self, registry):
        first = registry.create("First", "J. Smith")
        second = registry.create("Second", "J. Smith")

        registry.delete(first)

        assert registry.current is second
        assert registry.find(first.id) is None

    def test_delete_failure_returns_false(self):
        storage = FailingStorage()
        registry = CollectionRegistry(storage)
        collection = registry.create("Shark Bay", "J. Smith")

        storage.fail = True

        assert registry.delete(collection) is False
        assert registry.find(collection.id) is collection


class TestComplete:
    def test_mark_complete(self, registry, storage):
        collection = registry.create("Shark Bay", "J. Smith")

        assert registry.mark_complete(collection) is True

        assert collection.is_complete is True
        assert storage.load_all()[0].is_complete is True
        assert registry.needs_new_collection is True

    def test_mark_complete_failure(self):
        storage = FailingStorage()
        registry = CollectionRegistry(storage)
        collection = registry.create("Shark Bay", "J. Smith")

        storage.fail = True

        assert registry.mark_complete(collection) is False

    def test_save_failure(self):
        storage = FailingStorage()
        registry = CollectionRegistry(storage)
        collection = registry.create("Shark Bay", "J. Smith")

        storage.fail = True

        assert registry.save(collection) is False


class TestBrowse:
    """Tests for filtered and sorted browsing."""

    @pytest.fixture
    def loaded(self, registry, storage):
        _store(storage, "Hamelin Pool", days_ago=2, is_complete=True, specimens=1)
        _store(storage, "Shark Bay", days_ago=1, specimens=3)
        _store(storage, "Alice Springs", days_ago=9, specimens=2)
        registry.reload()
        return registry

    def test_filter(self, loaded):
        completed = loaded.browse(CollectionFilter.COMPLETED)
        in_progress = loaded.browse(CollectionFilter.IN_PROGRESS)

        assert [c.locality for c in completed] == ["Hamelin Pool"]
        assert [c.locality for c in in_progress] == ["Shark Bay", "Alice Springs"]

    @pytest.mark.parametrize(
        "sort_option,expected",
        [
            (CollectionSort.DATE_NEWEST, ["Shark Bay", "Hamelin Pool", "Alice Springs"]),
            (CollectionSort.DATE_OLDEST, ["Alice Springs", "Hamelin Pool", "Shark Bay"]),
            (CollectionSort.LOCALITY_AZ, ["Alice Springs", "Hamelin Pool", "Shark Bay"]),
            (CollectionSort.LOCALITY_ZA, ["Shark Bay", "Hamelin Pool", "Alice Springs"]),
            (CollectionSort.SPECIMEN_COUNT, ["Shark Bay", "Alice Springs", "Hamelin Pool"]),
        ],
    )
    def test_sort(self, loaded, sort_option, expected):
        result = loaded.browse(CollectionFilter.ALL, sort_option)

        assert [c.locality for c in result] == expected

    def test_browse_does_not_reorder_registry(self, loaded):
        loaded.browse(CollectionFilter.ALL, CollectionSort.LOCALITY_AZ)

        assert [c.locality for c in loaded.collections] == [
            "Shark Bay",
            "Hamelin Pool",
            "Alice Springs",
        ]
