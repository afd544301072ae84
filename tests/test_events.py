"""
Tests for change notification.

Tests event types, EventStore logging/replay and handler dispatch.
"""

import json
from datetime import datetime, timezone

import pytest

from stromcollect.core.events import (
    EVENT_REGISTRY,
    CollectionCreated,
    CollectionDeleted,
    Event,
    EventStore,
    EventType,
    ExportCompleted,
    WorkflowStepChanged,
    publish,
)


class TestEventTypes:
    """Tests for event dataclasses."""

    def test_event_has_required_fields(self):
        event = Event()

        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.actor == "system"

    def test_event_to_dict(self):
        event = CollectionCreated(collection_id="c-1", locality="Shark Bay", collector_name="J. Smith")

        data = event.to_dict()

        assert data["event_type"] == "collection_created"
        assert data["collection_id"] == "c-1"
        assert data["locality"] == "Shark Bay"

    def test_to_dict_omits_none(self):
        data = ExportCompleted(destination="/tmp/x").to_dict()

        assert "collection_id" not in data

    def test_event_from_dict(self):
        data = {
            "event_id": "evt-1",
            "timestamp": "2025-03-01T00:00:00+00:00",
            "event_type": "workflow_step_changed",
            "collection_id": "c-1",
            "old_step": "SETUP",
            "new_step": "DRAWER_OVERVIEW",
            "trigger": "advance",
            "unexpected": "ignored",
        }

        event = Event.from_dict(data)

        assert isinstance(event, WorkflowStepChanged)
        assert event.new_step == "DRAWER_OVERVIEW"

    def test_unknown_type_falls_back_to_base(self):
        event = Event.from_dict({"event_type": "something_else", "collection_id": "c-1"})

        assert type(event) is Event

    def test_all_event_types_in_registry(self):
        for event_type in EventType:
            assert event_type.value in EVENT_REGISTRY


class TestEventStore:
    """Tests for EventStore."""

    @pytest.fixture
    def event_store(self, tmp_path):
        return EventStore(tmp_path / "events.jsonl")

    def test_append_writes_jsonl(self, event_store):
        event_store.append(CollectionCreated(collection_id="c-1", locality="Shark Bay"))
        event_store.append(CollectionDeleted(collection_id="c-1", specimen_count=2))

        lines = event_store.log_path.read_text().splitlines()

        assert len(lines) == 2
        assert json.loads(lines[1])["event_type"] == "collection_deleted"

    def test_replay_filters(self, event_store):
        event_store.append(CollectionCreated(collection_id="c-1"))
        event_store.append(CollectionCreated(collection_id="c-2"))
        event_store.append(CollectionDeleted(collection_id="c-1"))

        assert len(list(event_store.replay())) == 3
        assert len(event_store.get_collection_history("c-1")) == 2
        assert [e.collection_id for e in event_store.replay(event_type="collection_created")] == [
            "c-1",
            "c-2",
        ]

    def test_replay_filter_by_time(self, event_store):
        event_store.append(CollectionCreated(collection_id="c-1", timestamp="2025-01-01T00:00:00+00:00"))
        event_store.append(CollectionCreated(collection_id="c-2", timestamp="2025-06-01T00:00:00+00:00"))

        recent = list(event_store.replay(since=datetime(2025, 3, 1, tzinfo=timezone.utc)))

        assert [e.collection_id for e in recent] == ["c-2"]

    def test_replay_skips_corrupt_lines(self, event_store):
        event_store.append(CollectionCreated(collection_id="c-1"))
        with open(event_store.log_path, "a") as f:
            f.write("{not json\n\n")

        assert len(list(event_store.replay())) == 1

    def test_replay_without_log(self):
        assert list(EventStore().replay()) == []

    def test_handler_registration(self, event_store):
        received = []
        event_store.register_handler("collection_created", received.append)

        event_store.append(CollectionCreated(collection_id="c-1"))
        event_store.append(CollectionDeleted(collection_id="c-1"))

        assert [e.event_type for e in received] == ["collection_created"]

    def test_wildcard_handler(self, event_store):
        received = []
        event_store.register_handler("*", received.append)

        event_store.append(CollectionCreated(collection_id="c-1"))
        event_store.append(CollectionDeleted(collection_id="c-1"))

        assert len(received) == 2

    def test_unregister_handler(self, event_store):
        received = []
        event_store.register_handler("*", received.append)
        event_store.unregister_handler("*", received.append)

        event_store.append(CollectionCreated(collection_id="c-1"))

        assert received == []

    def test_failing_handler_does_not_break_append(self, event_store):
        received = []

        def broken(event):
            raise RuntimeError("handler failed")

        event_store.register_handler("*", broken)
        event_store.register_handler("*", received.append)

        event_store.append(CollectionCreated(collection_id="c-1"))

        assert len(received) == 1
        assert len(list(event_store.replay())) == 1


class TestPublish:
    def test_publish_without_store_is_noop(self):
        publish(None, CollectionCreated(collection_id="c-1"))

    def test_publish_appends(self):
        store = EventStore()
        received = []
        store.register_handler("*", received.append)

        publish(store, CollectionCreated(collection_id="c-1"))

        assert len(received) == 1
