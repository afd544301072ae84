"""
Change notification for collection workflows.

Mutating components (registry, workflow controller, export pipeline)
publish small event records; views and tools subscribe instead of
polling. Events may also be appended to a JSON Lines log for an audit
trail of the field session.

Event Types:
- CollectionCreated / CollectionSelected / CollectionUpdated
- CollectionDeleted / CollectionCompleted
- SpecimenAdded: New specimen appended to a collection
- WorkflowStepChanged: Current workflow step moved
- ExportCompleted / ExportFailed: Export pipeline outcome

Usage:
    from stromcollect.core.events import EventStore, CollectionCreated

    store = EventStore(Path("./events.jsonl"))
    store.register_handler("*", lambda event: print(event.event_type))
    store.append(CollectionCreated(collection_id=collection.id, locality="Shark Bay"))

    # Replay events
    for event in store.replay(collection_id=collection.id):
        print(f"{event.timestamp}: {event.event_type}")
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Type
import json
import logging
import uuid

logger = logging.getLogger(__name__)

ALL_EVENTS = "*"


class EventType(str, Enum):
    """Types of events in the collection workflow."""

    COLLECTION_CREATED = "collection_created"
    COLLECTION_SELECTED = "collection_selected"
    COLLECTION_UPDATED = "collection_updated"
    COLLECTION_DELETED = "collection_deleted"
    COLLECTION_COMPLETED = "collection_completed"
    SPECIMEN_ADDED = "specimen_added"
    WORKFLOW_STEP_CHANGED = "workflow_step_changed"
    EXPORT_COMPLETED = "export_completed"
    EXPORT_FAILED = "export_failed"


@dataclass
class Event:
    """Base event class with common fields."""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    event_type: str = field(default="")
    collection_id: Optional[str] = None
    actor: str = "system"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Create event from dictionary."""
        event_type = data.get("event_type", "")

        event_class = EVENT_REGISTRY.get(event_type, Event)
        return event_class(**{k: v for k, v in data.items() if k in event_class.__dataclass_fields__})


@dataclass
class CollectionCreated(Event):
    event_type: str = field(default=EventType.COLLECTION_CREATED.value)
    locality: str = ""
    collector_name: str = ""


@dataclass
class CollectionSelected(Event):
    event_type: str = field(default=EventType.COLLECTION_SELECTED.value)


@dataclass
class CollectionUpdated(Event):
    """Event: Collection or one of its specimens was persisted."""

    event_type: str = field(default=EventType.COLLECTION_UPDATED.value)
    specimen_count: int = 0


@dataclass
class CollectionDeleted(Event):
    event_type: str = field(default=EventType.COLLECTION_DELETED.value)
    locality: str = ""
    specimen_count: int = 0


@dataclass
class CollectionCompleted(Event):
    event_type: str = field(default=EventType.COLLECTION_COMPLETED.value)


@dataclass
class SpecimenAdded(Event):
    event_type: str = field(default=EventType.SPECIMEN_ADDED.value)
    specimen_uuid: str = ""
    position: int = 0


@dataclass
class WorkflowStepChanged(Event):
    """Event: Workflow moved between steps."""

    event_type: str = field(default=EventType.WORKFLOW_STEP_CHANGED.value)
    old_step: str = ""
    new_step: str = ""
    trigger: str = ""  # "advance", "retreat", "jump"


@dataclass
class ExportCompleted(Event):
    event_type: str = field(default=EventType.EXPORT_COMPLETED.value)
    destination: str = ""
    files_exported: int = 0
    total_size: int = 0


@dataclass
class ExportFailed(Event):
    event_type: str = field(default=EventType.EXPORT_FAILED.value)
    error: str = ""


# Registry mapping event type strings to classes
EVENT_REGISTRY: Dict[str, Type[Event]] = {
    EventType.COLLECTION_CREATED.value: CollectionCreated,
    EventType.COLLECTION_SELECTED.value: CollectionSelected,
    EventType.COLLECTION_UPDATED.value: CollectionUpdated,
    EventType.COLLECTION_DELETED.value: CollectionDeleted,
    EventType.COLLECTION_COMPLETED.value: CollectionCompleted,
    EventType.SPECIMEN_ADDED.value: SpecimenAdded,
    EventType.WORKFLOW_STEP_CHANGED.value: WorkflowStepChanged,
    EventType.EXPORT_COMPLETED.value: ExportCompleted,
    EventType.EXPORT_FAILED.value: ExportFailed,
}


class EventStore:
    """
    Event publisher with an optional append-only JSON Lines log.

    Features:
    - Handlers per event type, or for every event via ``"*"``
    - Durable append-only storage when a log path is given
    - Event replay by collection or type
    """

    def __init__(self, log_path: Optional[Path] = None):
        """Initialize event store.

        Args:
            log_path: Path to JSONL event log file; None keeps events in memory only
        """
        self.log_path = Path(log_path) if log_path else None
        if self.log_path:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._handlers: Dict[str, List[Callable[[Event], None]]] = {}

    def append(self, event: Event) -> None:
        """Append event to log and notify handlers."""
        if self.log_path:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(event.to_dict()) + "\n")

        logger.debug(f"Event appended: {event.event_type} for {event.collection_id}")

        self._notify_handlers(event)

    def replay(
        self,
        collection_id: Optional[str] = None,
        event_type: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> Iterator[Event]:
        """Replay logged events with optional filters.

        Yields:
            Matching events in chronological order
        """
        if not self.log_path or not self.log_path.exists():
            return

        with open(self.log_path) as f:
            for line in f:
                if not line.strip():
                    continue

                try:
                    data = json.loads(line)
                    event = Event.from_dict(data)
                except (json.JSONDecodeError, TypeError) as e:
                    logger.warning(f"Failed to parse event: {e}")
                    continue

                if collection_id and event.collection_id != collection_id:
                    continue
                if event_type and event.event_type != event_type:
                    continue
                if since and datetime.fromisoformat(event.timestamp) < since:
                    continue

                yield event

    def get_collection_history(self, collection_id: str) -> List[Event]:
        return list(self.replay(collection_id=collection_id))

    def register_handler(
        self,
        event_type: str,
        handler: Callable[[Event], None],
    ) -> None:
        """Register handler for an event type, or ``"*"`` for all events."""
        self._handlers.setdefault(event_type, []).append(handler)

    def unregister_handler(self, event_type: str, handler: Callable[[Event], None]) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def _notify_handlers(self, event: Event) -> None:
        handlers = self._handlers.get(event.event_type, []) + self._handlers.get(ALL_EVENTS, [])
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")


def publish(event_store: Optional[EventStore], event: Event) -> None:
    """Append ``event`` if a store is wired in; components call this unconditionally."""
    if event_store is not None:
        event_store.append(event)


__all__ = [
    "ALL_EVENTS",
    "Event",
    "EventType",
    "CollectionCreated",
    "CollectionSelected",
    "CollectionUpdated",
    "CollectionDeleted",
    "CollectionCompleted",
    "SpecimenAdded",
    "WorkflowStepChanged",
    "ExportCompleted",
    "ExportFailed",
    "EventStore",
    "EVENT_REGISTRY",
    "publish",
]
