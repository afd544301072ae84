"""
Collection Registry

Owns the set of collections, tracks which one is current and performs
create/select/delete/complete against a storage backend.

Storage failures are logged and turned into return values here; callers
never see a StorageError.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from stromcollect.core.events import (
    CollectionCompleted,
    CollectionCreated,
    CollectionDeleted,
    CollectionSelected,
    CollectionUpdated,
    EventStore,
    publish,
)
from stromcollect.core.models import Collection, utcnow
from stromcollect.errors import StorageError

logger = logging.getLogger(__name__)


class CollectionFilter(str, Enum):
    ALL = "all"
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"


class CollectionSort(str, Enum):
    DATE_NEWEST = "date_newest"
    DATE_OLDEST = "date_oldest"
    LOCALITY_AZ = "locality_az"
    LOCALITY_ZA = "locality_za"
    SPECIMEN_COUNT = "specimen_count"


class CollectionRegistry:
    """
    Registry of all collections for one application session.

    ``collections`` is ordered by collection date, newest first. Equal dates
    keep the order the storage backend returned them in.
    """

    def __init__(self, storage, event_store: Optional[EventStore] = None):
        """
        Initialize registry.

        Args:
            storage: Backend implementing the CollectionStorage protocol
            event_store: Optional EventStore for change notifications
        """
        self.storage = storage
        self.collections: List[Collection] = []
        self.current: Optional[Collection] = None
        self.is_loading = False
        self._event_store = event_store

    # -- queries --------------------------------------------------------

    @property
    def has_active(self) -> bool:
        return self.current is not None and not self.current.is_complete

    @property
    def needs_new_collection(self) -> bool:
        """Whether a front end must show the collection picker."""
        return not self.collections or not self.has_active

    def find(self, collection_id: str) -> Optional[Collection]:
        for collection in self.collections:
            if collection.id == collection_id:
                return collection
        return None

    def browse(
        self,
        filter_option: CollectionFilter = CollectionFilter.ALL,
        sort_option: CollectionSort = CollectionSort.DATE_NEWEST,
    ) -> List[Collection]:
        """Filtered and sorted view for a collection browser."""
        if filter_option is CollectionFilter.COMPLETED:
            result = [c for c in self.collections if c.is_complete]
        elif filter_option is CollectionFilter.IN_PROGRESS:
            result = [c for c in self.collections if not c.is_complete]
        else:
            result = list(self.collections)

        if sort_option is CollectionSort.DATE_NEWEST:
            result.sort(key=lambda c: c.collection_date, reverse=True)
        elif sort_option is CollectionSort.DATE_OLDEST:
            result.sort(key=lambda c: c.collection_date)
        elif sort_option is CollectionSort.LOCALITY_AZ:
            result.sort(key=lambda c: c.locality)
        elif sort_option is CollectionSort.LOCALITY_ZA:
            result.sort(key=lambda c: c.locality, reverse=True)
        elif sort_option is CollectionSort.SPECIMEN_COUNT:
            result.sort(key=lambda c: len(c.specimens), reverse=True)

        return result

    # -- loading --------------------------------------------------------

    def reload(self) -> List[Collection]:
        """
        Re-read every collection from storage, newest first.

        A current collection is re-bound to its freshly loaded copy. With no
        current collection, the most recent incomplete one is selected.
        """
        self.is_loading = True
        try:
            loaded = self.storage.load_all()
        except StorageError as e:
            logger.error(f"Failed to load collections: {e}")
            return self.collections
        finally:
            self.is_loading = False

        # sort is stable, so equal dates keep storage order
        loaded.sort(key=lambda c: c.collection_date, reverse=True)
        self.collections = loaded

        if self.current is not None:
            self.current = self.find(self.current.id)

        if self.current is None:
            self.current = next((c for c in self.collections if not c.is_complete), None)
            if self.current is not None:
                logger.info(f"Resuming collection {self.current.locality!r}")

        logger.info(f"Loaded {len(self.collections)} collections")
        return self.collections

    # -- mutations ------------------------------------------------------

    def create(
        self,
        locality: str,
        collector_name: str,
        collection_date: Optional[datetime] = None,
    ) -> Optional[Collection]:
        """
        Create, store and select a new collection.

        Returns:
            The new collection, or None if it could not be stored
        """
        if collection_date is None:
            collection_date = utcnow()
        elif collection_date.tzinfo is None:
            collection_date = collection_date.replace(tzinfo=timezone.utc)

        collection = Collection(
            locality=locality,
            collector_name=collector_name,
            collection_date=collection_date,
        )

        try:
            self.storage.save(collection)
        except StorageError as e:
            logger.error(f"Failed to save new collection: {e}")
            return None

        self.collections.append(collection)
        self.collections.sort(key=lambda c: c.collection_date, reverse=True)
        self.current = collection

        logger.info(
            f"Created collection {collection.locality!r} by {collection.collector_name!r}",
            extra={"collection_id": collection.id},
        )
        publish(
            self._event_store,
            CollectionCreated(
                collection_id=collection.id,
                locality=locality,
                collector_name=collector_name,
            ),
        )
        return collection

    def select(self, collection: Optional[Collection]) -> None:
        """Make ``collection`` current. Passing None clears the selection."""
        self.current = collection
        if collection is not None:
            publish(self._event_store, CollectionSelected(collection_id=collection.id))

    def save(self, collection: Collection) -> bool:
        """Persist changes made to a collection during the workflow."""
        try:
            self.storage.save(collection)
        except StorageError as e:
            logger.error(f"Failed to save collection {collection.id}: {e}")
            return False

        publish(
            self._event_store,
            CollectionUpdated(collection_id=collection.id, specimen_count=len(collection.specimens)),
        )
        return True

    def delete(self, collection: Collection) -> bool:
        """
        Delete a collection and everything it owns.

        Confirmation is the caller's job. If the collection was current, the
        selection is cleared.
        """
        try:
            self.storage.delete(collection.id)
        except StorageError as e:
            logger.error(f"Failed to delete collection {collection.id}: {e}")
            return False

        self.collections = [c for c in self.collections if c.id != collection.id]
        if self.current is not None and self.current.id == collection.id:
            self.current = None

        logger.info(
            f"Deleted collection {collection.locality!r} with {len(collection.specimens)} specimens",
            extra={"collection_id": collection.id},
        )
        publish(
            self._event_store,
            CollectionDeleted(
                collection_id=collection.id,
                locality=collection.locality,
                specimen_count=len(collection.specimens),
            ),
        )
        return True

    def mark_complete(self, collection: Collection) -> bool:
        """Mark a collection complete and persist it. There is no reverse."""
        collection.is_complete = True

        try:
            self.storage.save(collection)
        except StorageError as e:
            logger.error(f"Failed to mark collection complete: {e}")
            return False

        logger.info(f"Completed collection {collection.locality!r}", extra={"collection_id": collection.id})
        publish(self._event_store, CollectionCompleted(collection_id=collection.id))
        return True
