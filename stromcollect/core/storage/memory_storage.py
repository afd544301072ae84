"""
In-memory storage backend.

Keeps private copies of every saved collection so callers see the same
load/save semantics as a real database: edits are only visible to later
``load_all`` calls once saved.
"""

import copy
import logging
from typing import Dict, List

from stromcollect.core.models import Collection

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Process-local storage implementing the CollectionStorage protocol."""

    def __init__(self):
        # dicts keep insertion order, which is the tie-break for equal dates
        self._collections: Dict[str, Collection] = {}

    def load_all(self) -> List[Collection]:
        return [copy.deepcopy(c) for c in self._collections.values()]

    def save(self, collection: Collection) -> None:
        self._collections[collection.id] = copy.deepcopy(collection)
        logger.debug(f"Saved collection {collection.id} ({len(collection.specimens)} specimens)")

    def delete(self, collection_id: str) -> bool:
        """Delete a collection together with its specimens and media."""
        return self._collections.pop(collection_id, None) is not None

    def close(self) -> None:
        """Nothing to release; data lives as long as the instance."""
