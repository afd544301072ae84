"""
Search across collections and specimens.

Linear, case-insensitive substring scan. Results are produced in
enumeration order: collections as given, then each collection's
specimens in sequence order.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from stromcollect.core.models import Collection, SpecimenRecord

logger = logging.getLogger(__name__)

MATCH_EXCERPT_LENGTH = 100
NOTES_EXCERPT_LENGTH = 50


class SearchScope(str, Enum):
    ALL = "all"
    COLLECTIONS = "collections"
    SPECIMENS = "specimens"
    TEXT = "text"

    def includes(self, other: "SearchScope") -> bool:
        return self is SearchScope.ALL or self is other


class SearchResultType(str, Enum):
    COLLECTION = "collection"
    SPECIMEN = "specimen"
    VOICE_NOTE = "voice_note"
    OCR_TEXT = "ocr_text"


@dataclass
class SearchResult:
    """One hit, with a back-reference to where it was found."""

    type: SearchResultType
    title: str
    subtitle: str
    match_text: str
    collection: Collection
    specimen: Optional[SpecimenRecord] = None


# (label, accessor, excerpt length) checked in order; the first hit describes the match
_SPECIMEN_FIELDS: List[Tuple[str, Callable[[SpecimenRecord], str], Optional[int]]] = [
    ("Specimen ID", lambda s: s.specimen_id, None),
    ("Age", lambda s: s.stromatolite_age, None),
    ("Type", lambda s: s.structure_type, None),
    ("Mineralogy", lambda s: s.mineralogy, None),
    ("Country", lambda s: s.locality_country, None),
    ("State/Province", lambda s: s.locality_state_province, None),
    ("City", lambda s: s.locality_nearest_city, None),
    ("Notes", lambda s: s.notes, NOTES_EXCERPT_LENGTH),
]


def _matches(value: str, query: str) -> bool:
    return bool(value) and query in value.lower()


def _specimen_match(specimen: SpecimenRecord, query: str) -> Optional[str]:
    for label, accessor, excerpt_length in _SPECIMEN_FIELDS:
        value = accessor(specimen)
        if _matches(value, query):
            return f"{label}: {value[:excerpt_length]}"
    return None


def search_collections(
    collections: Iterable[Collection],
    query: str,
    scope: SearchScope = SearchScope.ALL,
) -> List[SearchResult]:
    """
    Search collections for ``query``.

    Args:
        collections: Collections to scan, typically ``registry.collections``
        query: Free text; blank queries return no results
        scope: Which categories to search

    Returns:
        Flat list of results grouped by collection
    """
    needle = query.strip().lower()
    if not needle:
        return []

    results: List[SearchResult] = []

    for collection in collections:
        if scope.includes(SearchScope.COLLECTIONS):
            if _matches(collection.locality, needle) or _matches(collection.collector_name, needle):
                results.append(
                    SearchResult(
                        type=SearchResultType.COLLECTION,
                        title=collection.locality,
                        subtitle=f"Collection by {collection.collector_name}",
                        match_text=collection.locality,
                        collection=collection,
                    )
                )

        for specimen in collection.specimens:
            if scope.includes(SearchScope.SPECIMENS):
                match = _specimen_match(specimen, needle)
                if match is not None:
                    results.append(
                        SearchResult(
                            type=SearchResultType.SPECIMEN,
                            title=specimen.display_name,
                            subtitle=f"in {collection.locality}",
                            match_text=match,
                            collection=collection,
                            specimen=specimen,
                        )
                    )

            if scope.includes(SearchScope.TEXT):
                if _matches(specimen.voice_note_transcription, needle):
                    results.append(
                        SearchResult(
                            type=SearchResultType.VOICE_NOTE,
                            title="Voice Note",
                            subtitle=f"in {specimen.display_name}",
                            match_text=specimen.voice_note_transcription[:MATCH_EXCERPT_LENGTH],
                            collection=collection,
                            specimen=specimen,
                        )
                    )
                if _matches(specimen.ocr_text, needle):
                    results.append(
                        SearchResult(
                            type=SearchResultType.OCR_TEXT,
                            title="OCR Text",
                            subtitle=f"in {specimen.display_name}",
                            match_text=specimen.ocr_text[:MATCH_EXCERPT_LENGTH],
                            collection=collection,
                            specimen=specimen,
                        )
                    )

    logger.debug(f"Search {needle!r} in scope {scope.value} found {len(results)} results")
    return results
