"""stromcollect: field collection workflow for stromatolite specimens."""

from stromcollect.core.models import Collection, MineralogyType, SpecimenRecord, StructureType
from stromcollect.export import DataExportManager, ExportResult
from stromcollect.registry import CollectionFilter, CollectionRegistry, CollectionSort
from stromcollect.search import SearchResult, SearchResultType, SearchScope, search_collections
from stromcollect.workflow import WorkflowController, WorkflowState

__version__ = "0.1.0"

__all__ = [
    "Collection",
    "CollectionFilter",
    "CollectionRegistry",
    "CollectionSort",
    "DataExportManager",
    "ExportResult",
    "MineralogyType",
    "SearchResult",
    "SearchResultType",
    "SearchScope",
    "SpecimenRecord",
    "StructureType",
    "WorkflowController",
    "WorkflowState",
    "search_collections",
]
