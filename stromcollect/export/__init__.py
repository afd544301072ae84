"""Collection export: manifest, documentation and the async pipeline."""

from .manifest import (
    EXPORT_VERSION,
    INDEX_FILENAME,
    MANIFEST_FILENAME,
    README_FILENAME,
    ExportableCollection,
    ExportableSpecimen,
    export_folder_name,
    format_for_filename,
    format_iso8601,
)
from .pipeline import DataExportManager, ExportResult, ProgressTracker
from .readme import build_export_index, build_readme

__all__ = [
    "EXPORT_VERSION",
    "INDEX_FILENAME",
    "MANIFEST_FILENAME",
    "README_FILENAME",
    "DataExportManager",
    "ExportResult",
    "ExportableCollection",
    "ExportableSpecimen",
    "ProgressTracker",
    "build_export_index",
    "build_readme",
    "export_folder_name",
    "format_for_filename",
    "format_iso8601",
]
