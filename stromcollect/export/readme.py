"""Plain-text documentation written alongside exports."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Tuple

from stromcollect.core.models import Collection

from .manifest import ExportableCollection, format_iso8601


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def build_readme(manifest: ExportableCollection) -> str:
    """README.txt for a single collection export."""
    lines = [
        "StromCollect Data Export",
        "========================",
        "",
        f"Export Date: {manifest.export_date}",
        f"Export Version: {manifest.export_version}",
        "",
        "Collection Information:",
        f"- ID: {manifest.id}",
        f"- Locality: {manifest.locality}",
        f"- Collector: {manifest.collector_name}",
        f"- Collection Date: {manifest.collection_date}",
        f"- Complete: {_yes_no(manifest.is_complete)}",
        f"- Number of Specimens: {len(manifest.specimens)}",
        "",
        "File Structure:",
        "===============",
        "",
        "collection_data.json    - Complete collection metadata in JSON format",
        "images/                 - All photographs (specimen images, field book pages, drawer overview)",
        "audio/                  - All voice note recordings",
        "README.txt              - This file",
        "",
        "File Naming Convention:",
        "=======================",
        "",
        "Images:",
        "- drawer_overview_[UUID].jpg    - Drawer overview photograph",
        "- specimen_[UUID]_[N].jpg       - Individual specimen photographs (up to 5 per specimen)",
        "- specimen_[UUID].jpg           - Legacy single specimen photograph",
        "- fieldbook_[UUID]_[N].jpg      - Field book page photographs (multiple pages per specimen)",
        "- fieldbook_[UUID].jpg          - Legacy single field book photograph",
        "",
        "Audio:",
        "- voice_[UUID].m4a              - Voice note recordings",
        "",
        "Processing Notes:",
        "=================",
        "",
        "- All images are in JPEG format, suitable for OCR processing",
        "- Audio files are in M4A format, suitable for speech-to-text processing",
        "- JSON file contains all metadata including OCR text already extracted",
        "- UUIDs in filenames correspond to specimen IDs in the JSON data",
        "- All timestamps are in ISO8601 format (UTC)",
        "",
        "Recommended Processing:",
        "=======================",
        "",
        "1. Parse collection_data.json for metadata and existing OCR text",
        "2. Process images in images/ folder for additional OCR if needed",
        "3. Process audio files in audio/ folder for speech-to-text conversion",
        "4. Cross-reference filenames with specimen IDs in JSON for data correlation",
        "",
    ]
    return "\n".join(lines)


def build_export_index(
    entries: Iterable[Tuple[Collection, str]], export_date: datetime
) -> str:
    """EXPORT_INDEX.txt for an export of several collections.

    Args:
        entries: (collection, directory name inside the export) pairs
        export_date: When the aggregate export ran
    """
    entries = list(entries)
    lines = [
        "StromCollect Complete Export Index",
        "==================================",
        "",
        f"Export Date: {format_iso8601(export_date)}",
        f"Total Collections: {len(entries)}",
        "",
        "Collections Included:",
        "=====================",
    ]

    for collection, directory in entries:
        lines += [
            "",
            f"Locality: {collection.locality}",
            f"Collector: {collection.collector_name}",
            f"Date: {format_iso8601(collection.collection_date)}",
            f"Specimens: {len(collection.specimens)}",
            f"Complete: {_yes_no(collection.is_complete)}",
            f"Directory: {directory}",
        ]

    lines += [
        "",
        "Processing Instructions:",
        "========================",
        "",
        "Each collection is exported to its own directory with the following structure:",
        "- collection_data.json: Complete metadata",
        "- images/: All photographs",
        "- audio/: All voice recordings",
        "- README.txt: Collection-specific information",
        "",
        "For batch processing, iterate through each collection directory and process",
        "the files according to the individual README files.",
        "",
    ]
    return "\n".join(lines)
