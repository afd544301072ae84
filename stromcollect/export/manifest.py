"""Export manifest models and file naming rules.

Every exported filename is derived from a record's UUID, never from
labels or other editable text, so exporting the same collection twice
yields the same names. The manifest lists those names instead of raw
bytes; it is built fresh for every export and frozen once built.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from stromcollect.core.models import Collection, SpecimenRecord

EXPORT_VERSION = "1.0"
MANIFEST_FILENAME = "collection_data.json"
README_FILENAME = "README.txt"
INDEX_FILENAME = "EXPORT_INDEX.txt"
IMAGES_DIR = "images"
AUDIO_DIR = "audio"


def format_iso8601(value: datetime) -> str:
    """UTC timestamp with second precision, e.g. ``2025-03-01T09:30:00Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_for_filename(value: datetime) -> str:
    """``yyyy-MM-dd_HH-mm-ss`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")


def export_folder_name(collection: Collection, prefix: str) -> str:
    locality = collection.locality.replace(" ", "_")
    return f"{prefix}_{locality}_{format_for_filename(collection.collection_date)}"


# -- filename rules ------------------------------------------------------


def drawer_overview_filename(collection: Collection) -> Optional[str]:
    if collection.drawer_overview_image is None:
        return None
    return f"drawer_overview_{collection.id}.jpg"


def specimen_image_filenames(specimen: SpecimenRecord) -> List[str]:
    """Numbered names for the photo list, or the legacy name when the list is empty."""
    if specimen.specimen_images:
        return [
            f"specimen_{specimen.id}_{n}.jpg"
            for n in range(1, len(specimen.specimen_images) + 1)
        ]
    if specimen.specimen_image_data is not None:
        return [f"specimen_{specimen.id}.jpg"]
    return []


def field_book_filenames(specimen: SpecimenRecord) -> List[str]:
    return [
        f"fieldbook_{specimen.id}_{n}.jpg"
        for n in range(1, len(specimen.field_book_images) + 1)
    ]


def legacy_field_book_filename(specimen: SpecimenRecord) -> Optional[str]:
    """Legacy single page name, used only when there are no numbered pages."""
    if specimen.field_book_images or specimen.field_book_image_data is None:
        return None
    return f"fieldbook_{specimen.id}.jpg"


def voice_note_filename(specimen: SpecimenRecord) -> Optional[str]:
    if specimen.voice_note_data is None:
        return None
    return f"voice_{specimen.id}.m4a"


# -- manifest models -----------------------------------------------------


class ExportableSpecimen(BaseModel):
    """Snapshot of one specimen as written to ``collection_data.json``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    specimen_id: str = Field(alias="specimenID")
    stromatolite_age: str = Field(alias="stromatoliteAge")
    structure_type: str = Field(alias="structureType")
    ocr_text: str = Field(alias="ocrText")
    ocr_confidence: float = Field(alias="ocrConfidence", ge=0.0, le=1.0)
    notes: str
    is_complete: bool = Field(alias="isComplete")
    quality_score: float = Field(alias="qualityScore", ge=0.0, le=10.0)
    specimen_image_filenames: List[str] = Field(alias="specimenImageFilenames")
    field_book_image_filenames: List[str] = Field(alias="fieldBookImageFilenames")
    field_book_image_filename: Optional[str] = Field(alias="fieldBookImageFilename")
    voice_note_filename: Optional[str] = Field(alias="voiceNoteFilename")
    voice_note_transcription: str = Field(alias="voiceNoteTranscription")

    @classmethod
    def from_specimen(cls, specimen: SpecimenRecord) -> "ExportableSpecimen":
        return cls(
            id=specimen.id,
            specimen_id=specimen.specimen_id,
            stromatolite_age=specimen.stromatolite_age,
            structure_type=specimen.structure_type,
            ocr_text=specimen.ocr_text,
            ocr_confidence=specimen.ocr_confidence,
            notes=specimen.notes,
            is_complete=specimen.is_complete,
            quality_score=specimen.quality_score,
            specimen_image_filenames=specimen_image_filenames(specimen),
            field_book_image_filenames=field_book_filenames(specimen),
            field_book_image_filename=legacy_field_book_filename(specimen),
            voice_note_filename=voice_note_filename(specimen),
            voice_note_transcription=specimen.voice_note_transcription,
        )


class ExportableCollection(BaseModel):
    """Snapshot of a collection as written to ``collection_data.json``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    locality: str
    collection_date: str = Field(alias="collectionDate")
    collector_name: str = Field(alias="collectorName")
    is_complete: bool = Field(alias="isComplete")
    specimens: List[ExportableSpecimen]
    drawer_overview_image_filename: Optional[str] = Field(alias="drawerOverviewImageFilename")
    export_date: str = Field(alias="exportDate")
    export_version: str = Field(alias="exportVersion", default=EXPORT_VERSION)

    @classmethod
    def from_collection(
        cls, collection: Collection, export_date: Optional[datetime] = None
    ) -> "ExportableCollection":
        return cls(
            id=collection.id,
            locality=collection.locality,
            collection_date=format_iso8601(collection.collection_date),
            collector_name=collection.collector_name,
            is_complete=collection.is_complete,
            specimens=[ExportableSpecimen.from_specimen(s) for s in collection.specimens],
            drawer_overview_image_filename=drawer_overview_filename(collection),
            export_date=format_iso8601(export_date or datetime.now(timezone.utc)),
        )

    def to_json(self) -> str:
        """Pretty-printed JSON with keys sorted at every level."""
        return json.dumps(self.model_dump(by_alias=True), indent=2, sort_keys=True)
