"""
Collection and specimen records for stromatolite field sessions.

A Collection is one field session (locality, collector, date) owning an
ordered list of SpecimenRecords. Records are plain dataclasses mutated in
place by the workflow; persistence and change notification live in
``stromcollect.core.storage`` and ``stromcollect.core.events``.

Classification fields are stored as the raw strings that were entered or
persisted. The ``*_enum`` accessors parse them, falling back to
``UNKNOWN`` for anything unrecognised, so old or hand-edited data never
breaks loading.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

MAX_SPECIMEN_IMAGES = 5

# Six identification checks feed the 0-10 quality score
QUALITY_CHECK_COUNT = 6


class StructureType(str, Enum):
    """Structural classification of a stromatolite."""

    COLUMNAR = "Columnar"
    DOMAL = "Domal"
    STRATIFORM = "Stratiform"
    BRANCHING = "Branching"
    CONICAL = "Conical"
    UNKNOWN = "Unknown"

    @classmethod
    def from_raw(cls, value: Optional[str]) -> "StructureType":
        """Parse a stored string, mapping anything unrecognised to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class MineralogyType(str, Enum):
    """Dominant mineralogy of a specimen."""

    CALCITE = "Calcite"
    ARAGONITE = "Aragonite"
    DOLOMITE = "Dolomite"
    SILICA = "Silica"
    MIXED = "Mixed"
    UNKNOWN = "Unknown"

    @classmethod
    def from_raw(cls, value: Optional[str]) -> "MineralogyType":
        """Parse a stored string, mapping anything unrecognised to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def parse_coordinate(
    value: Union[str, float, int, None], limit: float
) -> Optional[float]:
    """Parse a decimal coordinate, returning None for blank or invalid input.

    Args:
        value: Text as typed in the field, or a number
        limit: Absolute bound (90 for latitude, 180 for longitude)
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or abs(number) > limit:
        return None
    return number


@dataclass
class SpecimenRecord:
    """One physical specimen within a collection."""

    # Identity
    id: str = dataclass_field(default_factory=new_id)
    specimen_id: str = ""  # Label written on the specimen

    # Identification
    structure_type: str = StructureType.UNKNOWN.value
    mineralogy: str = MineralogyType.UNKNOWN.value
    stromatolite_age: str = ""
    locality_country: str = ""
    locality_state_province: str = ""
    locality_nearest_city: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: str = ""

    # Media
    specimen_images: List[bytes] = dataclass_field(default_factory=list)
    specimen_image_data: Optional[bytes] = None  # Legacy single photo
    field_book_images: List[bytes] = dataclass_field(default_factory=list)
    field_book_image_data: Optional[bytes] = None  # Legacy single page
    voice_note_data: Optional[bytes] = None
    voice_note_transcription: str = ""

    # Derived
    ocr_text: str = ""
    ocr_confidence: float = 0.0
    quality_score: float = 0.0
    is_complete: bool = False

    @property
    def structure_type_enum(self) -> StructureType:
        return StructureType.from_raw(self.structure_type)

    @structure_type_enum.setter
    def structure_type_enum(self, value: StructureType) -> None:
        self.structure_type = value.value

    @property
    def mineralogy_enum(self) -> MineralogyType:
        return MineralogyType.from_raw(self.mineralogy)

    @mineralogy_enum.setter
    def mineralogy_enum(self, value: MineralogyType) -> None:
        self.mineralogy = value.value

    @property
    def display_name(self) -> str:
        return self.specimen_id or "Unnamed Specimen"

    # -- specimen photographs -------------------------------------------

    def add_specimen_image(self, image_data: bytes) -> bool:
        """Append a photograph. Past the cap the bytes are discarded.

        Returns:
            True if the photograph was stored
        """
        if len(self.specimen_images) >= MAX_SPECIMEN_IMAGES:
            logger.debug(
                f"Specimen {self.id} already has {MAX_SPECIMEN_IMAGES} photos, ignoring"
            )
            return False
        self.specimen_images.append(image_data)
        return True

    def remove_specimen_image(self, index: int) -> bool:
        """Remove the photograph at ``index``; stale indices are ignored."""
        if 0 <= index < len(self.specimen_images):
            del self.specimen_images[index]
            return True
        return False

    @property
    def can_add_specimen_image(self) -> bool:
        return len(self.specimen_images) < MAX_SPECIMEN_IMAGES

    @property
    def has_specimen_images(self) -> bool:
        return bool(self.specimen_images) or self.specimen_image_data is not None

    # -- field book pages -----------------------------------------------

    def add_field_book_image(self, image_data: bytes) -> None:
        self.field_book_images.append(image_data)

    def remove_field_book_image(self, index: int) -> bool:
        if 0 <= index < len(self.field_book_images):
            del self.field_book_images[index]
            return True
        return False

    @property
    def has_field_book_images(self) -> bool:
        return bool(self.field_book_images) or self.field_book_image_data is not None

    # -- voice note -----------------------------------------------------

    def set_voice_note(self, audio_data: bytes, transcription: str = "") -> None:
        """Replace the voice note; audio and transcript always change together."""
        self.voice_note_data, self.voice_note_transcription = audio_data, transcription

    def clear_voice_note(self) -> None:
        self.voice_note_data, self.voice_note_transcription = None, ""

    @property
    def has_voice_note(self) -> bool:
        return self.voice_note_data is not None

    # -- annotations ----------------------------------------------------

    def set_coordinates(
        self,
        latitude: Union[str, float, None],
        longitude: Union[str, float, None],
    ) -> None:
        """Set coordinates from typed text or numbers.

        Each value is parsed independently; blank or invalid input clears it.
        """
        self.latitude = parse_coordinate(latitude, 90.0)
        self.longitude = parse_coordinate(longitude, 180.0)

    def apply_ocr_result(self, result) -> None:
        """Store recognised text and confidence from an OCR collaborator."""
        self.ocr_text = result.text
        self.ocr_confidence = min(max(float(result.confidence), 0.0), 1.0)

    @property
    def has_locality(self) -> bool:
        return bool(
            self.locality_country or self.locality_state_province or self.locality_nearest_city
        )

    @property
    def has_complete_identification(self) -> bool:
        return (
            bool(self.specimen_id)
            and self.structure_type_enum is not StructureType.UNKNOWN
            and self.mineralogy_enum is not MineralogyType.UNKNOWN
        )

    def calculate_quality_score(self) -> float:
        """Derive the 0-10 quality score from identification completeness."""
        checks = [
            bool(self.specimen_id),
            self.structure_type_enum is not StructureType.UNKNOWN,
            self.mineralogy_enum is not MineralogyType.UNKNOWN,
            self.has_locality,
            self.latitude is not None and self.longitude is not None,
            bool(self.stromatolite_age),
        ]
        self.quality_score = sum(checks) / QUALITY_CHECK_COUNT * 10.0
        return self.quality_score


@dataclass
class Collection:
    """One field-collection session."""

    id: str = dataclass_field(default_factory=new_id)
    locality: str = ""
    collector_name: str = ""
    collection_date: datetime = dataclass_field(default_factory=utcnow)
    drawer_overview_image: Optional[bytes] = None
    is_complete: bool = False
    specimens: List[SpecimenRecord] = dataclass_field(default_factory=list)

    def add_specimen(self) -> SpecimenRecord:
        """Append a fresh specimen record and return it."""
        specimen = SpecimenRecord()
        self.specimens.append(specimen)
        return specimen

    def specimen_at(self, index: int) -> Optional[SpecimenRecord]:
        if 0 <= index < len(self.specimens):
            return self.specimens[index]
        return None

    def find_specimen(self, specimen_uuid: str) -> Optional[SpecimenRecord]:
        for specimen in self.specimens:
            if specimen.id == specimen_uuid:
                return specimen
        return None

    @property
    def has_required_info(self) -> bool:
        return bool(self.locality.strip()) and bool(self.collector_name.strip())

    # -- summary statistics ---------------------------------------------

    @property
    def total_images(self) -> int:
        total = 1 if self.drawer_overview_image is not None else 0
        for s in self.specimens:
            total += len(s.specimen_images) + len(s.field_book_images)
            total += (s.specimen_image_data is not None) + (s.field_book_image_data is not None)
        return total

    @property
    def total_voice_notes(self) -> int:
        return sum(1 for s in self.specimens if s.has_voice_note)

    @property
    def total_text_characters(self) -> int:
        return sum(len(s.voice_note_transcription) + len(s.ocr_text) for s in self.specimens)

    @property
    def completion_percentage(self) -> float:
        if not self.specimens:
            return 0.0
        completed = sum(1 for s in self.specimens if s.is_complete)
        return completed / len(self.specimens) * 100

    @property
    def average_quality_score(self) -> float:
        if not self.specimens:
            return 0.0
        return sum(s.quality_score for s in self.specimens) / len(self.specimens)

    def missing_data_items(self) -> List[str]:
        """Human-readable list of gaps shown before completing a collection."""
        items = []

        without_images = sum(1 for s in self.specimens if not s.has_specimen_images)
        if without_images:
            items.append(f"{without_images} specimens missing photos")

        without_field_book = sum(1 for s in self.specimens if not s.has_field_book_images)
        if without_field_book:
            items.append(f"{without_field_book} specimens missing field book pages")

        without_voice = sum(1 for s in self.specimens if not s.has_voice_note)
        if without_voice:
            items.append(f"{without_voice} specimens missing voice notes")

        if self.drawer_overview_image is None:
            items.append("Drawer overview photo missing")

        return items
