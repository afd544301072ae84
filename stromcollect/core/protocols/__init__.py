"""
Protocol interfaces for the collection workflow.

Camera capture, text recognition, speech transcription and audio
recording are platform services. The workflow only needs the data they
produce, so each is described here as a structural contract; any object
with the right methods plugs in without inheriting from anything.

## Collaborator Contracts

### Camera
- `capture() -> CapturedImage` - one JPEG image plus a synchronously
  computed `ImageQualityMetrics`.

### TextRecognizer
- `async recognize(image_data: bytes) -> OCRResult` - recognised text, a
  confidence in [0, 1] and `needs_verification` (confidence < 0.8).

### SpeechTranscriber
- `transcribe(audio_stream) -> AsyncIterator[str]` - best-effort
  transcript, yielded repeatedly as it is refined. The last value is final.

### AudioRecorder
- `stop() -> AudioRecording` - one M4A blob per session plus
  `AudioQualityMetrics`.

Camera, SpeechTranscriber and AudioRecorder expose `permission`
(`PermissionStatus`); check it with `is_available()` before use.

### CollectionStorage
Required methods:
- `load_all() -> List[Collection]`
- `save(collection: Collection) -> None`
- `delete(collection_id: str) -> bool`
- `close() -> None`

Implementations raise `StorageError` on backend failure.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, List, Protocol, runtime_checkable

from stromcollect.core.models import Collection

# Text below this confidence is flagged for manual verification
OCR_VERIFICATION_THRESHOLD = 0.8


class PermissionStatus(str, Enum):
    """Operating-system permission state for a collaborator."""

    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def is_usable(self) -> bool:
        return self is PermissionStatus.AUTHORIZED


@dataclass
class ImageQualityMetrics:
    """Quality assessment attached to a captured photograph."""

    sharpness: float
    brightness: float
    is_acceptable: bool
    recommendations: List[str] = field(default_factory=list)


@dataclass
class CapturedImage:
    data: bytes  # JPEG encoded
    quality: ImageQualityMetrics


@dataclass
class OCRResult:
    """Result from a text recognizer."""

    text: str
    confidence: float
    needs_verification: bool = True

    @classmethod
    def from_recognition(cls, text: str, confidence: float) -> "OCRResult":
        """Build a result, deriving ``needs_verification`` from confidence."""
        return cls(
            text=text,
            confidence=confidence,
            needs_verification=confidence < OCR_VERIFICATION_THRESHOLD,
        )


@dataclass
class AudioQualityMetrics:
    amplitude: float
    clarity: float
    is_acceptable: bool


@dataclass
class AudioRecording:
    data: bytes  # M4A container
    quality: AudioQualityMetrics


@runtime_checkable
class Camera(Protocol):
    """Protocol for still-image capture."""

    @property
    def permission(self) -> PermissionStatus:
        ...

    def capture(self) -> CapturedImage:
        ...


@runtime_checkable
class TextRecognizer(Protocol):
    """Protocol for OCR over specimen labels and field book pages."""

    async def recognize(self, image_data: bytes) -> OCRResult:
        ...


@runtime_checkable
class SpeechTranscriber(Protocol):
    """Protocol for live speech-to-text."""

    @property
    def permission(self) -> PermissionStatus:
        ...

    def transcribe(self, audio_stream: Any) -> AsyncIterator[str]:
        ...


@runtime_checkable
class AudioRecorder(Protocol):
    """Protocol for voice note recording."""

    @property
    def permission(self) -> PermissionStatus:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> AudioRecording:
        ...


@runtime_checkable
class CollectionStorage(Protocol):
    """Protocol for collection persistence backends."""

    def load_all(self) -> List[Collection]:
        """Return every stored collection with its specimens."""
        ...

    def save(self, collection: Collection) -> None:
        """Insert or replace a collection and all of its specimens."""
        ...

    def delete(self, collection_id: str) -> bool:
        """Delete a collection and its specimens. Returns True if it existed."""
        ...

    def close(self) -> None:
        ...


def is_available(collaborator: Any) -> bool:
    """
    Whether a collaborator can be used right now.

    Collaborators without a ``permission`` attribute need no OS grant.
    A denied or undetermined permission only disables that collaborator.
    """
    permission = getattr(collaborator, "permission", PermissionStatus.AUTHORIZED)
    return PermissionStatus(permission).is_usable


__all__ = [
    "OCR_VERIFICATION_THRESHOLD",
    "PermissionStatus",
    "ImageQualityMetrics",
    "CapturedImage",
    "OCRResult",
    "AudioQualityMetrics",
    "AudioRecording",
    "Camera",
    "TextRecognizer",
    "SpeechTranscriber",
    "AudioRecorder",
    "CollectionStorage",
    "is_available",
]
