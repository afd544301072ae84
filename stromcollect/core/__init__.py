"""Core records, collaborator contracts, storage and change notification."""

from .protocols import (
    AudioQualityMetrics,
    AudioRecording,
    CapturedImage,
    ImageQualityMetrics,
    OCRResult,
    PermissionStatus,
    is_available,
)
from .quality import assess_audio_samples, assess_image, audio_recording, captured_image

__all__ = [
    "AudioQualityMetrics",
    "AudioRecording",
    "CapturedImage",
    "ImageQualityMetrics",
    "OCRResult",
    "PermissionStatus",
    "assess_audio_samples",
    "assess_image",
    "audio_recording",
    "captured_image",
    "is_available",
]
