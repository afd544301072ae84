"""Deterministic quality checks for captured photographs and voice notes.

The same input always yields the same score, so capture screens can be
re-run and tested. Thresholds match what field staff were shown on the
capture screens.
"""

from __future__ import annotations

import io
import logging
from typing import Sequence

from PIL import Image, ImageFilter, ImageStat, UnidentifiedImageError

from .protocols import AudioQualityMetrics, AudioRecording, CapturedImage, ImageQualityMetrics

logger = logging.getLogger(__name__)

MIN_SHARPNESS = 100.0
MIN_BRIGHTNESS = 0.3
MAX_BRIGHTNESS = 0.8

MIN_AMPLITUDE = 0.4
MIN_CLARITY = 0.6
NOISE_FLOOR = 0.02

# Offset keeps negative Laplacian responses inside the 8-bit range
_LAPLACIAN = ImageFilter.Kernel((3, 3), [0, 1, 0, 1, -4, 1, 0, 1, 0], scale=1, offset=128)


def measure_sharpness(image: Image.Image) -> float:
    """Variance of the Laplacian over a greyscale copy of ``image``."""
    edges = image.convert("L").filter(_LAPLACIAN)
    return float(ImageStat.Stat(edges).var[0])


def measure_brightness(image: Image.Image) -> float:
    """Mean luminance scaled to [0, 1]."""
    return float(ImageStat.Stat(image.convert("L")).mean[0]) / 255.0


def assess_image(image_data: bytes) -> ImageQualityMetrics:
    """Score encoded image bytes and list what the photographer should fix."""
    try:
        with Image.open(io.BytesIO(image_data)) as image:
            image.load()
            sharpness = measure_sharpness(image)
            brightness = measure_brightness(image)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not decode image for quality check: {e}")
        return ImageQualityMetrics(
            sharpness=0.0, brightness=0.0, is_acceptable=False, recommendations=["Invalid image"]
        )

    recommendations = []
    if sharpness < MIN_SHARPNESS:
        recommendations.append("Image may be blurry - try holding steadier")
    if brightness < MIN_BRIGHTNESS:
        recommendations.append("Image is too dark - try better lighting")
    elif brightness > MAX_BRIGHTNESS:
        recommendations.append("Image is overexposed - reduce lighting")

    return ImageQualityMetrics(
        sharpness=sharpness,
        brightness=brightness,
        is_acceptable=not recommendations,
        recommendations=recommendations,
    )


def assess_audio_samples(
    samples: Sequence[float], noise_floor: float = NOISE_FLOOR
) -> AudioQualityMetrics:
    """Score normalised PCM samples in [-1, 1].

    amplitude is the peak level; clarity is the share of samples above the
    noise floor, which drops for recordings that are mostly silence.
    """
    if not samples:
        return AudioQualityMetrics(amplitude=0.0, clarity=0.0, is_acceptable=False)

    levels = [min(abs(s), 1.0) for s in samples]
    amplitude = max(levels)
    clarity = sum(1 for level in levels if level > noise_floor) / len(levels)

    return AudioQualityMetrics(
        amplitude=amplitude,
        clarity=clarity,
        is_acceptable=amplitude > MIN_AMPLITUDE and clarity > MIN_CLARITY,
    )


def captured_image(image_data: bytes) -> CapturedImage:
    """Pair freshly captured JPEG bytes with their quality assessment."""
    return CapturedImage(data=image_data, quality=assess_image(image_data))


def audio_recording(audio_data: bytes, samples: Sequence[float]) -> AudioRecording:
    """Pair an encoded voice note with the quality of its PCM samples."""
    return AudioRecording(data=audio_data, quality=assess_audio_samples(samples))


__all__ = [
    "assess_image",
    "assess_audio_samples",
    "captured_image",
    "audio_recording",
    "measure_sharpness",
    "measure_brightness",
]
