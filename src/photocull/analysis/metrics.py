# src/photocull/analysis/metrics.py
"""Metric extractor: sharpness, exposure, contrast and a difference hash.

Pure functions over a decoded PixelBuffer. No state, no I/O. Every score
is clamped to [0, 100] and rounded to two decimals; the calibration
divisors come from Settings so they can be tuned per deployment.
"""

from __future__ import annotations

import logging

import numpy as np

from photocull.config.settings import Settings
from photocull.core.errors import DecodeError, ExtractionError
from photocull.core.models import MetricResult, PixelBuffer, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_SHARPNESS_DIVISOR = 500.0
DEFAULT_CONTRAST_DIVISOR = 64.0

# Exposure histogram cut-offs (luminance levels) and tolerated clip ratio.
DARK_LEVEL = 30
BRIGHT_LEVEL = 225
CLIP_RATIO_TOLERANCE = 0.3
MID_GRAY = 128.0

# dHash grid: 9 samples per row give 8 horizontal comparisons.
HASH_COLUMNS = 9
HASH_ROWS = 8

# Issue thresholds
BLURRY_BELOW = 30.0
SLIGHTLY_BLURRY_BELOW = 50.0
POOR_EXPOSURE_BELOW = 40.0
OVEREXPOSED_ABOVE = 90.0
LOW_CONTRAST_BELOW = 30.0


def luminance(buffer: PixelBuffer) -> np.ndarray:
    """Per-pixel luma (0.299R + 0.587G + 0.114B) as a float64 (H, W) array.

    Alpha, when present, is ignored.
    """
    rgb = buffer.to_array()[..., :3].astype(np.float64)
    return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]


def _score(value: float) -> float:
    return round_half_up(min(100.0, max(0.0, value)), 2)


def laplacian_variance(lum: np.ndarray) -> float:
    """Variance of the 4-neighbour Laplacian over interior pixels.

    Images without interior pixels (a side shorter than 3) have no
    edge response and yield 0.
    """
    height, width = lum.shape
    if height < 3 or width < 3:
        return 0.0
    response = (
        lum[:-2, 1:-1]
        + lum[1:-1, :-2]
        - 4.0 * lum[1:-1, 1:-1]
        + lum[1:-1, 2:]
        + lum[2:, 1:-1]
    )
    return float(response.var())


def sharpness_score(lum: np.ndarray, divisor: float = DEFAULT_SHARPNESS_DIVISOR) -> float:
    """Laplacian-variance focus measure normalized to [0, 100]."""
    return _score(laplacian_variance(lum) / divisor * 100.0)


def exposure_score(lum: np.ndarray) -> float:
    """Histogram exposure score: distance from mid-gray minus clipping penalty."""
    levels = np.floor(lum + 0.5).astype(np.int64).ravel()
    pixel_count = levels.size
    histogram = np.bincount(levels, minlength=256)

    avg = float(levels.mean())
    dark_ratio = float(histogram[:DARK_LEVEL].sum()) / pixel_count
    bright_ratio = float(histogram[BRIGHT_LEVEL:].sum()) / pixel_count

    base = 100.0 - abs(avg - MID_GRAY) / 1.28
    penalty = (
        max(0.0, dark_ratio - CLIP_RATIO_TOLERANCE) * 100.0
        + max(0.0, bright_ratio - CLIP_RATIO_TOLERANCE) * 100.0
    )
    return _score(base - penalty)


def contrast_score(lum: np.ndarray, divisor: float = DEFAULT_CONTRAST_DIVISOR) -> float:
    """Luminance standard deviation normalized to [0, 100]."""
    return _score(float(lum.std()) / divisor * 100.0)


def difference_hash(lum: np.ndarray) -> str:
    """64-bit difference hash as 16 lowercase hex characters.

    The luminance plane is sampled on a 9x8 grid (nearest source pixel);
    each bit is 1 when a sample is darker than its right-hand neighbour.
    Bits are read row by row, most significant first.
    """
    height, width = lum.shape
    xs = np.floor(np.arange(HASH_COLUMNS) / HASH_COLUMNS * width).astype(np.int64)
    ys = np.floor(np.arange(HASH_ROWS) / HASH_ROWS * height).astype(np.int64)
    grid = lum[np.ix_(ys, xs)]
    bits = (grid[:, :-1] < grid[:, 1:]).ravel()

    value = 0
    for bit in bits:
        value = (value << 1) | int(bit)
    return f"{value:016x}"


def detect_issues(sharpness: float, exposure: float, contrast: float) -> list[str]:
    """Human-readable defect tags, in a fixed order."""
    issues: list[str] = []
    if sharpness < BLURRY_BELOW:
        issues.append("Blurry")
    elif sharpness < SLIGHTLY_BLURRY_BELOW:
        issues.append("Slightly blurry")
    if exposure < POOR_EXPOSURE_BELOW:
        issues.append("Poor exposure")
    if exposure > OVEREXPOSED_ABOVE:
        issues.append("Overexposed")
    if contrast < LOW_CONTRAST_BELOW:
        issues.append("Low contrast")
    return issues


def extract_metrics(
    buffer: PixelBuffer,
    settings: Settings | None = None,
    natural_size: tuple[int, int] | None = None,
) -> MetricResult:
    """Compute every quality metric for one decoded image.

    Args:
        buffer: Decoded pixels (possibly downscaled for analysis).
        settings: Calibration source. Defaults to built-in constants.
        natural_size: (width, height) of the original image, reported in
            the result instead of the buffer's own dimensions.

    Raises:
        DecodeError: If the buffer has zero width or height.
        ExtractionError: On any failure inside metric computation.
    """
    if buffer.is_degenerate:
        raise DecodeError(f"Degenerate pixel buffer {buffer.width}x{buffer.height}")

    sharpness_divisor = (
        DEFAULT_SHARPNESS_DIVISOR if settings is None else settings.sharpness_divisor
    )
    contrast_divisor = (
        DEFAULT_CONTRAST_DIVISOR if settings is None else settings.contrast_divisor
    )
    width, height = natural_size or (buffer.width, buffer.height)

    try:
        lum = luminance(buffer)
        sharpness = sharpness_score(lum, sharpness_divisor)
        exposure = exposure_score(lum)
        contrast = contrast_score(lum, contrast_divisor)
        fingerprint = difference_hash(lum)
    except Exception as exc:
        raise ExtractionError(f"Metric computation failed: {exc}") from exc

    result = MetricResult(
        sharpness=sharpness,
        exposure=exposure,
        contrast=contrast,
        fingerprint=fingerprint,
        issues=detect_issues(sharpness, exposure, contrast),
        width=width,
        height=height,
    )
    logger.debug(
        "Metrics: sharpness=%.2f exposure=%.2f contrast=%.2f overall=%d hash=%s",
        result.sharpness, result.exposure, result.contrast,
        result.overall, result.fingerprint,
    )
    return result
