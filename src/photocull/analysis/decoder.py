# src/photocull/analysis/decoder.py
"""Image decoder: file bytes or path -> PixelBuffer via Pillow.

Images are turned upright according to their EXIF orientation tag, then
downscaled so that neither side exceeds ``max_dimension``. The natural size
is the upright size before downscaling.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from photocull.core.errors import DecodeError
from photocull.core.models import PixelBuffer, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIMENSION = 800

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif", ".tif", ".tiff",
})


@dataclass(frozen=True)
class DecodedImage:
    """Analysis-ready pixels plus the size of the image as stored."""

    pixels: PixelBuffer
    natural_width: int
    natural_height: int


def analysis_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale (width, height) to fit within max_dimension, keeping aspect ratio."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = min(max_dimension / width, max_dimension / height)
    return (
        max(1, int(round_half_up(width * ratio))),
        max(1, int(round_half_up(height * ratio))),
    )


def _open(source: bytes | str | Path) -> Image.Image:
    if isinstance(source, bytes):
        return Image.open(io.BytesIO(source))
    path = Path(source)
    if not path.exists():
        raise DecodeError(f"Image file not found: {path}")
    return Image.open(path)


def decode_image(
    source: bytes | str | Path,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
) -> DecodedImage:
    """Decode an image into RGB pixels sized for analysis.

    Raises:
        DecodeError: If the bytes are not a readable image.
    """
    try:
        with _open(source) as img:
            img.load()
            upright = ImageOps.exif_transpose(img)
            natural_width, natural_height = upright.size
            if natural_width == 0 or natural_height == 0:
                raise DecodeError(f"Image has no pixels: {natural_width}x{natural_height}")

            rgb = upright if upright.mode == "RGB" else upright.convert("RGB")
            target = analysis_size(natural_width, natural_height, max_dimension)
            if target != rgb.size:
                rgb = rgb.resize(target, Image.Resampling.BILINEAR)

            pixels = PixelBuffer(
                width=rgb.width,
                height=rgb.height,
                channels=3,
                data=rgb.tobytes(),
            )
    except DecodeError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Cannot identify image: {exc}") from exc
    except (OSError, ValueError, SyntaxError) as exc:
        # Pillow reports truncated files as OSError, broken PNG chunks as SyntaxError
        raise DecodeError(f"Failed to decode image: {exc}") from exc

    if (pixels.width, pixels.height) != (natural_width, natural_height):
        logger.debug(
            "Downscaled %dx%d -> %dx%d for analysis",
            natural_width, natural_height, pixels.width, pixels.height,
        )
    return DecodedImage(
        pixels=pixels,
        natural_width=natural_width,
        natural_height=natural_height,
    )
