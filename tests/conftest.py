# tests/conftest.py
"""Shared test fixtures for all unit and integration tests.

Provides synthetic pixel buffers with hand-checkable metrics, a decoder that
serves them by filename, settings isolated from .env, and an in-memory
record store. No network, no real photos.

Patterns (10x10, gray levels):
    checker  0/255 checkerboard: sharp, contrasty, overall 86 (accepted),
             fingerprint aa55aa5555aa55aa
    stripes  120/136 vertical stripes: overall 74 (review),
             fingerprint aaaaaaaaaaaaaaaa
    flat     uniform 128: overall 35 (rejected), fingerprint 0000000000000000
    black    uniform 0: overall 0 (rejected)
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from photocull.analysis.decoder import DecodedImage
from photocull.batch.models import ImageFile
from photocull.config.settings import Settings
from photocull.core.models import PixelBuffer
from photocull.store.memory_store import MemoryRecordStore


def _pattern(kind: str, size: int) -> np.ndarray:
    ys, xs = np.indices((size, size))
    if kind == "checker":
        gray = np.where((xs + ys) % 2 == 1, 255, 0)
    elif kind == "stripes":
        gray = np.where(xs % 2 == 0, 120, 136)
    elif kind == "flat":
        gray = np.full((size, size), 128)
    elif kind == "black":
        gray = np.zeros((size, size))
    else:
        raise ValueError(f"unknown pattern {kind!r}")
    return np.repeat(gray[..., None], 3, axis=2).astype(np.uint8)


# === FIXTURES: Pixels ===


@pytest.fixture
def make_pixels() -> Callable[..., PixelBuffer]:
    """Factory: make_pixels("checker" | "stripes" | "flat" | "black", size=10)."""
    def _make(kind: str, size: int = 10) -> PixelBuffer:
        return PixelBuffer.from_array(_pattern(kind, size))
    return _make


@pytest.fixture
def checker(make_pixels) -> PixelBuffer:
    return make_pixels("checker")


@pytest.fixture
def flat(make_pixels) -> PixelBuffer:
    return make_pixels("flat")


# === FIXTURES: Files and decoding ===


@pytest.fixture
def pattern_decoder(make_pixels) -> Callable[[ImageFile], DecodedImage]:
    """Decoder that reads the pattern name from the filename prefix.

    ``checker_03.jpg`` decodes to the checkerboard; ``broken_*`` raises.
    """
    def _decode(file: ImageFile) -> DecodedImage:
        kind = file.filename.split("_", 1)[0]
        if kind == "broken":
            raise OSError("truncated file")
        pixels = make_pixels(kind)
        return DecodedImage(pixels=pixels, natural_width=4000, natural_height=3000)
    return _decode


@pytest.fixture
def make_files() -> Callable[..., list[ImageFile]]:
    """Factory: make_files("checker", "flat", ...) -> in-memory ImageFiles."""
    def _make(*kinds: str) -> list[ImageFile]:
        return [
            ImageFile.from_bytes(f"{kind}_{i:03d}.jpg", b"\xff\xd8fake")
            for i, kind in enumerate(kinds)
        ]
    return _make


@pytest.fixture
def png_dir(tmp_path: Path) -> Path:
    """Directory with real PNG files on disk plus a non-image file."""
    root = tmp_path / "shoot"
    (root / "day2").mkdir(parents=True)
    Image.fromarray(_pattern("checker", 10)).save(root / "a_checker.png")
    Image.fromarray(_pattern("flat", 10)).save(root / "b_flat.png")
    Image.fromarray(_pattern("stripes", 10)).save(root / "day2" / "c_stripes.png")
    (root / "notes.txt").write_text("not an image", encoding="utf-8")
    return root


# === FIXTURES: Config and store ===


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, ignoring any local .env."""
    return Settings(_env_file=None)


@pytest.fixture
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()
