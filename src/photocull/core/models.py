# src/photocull/core/models.py
"""Shared domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

import numpy as np
from pydantic import BaseModel, Field, computed_field, model_validator

from photocull.core.errors import DecodeError, InvalidTransitionError

Disposition = Literal["accepted", "review", "rejected"]
ItemStatus = Literal["pending", "processing", "completed", "error"]
BatchStatus = Literal["processing", "completed", "cancelled"]

# Weights of the overall score; they sum to 1.0.
SHARPNESS_WEIGHT = 0.35
EXPOSURE_WEIGHT = 0.35
CONTRAST_WEIGHT = 0.30


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round half away from zero for non-negative scores.

    The builtin round() rounds half to even, which would move boundary
    scores such as 74.5 down instead of up.
    """
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def weighted_overall(sharpness: float, exposure: float, contrast: float) -> int:
    """Overall score: rounded weighted sum of the three sub-scores."""
    return int(
        round_half_up(
            sharpness * SHARPNESS_WEIGHT
            + exposure * EXPOSURE_WEIGHT
            + contrast * CONTRAST_WEIGHT
        )
    )


# === PIXELS ===


@dataclass(frozen=True)
class PixelBuffer:
    """Immutable decoded raster with interleaved RGB or RGBA bytes.

    Zero width or height is representable so the extractor can reject it;
    a byte length that disagrees with the geometry is rejected here.
    """

    width: int
    height: int
    data: bytes
    channels: int = 4

    def __post_init__(self) -> None:
        if self.channels not in (3, 4):
            raise DecodeError(f"Unsupported channel count: {self.channels}")
        if self.width < 0 or self.height < 0:
            raise DecodeError(f"Negative dimensions: {self.width}x{self.height}")
        expected = self.width * self.height * self.channels
        if len(self.data) != expected:
            raise DecodeError(
                f"Buffer holds {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height}x{self.channels}"
            )

    @property
    def is_degenerate(self) -> bool:
        return self.width == 0 or self.height == 0

    def to_array(self) -> np.ndarray:
        """Read-only (height, width, channels) uint8 view of the pixels."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            self.height, self.width, self.channels
        )

    @classmethod
    def from_array(cls, array: np.ndarray) -> PixelBuffer:
        """Build a buffer from an (H, W, 3|4) uint8 array."""
        if array.ndim != 3:
            raise DecodeError(f"Expected 3D array, got {array.ndim}D")
        height, width, channels = array.shape
        return cls(
            width=width,
            height=height,
            channels=channels,
            data=np.ascontiguousarray(array, dtype=np.uint8).tobytes(),
        )


# === ANALYSIS ===


class MetricResult(BaseModel):
    """Per-image quality metrics and detected defects.

    ``overall`` is derived from the three sub-scores on every access and
    is never stored on its own.
    """

    model_config = {"frozen": True}

    sharpness: float = Field(ge=0.0, le=100.0)
    exposure: float = Field(ge=0.0, le=100.0)
    contrast: float = Field(ge=0.0, le=100.0)
    fingerprint: str
    issues: list[str] = Field(default_factory=list)
    width: int
    height: int
    has_face: bool = False  # Capability flag; face detection is not implemented.

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall(self) -> int:
        return weighted_overall(self.sharpness, self.exposure, self.contrast)


# === BATCH STATE ===

_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing"}),
    "processing": frozenset({"completed", "error"}),
    "completed": frozenset(),
    "error": frozenset(),
}


class ProcessingItem(BaseModel):
    """Per-file analysis state: pending -> processing -> completed | error."""

    index: int
    filename: str
    file_size: int = 0
    status: ItemStatus = "pending"
    result: MetricResult | None = None
    disposition: Disposition | None = None
    image_id: str | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "error")

    def _transition(self, target: ItemStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Item {self.index} ({self.filename}): {self.status} -> {target}"
            )
        self.status = target

    def start(self) -> None:
        self._transition("processing")

    def complete(
        self,
        result: MetricResult,
        disposition: Disposition,
        image_id: str | None,
    ) -> None:
        self._transition("completed")
        self.result = result
        self.disposition = disposition
        self.image_id = image_id

    def fail(self, error: str) -> None:
        self._transition("error")
        self.error = error


class BatchProgress(BaseModel):
    """Running counters for one batch run.

    Errors count toward ``processed`` but toward no disposition bucket.
    """

    total: int = 0
    processed: int = 0
    accepted: int = 0
    rejected: int = 0
    review: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def errors(self) -> int:
        return self.processed - self.accepted - self.rejected - self.review

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return int(round_half_up(100 * self.processed / self.total))

    def record(self, disposition: Disposition | None) -> None:
        """Count one settled item; None means the item errored."""
        self.processed += 1
        if disposition == "accepted":
            self.accepted += 1
        elif disposition == "rejected":
            self.rejected += 1
        elif disposition == "review":
            self.review += 1


# === DUPLICATES ===


class DuplicateCandidate(BaseModel):
    """One successfully analyzed image as seen by the clusterer."""

    id: str
    fingerprint: str
    score: float


class DuplicateGroup(BaseModel):
    """Near-identical images with their computed best representative.

    ``similarity`` is the minimum anchor-to-member similarity observed
    while the group was built. A human choice lives in
    ``override_best_id`` and never replaces ``best_id``.
    """

    members: list[DuplicateCandidate]
    best_id: str
    similarity: float
    override_best_id: str | None = None

    @model_validator(mode="after")
    def validate_members(self) -> DuplicateGroup:
        if len(self.members) < 2:
            raise ValueError("a duplicate group needs at least 2 members")
        ids = {m.id for m in self.members}
        if self.best_id not in ids:
            raise ValueError(f"best_id {self.best_id!r} is not a member")
        if self.override_best_id is not None and self.override_best_id not in ids:
            raise ValueError(f"override_best_id {self.override_best_id!r} is not a member")
        return self

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    @property
    def effective_best_id(self) -> str:
        return self.override_best_id or self.best_id
