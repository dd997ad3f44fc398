# src/photocull/store/models.py
"""Record store models: BatchRecord, ImageRecord, DuplicateGroupRecord."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from photocull.core.models import BatchStatus, Disposition


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BatchRecord(BaseModel):
    """Persisted summary of one batch run."""

    id: str
    name: str
    total_images: int
    processed_images: int = 0
    accepted_images: int = 0
    rejected_images: int = 0
    review_images: int = 0
    status: BatchStatus = "processing"
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class ImageRecord(BaseModel):
    """Persisted analysis result for one image."""

    id: str
    batch_id: str
    filename: str
    file_size: int | None = None
    width: int | None = None
    height: int | None = None
    sharpness_score: float | None = None
    exposure_score: float | None = None
    contrast_score: float | None = None
    overall_score: int | None = None
    fingerprint: str | None = None
    has_face: bool = False
    status: Disposition
    issues: list[str] = Field(default_factory=list)
    duplicate_group_id: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class DuplicateGroupRecord(BaseModel):
    """Persisted duplicate group.

    ``best_image_id`` is the computed best; ``override_best_image_id`` is
    set only by a reviewer.
    """

    id: str
    batch_id: str
    image_count: int
    best_image_id: str | None = None
    override_best_image_id: str | None = None
    similarity: float | None = None
    created_at: datetime = Field(default_factory=_now)

    @property
    def effective_best_image_id(self) -> str | None:
        return self.override_best_image_id or self.best_image_id
