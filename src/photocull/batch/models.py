# src/photocull/batch/models.py
"""Batch processing models: ImageFile, ItemOutcome, BatchRunResult."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from photocull.core.models import (
    BatchProgress,
    Disposition,
    DuplicateGroup,
    MetricResult,
    ProcessingItem,
)


class ImageFile(BaseModel):
    """One submitted image, either on disk or already in memory."""

    filename: str
    size_bytes: int = 0
    path: Path | None = None
    data: bytes | None = None

    @model_validator(mode="after")
    def validate_source(self) -> ImageFile:
        if (self.path is None) == (self.data is None):
            raise ValueError("exactly one of path or data must be set")
        return self

    @classmethod
    def from_path(cls, path: Path) -> ImageFile:
        return cls(filename=path.name, size_bytes=path.stat().st_size, path=path)

    @classmethod
    def from_bytes(cls, filename: str, data: bytes) -> ImageFile:
        return cls(filename=filename, size_bytes=len(data), data=data)

    @property
    def source(self) -> Path | bytes:
        """What the decoder should read: the path or the raw bytes."""
        return self.path if self.path is not None else self.data  # type: ignore[return-value]


@dataclass
class ItemOutcome:
    """What one concurrent item task hands back to the orchestrator."""

    index: int
    result: MetricResult | None = None
    disposition: Disposition | None = None
    image_id: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.result is not None


class BatchRunResult(BaseModel):
    """Summary of one batch run.

    ``status`` is "empty" when no files were submitted and "failed" when
    the batch record could not be created; in both cases ``batch_id`` is
    None and ``error`` explains why.
    """

    batch_id: str | None
    status: Literal["completed", "cancelled", "empty", "failed"]
    progress: BatchProgress = Field(default_factory=BatchProgress)
    items: list[ProcessingItem] = Field(default_factory=list)
    groups: list[DuplicateGroup] = Field(default_factory=list)
    duration_seconds: float = 0.0
    error: str | None = None
