# src/photocull/tracking/models.py
"""Analytics models: BatchAnalytics and its parts."""

from __future__ import annotations

from pydantic import BaseModel, Field

from photocull.core.models import round_half_up


class IssueCount(BaseModel):
    """How many images of a batch carry one issue label."""

    issue: str
    count: int


class ScoreAverages(BaseModel):
    """Mean metric scores over analyzed images, rounded to 1 dp."""

    sharpness: float = 0.0
    exposure: float = 0.0
    contrast: float = 0.0
    overall: float = 0.0


class BatchAnalytics(BaseModel):
    """Aggregate view of a batch's image records."""

    total_images: int = 0
    accepted: int = 0
    rejected: int = 0
    review: int = 0
    duplicate_images: int = 0
    issues: list[IssueCount] = Field(default_factory=list)
    score_bands: dict[str, int] = Field(default_factory=dict)
    averages: ScoreAverages = Field(default_factory=ScoreAverages)

    @property
    def acceptance_rate(self) -> float:
        """Percentage of images accepted, 0 for an empty batch."""
        if self.total_images == 0:
            return 0.0
        return round_half_up(100 * self.accepted / self.total_images, 1)
