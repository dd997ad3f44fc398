# src/photocull/tracking/analytics.py
"""Batch analytics aggregator.

Builds a BatchAnalytics summary from a batch's image records: disposition
counts, issue frequency, a score-band histogram and average scores.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from photocull.analysis.classifier import score_band
from photocull.core.models import round_half_up
from photocull.store.models import ImageRecord
from photocull.tracking.models import BatchAnalytics, IssueCount, ScoreAverages

logger = logging.getLogger(__name__)

SCORE_BANDS: tuple[str, ...] = ("0-25", "26-50", "51-75", "76-100")


def compute_batch_analytics(images: Sequence[ImageRecord]) -> BatchAnalytics:
    """Aggregate image records into batch analytics.

    Args:
        images: Image records of one batch (any order).

    Returns:
        BatchAnalytics. Issue counts are sorted by count descending, then
        by label; every score band is present, even when empty.
    """
    status_counts = Counter(img.status for img in images)
    issue_counts = Counter(issue for img in images for issue in img.issues)

    bands = {band: 0 for band in SCORE_BANDS}
    for img in images:
        if img.overall_score is not None:
            bands[score_band(img.overall_score)] += 1

    analytics = BatchAnalytics(
        total_images=len(images),
        accepted=status_counts["accepted"],
        rejected=status_counts["rejected"],
        review=status_counts["review"],
        duplicate_images=sum(1 for img in images if img.duplicate_group_id),
        issues=[
            IssueCount(issue=issue, count=count)
            for issue, count in sorted(issue_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
        score_bands=bands,
        averages=_averages(images),
    )
    logger.debug(
        "Analytics over %d images: %d issue types", analytics.total_images, len(analytics.issues),
    )
    return analytics


def _averages(images: Sequence[ImageRecord]) -> ScoreAverages:
    scored = [img for img in images if img.overall_score is not None]
    if not scored:
        return ScoreAverages()

    def mean(values: list[float]) -> float:
        return round_half_up(sum(values) / len(values), 1)

    return ScoreAverages(
        sharpness=mean([img.sharpness_score or 0.0 for img in scored]),
        exposure=mean([img.exposure_score or 0.0 for img in scored]),
        contrast=mean([img.contrast_score or 0.0 for img in scored]),
        overall=mean([float(img.overall_score or 0) for img in scored]),
    )
