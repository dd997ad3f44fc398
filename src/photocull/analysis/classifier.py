# src/photocull/analysis/classifier.py
"""Map an overall quality score to a disposition."""

from __future__ import annotations

from photocull.config.settings import Settings
from photocull.core.models import Disposition

DEFAULT_ACCEPT_THRESHOLD = 75.0
DEFAULT_REJECT_THRESHOLD = 50.0

# Analytics buckets: (upper bound inclusive, label)
_SCORE_BANDS: tuple[tuple[float, str], ...] = (
    (25.0, "0-25"),
    (50.0, "26-50"),
    (75.0, "51-75"),
)
_TOP_BAND = "76-100"


def disposition(
    score: float,
    accept_threshold: float = DEFAULT_ACCEPT_THRESHOLD,
    reject_threshold: float = DEFAULT_REJECT_THRESHOLD,
) -> Disposition:
    """Classify a score: >= accept is accepted, < reject is rejected, else review.

    Every real score maps to exactly one disposition and the mapping is
    monotonic in the score.
    """
    if score >= accept_threshold:
        return "accepted"
    if score < reject_threshold:
        return "rejected"
    return "review"


def classify(score: float, settings: Settings | None = None) -> Disposition:
    """Classify using the thresholds configured in settings."""
    if settings is None:
        return disposition(score)
    return disposition(
        score,
        accept_threshold=settings.accept_threshold,
        reject_threshold=settings.reject_threshold,
    )


def score_band(score: float) -> str:
    """Histogram bucket label used by batch analytics."""
    for upper, label in _SCORE_BANDS:
        if score <= upper:
            return label
    return _TOP_BAND
