# tests/unit/tracking/test_analytics.py
"""Tests for tracking/analytics.py: batch analytics aggregation."""

from __future__ import annotations

import pytest

from photocull.store.models import ImageRecord
from photocull.tracking.analytics import compute_batch_analytics
from photocull.tracking.models import BatchAnalytics, IssueCount


def _image(id_: str, status: str, overall: int, issues=(), group=None, **scores) -> ImageRecord:
    return ImageRecord(
        id=id_, batch_id="b", filename=f"{id_}.jpg", status=status,
        overall_score=overall, issues=list(issues), duplicate_group_id=group,
        sharpness_score=scores.get("sharpness", 50.0),
        exposure_score=scores.get("exposure", 50.0),
        contrast_score=scores.get("contrast", 50.0),
    )


class TestComputeBatchAnalytics:
    def test_empty(self):
        a = compute_batch_analytics([])
        assert a.total_images == 0
        assert a.issues == []
        assert a.score_bands == {"0-25": 0, "26-50": 0, "51-75": 0, "76-100": 0}
        assert a.averages.overall == 0.0
        assert a.acceptance_rate == 0.0

    def test_counts_and_bands(self):
        a = compute_batch_analytics([
            _image("1", "accepted", 90),
            _image("2", "accepted", 76),
            _image("3", "review", 60),
            _image("4", "rejected", 10, group="g"),
        ])
        assert (a.accepted, a.review, a.rejected) == (2, 1, 1)
        assert a.score_bands == {"0-25": 1, "26-50": 0, "51-75": 1, "76-100": 2}
        assert a.duplicate_images == 1
        assert a.acceptance_rate == 50.0

    def test_issue_frequency_descending(self):
        a = compute_batch_analytics([
            _image("1", "rejected", 10, issues=["Blurry", "Low contrast"]),
            _image("2", "rejected", 20, issues=["Blurry"]),
            _image("3", "review", 55, issues=["Overexposed"]),
        ])
        assert [(i.issue, i.count) for i in a.issues] == [
            ("Blurry", 2), ("Low contrast", 1), ("Overexposed", 1),
        ]

    def test_averages(self):
        a = compute_batch_analytics([
            _image("1", "accepted", 80, sharpness=90.0, exposure=70.0, contrast=60.0),
            _image("2", "review", 61, sharpness=40.0, exposure=80.0, contrast=30.0),
        ])
        assert a.averages.sharpness == pytest.approx(65.0)
        assert a.averages.exposure == pytest.approx(75.0)
        assert a.averages.contrast == pytest.approx(45.0)
        assert a.averages.overall == pytest.approx(70.5)


class TestBatchAnalyticsModel:
    def test_acceptance_rate_rounds_half_up(self):
        # 1/16 = 6.25%
        images = [_image("0", "accepted", 90)] + [
            _image(str(i), "rejected", 10) for i in range(1, 16)
        ]
        assert compute_batch_analytics(images).acceptance_rate == 6.3

    def test_defaults_not_shared(self):
        first = BatchAnalytics()
        first.issues.append(IssueCount(issue="Blurry", count=1))
        first.score_bands["0-25"] = 1
        first.averages.overall = 50.0

        second = BatchAnalytics()
        assert second.issues == []
        assert second.score_bands == {}
        assert second.averages.overall == 0.0
