# tests/unit/analysis/test_classifier.py
"""Tests for analysis/classifier.py: dispositions, thresholds and score bands."""

from __future__ import annotations

import pytest

from photocull.analysis.classifier import classify, disposition, score_band
from photocull.config.settings import Settings


class TestDisposition:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, "accepted"),
            (75, "accepted"),
            (74.999, "review"),
            (50, "review"),
            (49.999, "rejected"),
            (0, "rejected"),
        ],
    )
    def test_boundaries(self, score, expected):
        assert disposition(score) == expected

    def test_monotonic(self):
        order = {"rejected": 0, "review": 1, "accepted": 2}
        ranks = [order[disposition(s / 4)] for s in range(0, 401)]
        assert ranks == sorted(ranks)

    def test_custom_thresholds(self):
        assert disposition(60, accept_threshold=60, reject_threshold=40) == "accepted"
        assert disposition(39, accept_threshold=60, reject_threshold=40) == "rejected"


class TestClassify:
    def test_defaults_without_settings(self):
        assert classify(80) == "accepted"

    def test_uses_settings(self):
        s = Settings(_env_file=None, accept_threshold=90, reject_threshold=20)
        assert classify(80, s) == "review"
        assert classify(19, s) == "rejected"


class TestScoreBand:
    @pytest.mark.parametrize(
        "score,band",
        [(0, "0-25"), (25, "0-25"), (26, "26-50"), (50, "26-50"),
         (51, "51-75"), (75, "51-75"), (76, "76-100"), (100, "76-100")],
    )
    def test_bands(self, score, band):
        assert score_band(score) == band
