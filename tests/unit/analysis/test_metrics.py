# tests/unit/analysis/test_metrics.py
"""Tests for analysis/metrics.py: sharpness, exposure, contrast, dHash, issues."""

from __future__ import annotations

import numpy as np
import pytest

from photocull.analysis.metrics import (
    contrast_score,
    detect_issues,
    difference_hash,
    exposure_score,
    extract_metrics,
    laplacian_variance,
    luminance,
    sharpness_score,
)
from photocull.config.settings import Settings
from photocull.core.errors import DecodeError
from photocull.core.models import PixelBuffer


class TestLuminance:
    def test_weights(self):
        buf = PixelBuffer(width=1, height=1, channels=3, data=bytes([255, 0, 0]))
        assert luminance(buf)[0, 0] == pytest.approx(0.299 * 255)

    def test_alpha_ignored(self):
        opaque = PixelBuffer(width=1, height=1, data=bytes([10, 20, 30, 255]))
        clear = PixelBuffer(width=1, height=1, data=bytes([10, 20, 30, 0]))
        assert luminance(opaque)[0, 0] == luminance(clear)[0, 0]


class TestSharpness:
    def test_flat_has_no_edges(self, flat):
        assert sharpness_score(luminance(flat)) == 0.0

    def test_checkerboard_saturates(self, checker):
        assert laplacian_variance(luminance(checker)) == pytest.approx(1020.0**2)
        assert sharpness_score(luminance(checker)) == 100.0

    def test_narrow_image_has_no_interior(self):
        lum = np.array([[0.0, 255.0], [255.0, 0.0]])
        assert laplacian_variance(lum) == 0.0

    def test_divisor_scales(self, make_pixels):
        lum = luminance(make_pixels("stripes"))
        # stripes: Laplacian response is +/-32, variance 1024
        assert sharpness_score(lum, divisor=2048.0) == pytest.approx(50.0)


class TestExposure:
    def test_mid_gray_is_ideal(self, flat):
        assert exposure_score(luminance(flat)) == 100.0

    def test_black_clamps_to_zero(self, make_pixels):
        assert exposure_score(luminance(make_pixels("black"))) == 0.0

    def test_clipping_penalty(self, checker):
        # base 100 - 0.5/1.28, minus (0.5-0.3)*100 for each clipped side
        assert exposure_score(luminance(checker)) == pytest.approx(59.61)


class TestContrast:
    def test_flat(self, flat):
        assert contrast_score(luminance(flat)) == 0.0

    def test_stripes(self, make_pixels):
        # std 8 / 64 * 100
        assert contrast_score(luminance(make_pixels("stripes"))) == pytest.approx(12.5)


class TestDifferenceHash:
    def test_format(self, checker):
        fp = difference_hash(luminance(checker))
        assert len(fp) == 16
        assert fp == fp.lower()
        int(fp, 16)

    def test_known_patterns(self, checker, flat, make_pixels):
        assert difference_hash(luminance(flat)) == "0000000000000000"
        assert difference_hash(luminance(checker)) == "aa55aa5555aa55aa"
        assert difference_hash(luminance(make_pixels("stripes"))) == "aaaaaaaaaaaaaaaa"

    def test_deterministic(self, make_pixels):
        a = difference_hash(luminance(make_pixels("checker", size=37)))
        b = difference_hash(luminance(make_pixels("checker", size=37)))
        assert a == b

    def test_tiny_image(self):
        lum = np.array([[10.0]])
        assert difference_hash(lum) == "0000000000000000"


class TestDetectIssues:
    def test_clean(self):
        assert detect_issues(80, 70, 60) == []

    def test_order_and_tiers(self):
        assert detect_issues(10, 20, 10) == ["Blurry", "Poor exposure", "Low contrast"]
        assert detect_issues(40, 95, 50) == ["Slightly blurry", "Overexposed"]

    def test_boundaries(self):
        assert detect_issues(30, 40, 30) == ["Slightly blurry"]
        assert detect_issues(50, 90, 30) == []


class TestExtractMetrics:
    def test_checkerboard(self, checker):
        r = extract_metrics(checker)
        assert r.sharpness == 100.0
        assert r.contrast == 100.0
        assert r.exposure == pytest.approx(59.61)
        assert r.overall == 86
        assert r.issues == []
        assert (r.width, r.height) == (10, 10)

    def test_flat_is_blurry(self, flat):
        r = extract_metrics(flat)
        assert r.sharpness == 0.0
        assert "Blurry" in r.issues
        assert r.overall == 35

    def test_scores_in_range(self, make_pixels):
        for kind in ("checker", "stripes", "flat", "black"):
            r = extract_metrics(make_pixels(kind, size=16))
            for score in (r.sharpness, r.exposure, r.contrast, r.overall):
                assert 0 <= score <= 100

    def test_natural_size_reported(self, checker):
        r = extract_metrics(checker, natural_size=(4000, 3000))
        assert (r.width, r.height) == (4000, 3000)

    def test_settings_divisors(self, make_pixels):
        s = Settings(_env_file=None, contrast_divisor=16.0)
        r = extract_metrics(make_pixels("stripes"), s)
        assert r.contrast == pytest.approx(50.0)

    def test_degenerate_buffer(self):
        with pytest.raises(DecodeError, match="Degenerate"):
            extract_metrics(PixelBuffer(width=0, height=0, data=b""))
