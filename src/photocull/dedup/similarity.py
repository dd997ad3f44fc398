# src/photocull/dedup/similarity.py
"""Bit-level comparison of hex-encoded perceptual fingerprints."""

from __future__ import annotations

import math
import re

from photocull.core.models import round_half_up

BITS_PER_HEX_CHAR = 4

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def hamming_distance(hash_a: str, hash_b: str) -> float:
    """Count differing bits between two hex fingerprints.

    Fingerprints of unequal length (or that are not plain hex digits) are
    not comparable and are infinitely far apart.
    """
    if len(hash_a) != len(hash_b):
        return math.inf
    if not (_HEX_RE.fullmatch(hash_a) and _HEX_RE.fullmatch(hash_b)):
        return math.inf
    if not hash_a:
        return 0
    return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")


def similarity(hash_a: str, hash_b: str) -> float:
    """Percentage of matching bits, rounded to 2 decimals.

    Identical fingerprints score 100; incomparable ones score 0.
    """
    distance = hamming_distance(hash_a, hash_b)
    if math.isinf(distance):
        return 0.0
    total_bits = len(hash_a) * BITS_PER_HEX_CHAR
    if total_bits == 0:
        return 100.0
    return round_half_up((total_bits - distance) / total_bits * 100.0, 2)
