# src/photocull/dedup/clusterer.py
"""Duplicate clusterer: greedy anchored grouping of near-identical images.

Items are visited in input order. Each unassigned item anchors a new group
and pulls in every later unassigned item whose fingerprint is at least
``threshold`` percent similar to the anchor's. Members are compared to the
anchor only, never to each other, so a group's ``similarity`` is the
lowest anchor-to-member similarity seen, not a pairwise bound.

Cost is O(n^2) fingerprint comparisons, fine for a few thousand images.
Bucketing by hash prefix would be the place to start for larger batches.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from photocull.core.models import DuplicateCandidate, DuplicateGroup
from photocull.dedup.similarity import similarity

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 85.0


def select_best(members: list[DuplicateCandidate]) -> DuplicateCandidate:
    """Highest score wins; ties go to the earliest member."""
    best = members[0]
    for member in members[1:]:
        if member.score > best.score:
            best = member
    return best


def find_duplicate_groups(
    candidates: Iterable[DuplicateCandidate],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DuplicateGroup]:
    """Partition candidates into groups of two or more similar images.

    Args:
        candidates: Analyzed images in stable input order.
        threshold: Minimum similarity percentage to join an anchor's group.

    Returns:
        Groups in anchor order. Singletons are never emitted.
    """
    items = list(candidates)
    assigned = [False] * len(items)
    groups: list[DuplicateGroup] = []

    for i, anchor in enumerate(items):
        if assigned[i]:
            continue

        members = [anchor]
        group_similarity = 100.0
        for j in range(i + 1, len(items)):
            if assigned[j]:
                continue
            score = similarity(anchor.fingerprint, items[j].fingerprint)
            if score >= threshold:
                members.append(items[j])
                assigned[j] = True
                group_similarity = min(group_similarity, score)

        if len(members) < 2:
            continue

        assigned[i] = True
        best = select_best(members)
        groups.append(
            DuplicateGroup(
                members=members,
                best_id=best.id,
                similarity=group_similarity,
            )
        )

    logger.info(
        "Duplicate scan: %d candidates, %d groups at threshold %.1f",
        len(items), len(groups), threshold,
    )
    return groups
