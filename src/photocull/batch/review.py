# src/photocull/batch/review.py
"""Duplicate review operations applied after a batch has been analyzed.

A reviewer resolves each duplicate group by keeping one image and rejecting
the rest, by overriding the computed best image, or by dismissing the group
as a false positive. Batch disposition counters are recomputed from the
image records after every status change so the batch summary stays
consistent with its images.
"""

from __future__ import annotations

import logging

from photocull.core.errors import ReviewError
from photocull.core.models import Disposition
from photocull.store.base_record_store import BaseRecordStore
from photocull.store.models import DuplicateGroupRecord, ImageRecord

logger = logging.getLogger(__name__)


class DuplicateReviewService:
    """Review actions over duplicate groups and image dispositions."""

    def __init__(self, store: BaseRecordStore) -> None:
        self._store = store

    async def keep_best(self, group_id: str, image_id: str) -> list[str]:
        """Accept ``image_id``, reject every other member of the group.

        Returns:
            Ids of the images that were rejected.

        Raises:
            ReviewError: Unknown group, or image is not a member.
        """
        group, members = await self._load_group(group_id)
        member_ids = [m.id for m in members]
        if image_id not in member_ids:
            raise ReviewError(f"Image {image_id} is not a member of group {group_id}")

        losers = [m for m in member_ids if m != image_id]
        await self._store.update_image_status([image_id], "accepted")
        if losers:
            await self._store.update_image_status(losers, "rejected")
        await self._store.set_group_best(group_id, image_id)
        await self._refresh_batch_counters(group.batch_id)

        logger.info(
            "Group %s resolved: kept %s, rejected %d", group_id, image_id, len(losers),
        )
        return losers

    async def select_best(self, group_id: str, image_id: str) -> None:
        """Override the computed best image without changing dispositions."""
        _, members = await self._load_group(group_id)
        if image_id not in {m.id for m in members}:
            raise ReviewError(f"Image {image_id} is not a member of group {group_id}")
        await self._store.set_group_best(group_id, image_id)
        logger.info("Group %s best overridden to %s", group_id, image_id)

    async def reject_image(self, image_id: str) -> None:
        image = await self._store.get_image(image_id)
        if image is None:
            raise ReviewError(f"Unknown image: {image_id}")
        await self._store.update_image_status([image_id], "rejected")
        await self._refresh_batch_counters(image.batch_id)

    async def dismiss_group(self, group_id: str) -> None:
        """Treat the group as a false positive: unlink its images and drop it."""
        group = await self._store.get_duplicate_group(group_id)
        if group is None:
            raise ReviewError(f"Unknown duplicate group: {group_id}")
        await self._store.delete_duplicate_group(group_id)
        logger.info("Group %s dismissed (%d images)", group_id, group.image_count)

    async def bulk_update_status(
        self, image_ids: list[str], status: Disposition
    ) -> int:
        """Set one disposition on many images; returns the number updated."""
        if not image_ids:
            return 0
        images: list[ImageRecord] = []
        for image_id in image_ids:
            image = await self._store.get_image(image_id)
            if image is None:
                raise ReviewError(f"Unknown image: {image_id}")
            images.append(image)

        await self._store.update_image_status(list(image_ids), status)
        for batch_id in sorted({img.batch_id for img in images}):
            await self._refresh_batch_counters(batch_id)
        return len(images)

    async def _load_group(
        self, group_id: str
    ) -> tuple[DuplicateGroupRecord, list[ImageRecord]]:
        group = await self._store.get_duplicate_group(group_id)
        if group is None:
            raise ReviewError(f"Unknown duplicate group: {group_id}")
        return group, await self._store.list_group_images(group_id)

    async def _refresh_batch_counters(self, batch_id: str) -> None:
        # processed and status describe the run, not the review; keep them
        batch = await self._store.get_batch(batch_id)
        if batch is None:
            logger.warning("Batch %s vanished during review", batch_id)
            return
        images = await self._store.list_images(batch_id)
        counts = {"accepted": 0, "rejected": 0, "review": 0}
        for image in images:
            counts[image.status] += 1
        await self._store.update_batch_counters(
            batch_id,
            batch.processed_images,
            counts["accepted"],
            counts["rejected"],
            counts["review"],
            batch.status,
        )
