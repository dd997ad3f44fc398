# src/photocull/store/memory_store.py
"""In-process record store (STORE_BACKEND=memory).

Keeps records in dicts for the lifetime of the process. Used by default
for one-shot CLI runs and throughout the test suite.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from photocull.core.errors import PersistenceError
from photocull.core.models import BatchStatus, Disposition, MetricResult
from photocull.store.base_record_store import BaseRecordStore
from photocull.store.models import BatchRecord, DuplicateGroupRecord, ImageRecord


def _new_id() -> str:
    return str(uuid.uuid4())


def _by_score(images: list[ImageRecord]) -> list[ImageRecord]:
    return sorted(images, key=lambda r: r.overall_score or 0, reverse=True)


class MemoryRecordStore(BaseRecordStore):
    """Dict-backed record store."""

    def __init__(self) -> None:
        self._batches: dict[str, BatchRecord] = {}
        self._images: dict[str, ImageRecord] = {}
        self._groups: dict[str, DuplicateGroupRecord] = {}

    # --- Writes ---

    async def create_batch(self, name: str, total_count: int) -> str:
        batch = BatchRecord(id=_new_id(), name=name, total_images=total_count)
        self._batches[batch.id] = batch
        return batch.id

    async def insert_image_result(
        self,
        batch_id: str,
        filename: str,
        file_size: int,
        result: MetricResult,
        disposition: Disposition,
    ) -> str:
        self._require_batch(batch_id)
        record = ImageRecord(
            id=_new_id(),
            batch_id=batch_id,
            filename=filename,
            file_size=file_size,
            width=result.width,
            height=result.height,
            sharpness_score=result.sharpness,
            exposure_score=result.exposure,
            contrast_score=result.contrast,
            overall_score=result.overall,
            fingerprint=result.fingerprint,
            has_face=result.has_face,
            status=disposition,
            issues=list(result.issues),
        )
        self._images[record.id] = record
        return record.id

    async def update_batch_counters(
        self,
        batch_id: str,
        processed: int,
        accepted: int,
        rejected: int,
        review: int,
        status: BatchStatus,
    ) -> None:
        batch = self._require_batch(batch_id)
        self._batches[batch_id] = batch.model_copy(
            update={
                "processed_images": processed,
                "accepted_images": accepted,
                "rejected_images": rejected,
                "review_images": review,
                "status": status,
                "updated_at": datetime.now(timezone.utc),
            }
        )

    async def create_duplicate_group(
        self,
        batch_id: str,
        member_ids: list[str],
        best_id: str,
        similarity: float,
    ) -> str:
        self._require_batch(batch_id)
        group = DuplicateGroupRecord(
            id=_new_id(),
            batch_id=batch_id,
            image_count=len(member_ids),
            best_image_id=best_id,
            similarity=similarity,
        )
        self._groups[group.id] = group
        return group.id

    async def link_images_to_group(self, image_ids: list[str], group_id: str) -> None:
        if group_id not in self._groups:
            raise PersistenceError(f"Unknown duplicate group: {group_id}")
        for image_id in image_ids:
            image = self._require_image(image_id)
            self._images[image_id] = image.model_copy(
                update={"duplicate_group_id": group_id}
            )

    # --- Queries ---

    async def get_batch(self, batch_id: str) -> BatchRecord | None:
        return self._batches.get(batch_id)

    async def list_batches(self) -> list[BatchRecord]:
        return sorted(self._batches.values(), key=lambda b: b.created_at, reverse=True)

    async def get_image(self, image_id: str) -> ImageRecord | None:
        return self._images.get(image_id)

    async def list_images(
        self, batch_id: str, status: Disposition | None = None
    ) -> list[ImageRecord]:
        images = [
            img for img in self._images.values()
            if img.batch_id == batch_id and (status is None or img.status == status)
        ]
        return _by_score(images)

    async def get_duplicate_group(self, group_id: str) -> DuplicateGroupRecord | None:
        return self._groups.get(group_id)

    async def list_duplicate_groups(self, batch_id: str) -> list[DuplicateGroupRecord]:
        return [g for g in self._groups.values() if g.batch_id == batch_id]

    async def list_group_images(self, group_id: str) -> list[ImageRecord]:
        return _by_score(
            [img for img in self._images.values() if img.duplicate_group_id == group_id]
        )

    # --- Review operations ---

    async def update_image_status(
        self, image_ids: list[str], status: Disposition
    ) -> None:
        now = datetime.now(timezone.utc)
        for image_id in image_ids:
            image = self._require_image(image_id)
            self._images[image_id] = image.model_copy(
                update={"status": status, "updated_at": now}
            )

    async def set_group_best(self, group_id: str, image_id: str) -> None:
        group = self._groups.get(group_id)
        if group is None:
            raise PersistenceError(f"Unknown duplicate group: {group_id}")
        self._groups[group_id] = group.model_copy(
            update={"override_best_image_id": image_id}
        )

    async def delete_duplicate_group(self, group_id: str) -> None:
        for image_id, image in list(self._images.items()):
            if image.duplicate_group_id == group_id:
                self._images[image_id] = image.model_copy(
                    update={"duplicate_group_id": None}
                )
        self._groups.pop(group_id, None)

    async def delete_batch(self, batch_id: str) -> None:
        self._images = {k: v for k, v in self._images.items() if v.batch_id != batch_id}
        self._groups = {k: v for k, v in self._groups.items() if v.batch_id != batch_id}
        self._batches.pop(batch_id, None)

    # --- Helpers ---

    def _require_batch(self, batch_id: str) -> BatchRecord:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise PersistenceError(f"Unknown batch: {batch_id}")
        return batch

    def _require_image(self, image_id: str) -> ImageRecord:
        image = self._images.get(image_id)
        if image is None:
            raise PersistenceError(f"Unknown image: {image_id}")
        return image
