# src/photocull/store/base_record_store.py
"""Abstract record store interface.

The orchestrator only needs the five write operations at the top; the
query and review operations below them back the duplicate review service,
analytics and the CLI. Every operation may fail independently and reports
failure as PersistenceError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from photocull.core.models import BatchStatus, Disposition, MetricResult
from photocull.store.models import BatchRecord, DuplicateGroupRecord, ImageRecord


class BaseRecordStore(ABC):
    """Unified interface for durable batch / image / group records."""

    # --- Writes used by the batch orchestrator ---

    @abstractmethod
    async def create_batch(self, name: str, total_count: int) -> str:
        """Create a batch record with status "processing"; return its id."""

    @abstractmethod
    async def insert_image_result(
        self,
        batch_id: str,
        filename: str,
        file_size: int,
        result: MetricResult,
        disposition: Disposition,
    ) -> str:
        """Store one image's analysis; return the image id."""

    @abstractmethod
    async def update_batch_counters(
        self,
        batch_id: str,
        processed: int,
        accepted: int,
        rejected: int,
        review: int,
        status: BatchStatus,
    ) -> None:
        """Overwrite the batch summary counters and status."""

    @abstractmethod
    async def create_duplicate_group(
        self,
        batch_id: str,
        member_ids: list[str],
        best_id: str,
        similarity: float,
    ) -> str:
        """Create a duplicate group record; return its id."""

    @abstractmethod
    async def link_images_to_group(self, image_ids: list[str], group_id: str) -> None:
        """Point each image at the group."""

    # --- Queries ---

    @abstractmethod
    async def get_batch(self, batch_id: str) -> BatchRecord | None:
        """Fetch one batch, or None."""

    @abstractmethod
    async def list_batches(self) -> list[BatchRecord]:
        """All batches, newest first."""

    @abstractmethod
    async def get_image(self, image_id: str) -> ImageRecord | None:
        """Fetch one image, or None."""

    @abstractmethod
    async def list_images(
        self, batch_id: str, status: Disposition | None = None
    ) -> list[ImageRecord]:
        """Images of a batch, best overall score first."""

    @abstractmethod
    async def get_duplicate_group(self, group_id: str) -> DuplicateGroupRecord | None:
        """Fetch one duplicate group, or None."""

    @abstractmethod
    async def list_duplicate_groups(self, batch_id: str) -> list[DuplicateGroupRecord]:
        """Duplicate groups of a batch, in creation order."""

    @abstractmethod
    async def list_group_images(self, group_id: str) -> list[ImageRecord]:
        """Images linked to a group, best overall score first."""

    # --- Review operations ---

    @abstractmethod
    async def update_image_status(
        self, image_ids: list[str], status: Disposition
    ) -> None:
        """Set the disposition of the given images."""

    @abstractmethod
    async def set_group_best(self, group_id: str, image_id: str) -> None:
        """Record a reviewer's choice of best image for a group."""

    @abstractmethod
    async def delete_duplicate_group(self, group_id: str) -> None:
        """Unlink the group's images and remove the group."""

    @abstractmethod
    async def delete_batch(self, batch_id: str) -> None:
        """Remove a batch with its images and groups."""
