# src/photocull/batch/orchestrator.py
"""Batch orchestrator: chunked concurrent analysis, progress, clustering.

Workflow for one run:
    1. Create the batch record (failure aborts the run).
    2. Split files into fixed-size chunks. Before each chunk, honour
       cancel, then wait out any pause.
    3. Analyze every item of the chunk concurrently. Item tasks return
       ItemOutcome values and never touch shared state.
    4. Settle the chunk: apply outcomes in global-index order and swap in
       the new progress counters in one synchronous step.
    5. Unless cancelled, cluster all completed items once and persist
       the duplicate groups.
    6. Finalize the batch record as "completed" or "cancelled".
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Sequence

from photocull.analysis.classifier import classify
from photocull.analysis.decoder import DecodedImage, decode_image
from photocull.analysis.metrics import extract_metrics
from photocull.batch.control import RunControl
from photocull.batch.models import BatchRunResult, ImageFile, ItemOutcome
from photocull.config.settings import Settings
from photocull.core.errors import (
    BatchCreationError,
    DecodeError,
    EmptyBatchError,
    PersistenceError,
    PhotoCullError,
)
from photocull.core.models import (
    BatchProgress,
    BatchStatus,
    Disposition,
    DuplicateCandidate,
    DuplicateGroup,
    MetricResult,
    ProcessingItem,
)
from photocull.dedup.clusterer import find_duplicate_groups
from photocull.logging.context import clear_context, set_batch_context, set_image_context
from photocull.store.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)

Decoder = Callable[[ImageFile], DecodedImage]
ProgressCallback = Callable[[BatchProgress], None]


class BatchOrchestrator:
    """Drive one batch run at a time end to end.

    Args:
        store: Record store receiving batch, image and group records.
        settings: Chunk size, thresholds and calibration. Defaults to Settings().
        decoder: ImageFile -> DecodedImage. Defaults to the Pillow decoder.
    """

    def __init__(
        self,
        store: BaseRecordStore,
        settings: Settings | None = None,
        decoder: Decoder | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or Settings()
        self._decoder = decoder or self._default_decoder
        self._items: list[ProcessingItem] = []
        self._progress = BatchProgress()
        self._running = False

    # --- Observers ---

    @property
    def progress(self) -> BatchProgress:
        """Snapshot of the running counters."""
        return self._progress.model_copy()

    @property
    def items(self) -> list[ProcessingItem]:
        """Snapshot of per-item state, in submission order."""
        return [item.model_copy(deep=True) for item in self._items]

    @property
    def is_running(self) -> bool:
        return self._running

    # --- Entry points ---

    async def start_batch(
        self,
        files: Sequence[ImageFile],
        batch_name: str,
        control: RunControl | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchRunResult:
        """Run a batch; never raises for an empty file set or a failed create.

        Returns:
            BatchRunResult. ``batch_id`` is None when no batch was created.
        """
        try:
            return await self.run_batch(files, batch_name, control, on_progress)
        except EmptyBatchError as exc:
            logger.warning("Batch %r not started: %s", batch_name, exc)
            return BatchRunResult(batch_id=None, status="empty", error=str(exc))
        except BatchCreationError as exc:
            logger.error("Batch %r not started: %s", batch_name, exc)
            return BatchRunResult(batch_id=None, status="failed", error=str(exc))

    async def run_batch(
        self,
        files: Sequence[ImageFile],
        batch_name: str,
        control: RunControl | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchRunResult:
        """Run a batch, raising EmptyBatchError / BatchCreationError.

        Args:
            files: Images in submission order; indexes are stable.
            batch_name: Human-readable batch name.
            control: Pause / resume / cancel token for this run.
            on_progress: Called with a progress snapshot after each chunk.
        """
        files = list(files)
        if not files:
            raise EmptyBatchError("No files submitted")
        if self._running:
            raise RuntimeError("This orchestrator is already running a batch")

        control = control or RunControl()
        run_id = uuid.uuid4().hex
        control.bind(run_id)
        self._running = True
        t0 = time.perf_counter()
        try:
            batch_id = await self._create_batch(batch_name, len(files))
            set_batch_context(batch_id)
            self._items = [
                ProcessingItem(index=i, filename=f.filename, file_size=f.size_bytes)
                for i, f in enumerate(files)
            ]
            self._progress = BatchProgress(total=len(files))
            logger.info(
                "Batch %r started: %d files, chunk size %d",
                batch_name, len(files), self._settings.chunk_size,
            )

            await self._process_chunks(batch_id, files, control, on_progress)

            cancelled = control.is_cancelled
            groups: list[DuplicateGroup] = []
            if cancelled:
                logger.info("Batch cancelled; skipping duplicate detection")
            else:
                groups = await self._cluster_and_persist(batch_id)

            status: BatchStatus = "cancelled" if cancelled else "completed"
            await self._push_counters(batch_id, status)

            progress = self.progress
            logger.info(
                "Batch %s: %d/%d processed, %d accepted, %d review, "
                "%d rejected, %d errors, %d duplicate groups",
                status, progress.processed, progress.total, progress.accepted,
                progress.review, progress.rejected, progress.errors, len(groups),
            )
            return BatchRunResult(
                batch_id=batch_id,
                status=status,
                progress=progress,
                items=self.items,
                groups=groups,
                duration_seconds=round(time.perf_counter() - t0, 2),
            )
        finally:
            self._running = False
            control.release()
            clear_context()

    # --- Steps ---

    async def _create_batch(self, batch_name: str, total: int) -> str:
        try:
            return await self._store.create_batch(batch_name, total)
        except Exception as exc:
            raise BatchCreationError(
                f"Failed to create batch {batch_name!r}: {exc}"
            ) from exc

    async def _process_chunks(
        self,
        batch_id: str,
        files: list[ImageFile],
        control: RunControl,
        on_progress: ProgressCallback | None,
    ) -> None:
        chunk_size = self._settings.chunk_size
        chunk_count = (len(files) + chunk_size - 1) // chunk_size

        for chunk_no, start in enumerate(range(0, len(files), chunk_size), start=1):
            if control.is_cancelled:
                logger.info("Cancelled before chunk %d/%d", chunk_no, chunk_count)
                return
            if control.is_paused:
                logger.info("Paused before chunk %d/%d", chunk_no, chunk_count)
                await control.wait_if_paused()
                if control.is_cancelled:
                    logger.info("Cancelled while paused before chunk %d", chunk_no)
                    return

            chunk = files[start:start + chunk_size]
            for offset in range(len(chunk)):
                self._items[start + offset].start()

            outcomes = await asyncio.gather(*(
                self._process_item(batch_id, start + offset, file)
                for offset, file in enumerate(chunk)
            ))
            self._settle(outcomes)
            logger.debug(
                "Chunk %d/%d settled: %d%%",
                chunk_no, chunk_count, self._progress.percentage,
            )

            await self._push_counters(batch_id, "processing")
            if on_progress is not None:
                self._notify(on_progress)

    async def _process_item(
        self, batch_id: str, index: int, file: ImageFile
    ) -> ItemOutcome:
        """Analyze and record one file. Never raises; failures become outcomes."""
        set_image_context(file.filename)
        timeout = self._settings.item_timeout_seconds
        try:
            work = asyncio.to_thread(self._analyze, file)
            if timeout is None:
                result, disposition = await work
            else:
                result, disposition = await asyncio.wait_for(work, timeout)
            image_id = await self._record(batch_id, file, result, disposition)
        except asyncio.TimeoutError:
            logger.warning("Analysis of %s timed out after %.1fs", file.filename, timeout)
            return ItemOutcome(index=index, error=f"Analysis timed out after {timeout}s")
        except PhotoCullError as exc:
            logger.warning("Failed to process %s: %s", file.filename, exc)
            return ItemOutcome(index=index, error=f"{type(exc).__name__}: {exc}")
        except Exception as exc:
            logger.exception("Unexpected failure processing %s", file.filename)
            return ItemOutcome(index=index, error=f"{type(exc).__name__}: {exc}")

        return ItemOutcome(
            index=index, result=result, disposition=disposition, image_id=image_id,
        )

    def _analyze(self, file: ImageFile) -> tuple[MetricResult, Disposition]:
        """Decode, extract and classify; runs in a worker thread."""
        try:
            decoded = self._decoder(file)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"Decoder failed for {file.filename}: {exc}") from exc

        result = extract_metrics(
            decoded.pixels,
            self._settings,
            natural_size=(decoded.natural_width, decoded.natural_height),
        )
        return result, classify(result.overall, self._settings)

    async def _record(
        self,
        batch_id: str,
        file: ImageFile,
        result: MetricResult,
        disposition: Disposition,
    ) -> str:
        try:
            return await self._store.insert_image_result(
                batch_id, file.filename, file.size_bytes, result, disposition,
            )
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"insert_image_result failed: {exc}") from exc

    def _settle(self, outcomes: Sequence[ItemOutcome]) -> None:
        """Apply one chunk's outcomes in index order.

        Runs without awaiting, so no other coroutine observes a partly
        applied chunk. The counters are built on a copy and swapped in.
        """
        progress = self._progress.model_copy()
        for outcome in sorted(outcomes, key=lambda o: o.index):
            item = self._items[outcome.index]
            if outcome.success:
                item.complete(outcome.result, outcome.disposition, outcome.image_id)  # type: ignore[arg-type]
                progress.record(outcome.disposition)
            else:
                item.fail(outcome.error or "Unknown error")
                progress.record(None)
        self._progress = progress

    async def _cluster_and_persist(self, batch_id: str) -> list[DuplicateGroup]:
        candidates = [
            DuplicateCandidate(
                id=item.image_id,
                fingerprint=item.result.fingerprint,
                score=item.result.overall,
            )
            for item in self._items
            if item.status == "completed" and item.result is not None and item.image_id
        ]
        if not candidates:
            logger.info("No analyzed images; skipping duplicate detection")
            return []

        groups = find_duplicate_groups(candidates, self._settings.similarity_threshold)
        for group in groups:
            try:
                group_id = await self._store.create_duplicate_group(
                    batch_id, group.member_ids, group.best_id, group.similarity,
                )
                await self._store.link_images_to_group(group.member_ids, group_id)
            except Exception:
                logger.warning(
                    "Failed to persist duplicate group (best=%s, %d members)",
                    group.best_id, len(group.members), exc_info=True,
                )
        return groups

    async def _push_counters(self, batch_id: str, status: BatchStatus) -> None:
        p = self._progress
        try:
            await self._store.update_batch_counters(
                batch_id, p.processed, p.accepted, p.rejected, p.review, status,
            )
        except Exception:
            logger.warning("Failed to update batch counters (%s)", status, exc_info=True)

    def _notify(self, on_progress: ProgressCallback) -> None:
        try:
            on_progress(self.progress)
        except Exception:
            logger.warning("Progress callback failed", exc_info=True)

    def _default_decoder(self, file: ImageFile) -> DecodedImage:
        return decode_image(file.source, self._settings.max_analysis_dimension)
