# tests/integration/batch/test_int_batch_run.py
"""Integration tests for a full batch run.

Covers: batch/scanner.py, analysis/decoder.py (Pillow), batch/orchestrator.py,
store/sqlite_store.py, batch/review.py, tracking/analytics.py.
No external services: real PNG files and a temporary SQLite database.
"""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from photocull.batch.control import RunControl
from photocull.batch.orchestrator import BatchOrchestrator
from photocull.batch.review import DuplicateReviewService
from photocull.batch.scanner import scan_directory
from photocull.config.settings import Settings
from photocull.store.sqlite_store import SqliteRecordStore
from photocull.tracking.analytics import compute_batch_analytics


def _checkerboard(size: int = 64, cell: int = 4) -> np.ndarray:
    ys, xs = np.indices((size, size))
    gray = np.where(((xs // cell) + (ys // cell)) % 2 == 1, 230, 25).astype(np.uint8)
    return np.repeat(gray[..., None], 3, axis=2)


@pytest.fixture
def sqlite_store(tmp_path):
    store = SqliteRecordStore(tmp_path / "records.db")
    yield store
    store.close()


@pytest.fixture
def burst_dir(tmp_path):
    """Three captures of the same scene, one unrelated frame and one corrupt file."""
    root = tmp_path / "burst"
    root.mkdir()
    scene = _checkerboard()
    for i in range(3):
        Image.fromarray(scene).save(root / f"IMG_{i:04d}.png")
    other = np.random.default_rng(11).integers(0, 256, (64, 64, 3), dtype=np.uint8)
    Image.fromarray(other).save(root / "IMG_0003.png")
    (root / "IMG_0004.jpg").write_bytes(b"\xff\xd8\xff\xe0 not really a jpeg")
    return root


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_scan_analyze_group_review(self, burst_dir, sqlite_store):
        settings = Settings(_env_file=None, chunk_size=2)
        files = scan_directory(burst_dir)
        assert len(files) == 5

        result = await BatchOrchestrator(sqlite_store, settings).start_batch(files, "burst")

        assert result.status == "completed"
        assert result.progress.processed == 5
        assert result.progress.errors == 1
        assert result.items[4].status == "error"
        assert result.items[4].error.startswith("DecodeError")

        assert len(result.groups) == 1
        scene_ids = [result.items[i].image_id for i in range(3)]
        assert result.groups[0].member_ids == scene_ids

        images = await sqlite_store.list_images(result.batch_id)
        assert len(images) == 4
        assert all(img.width == 64 for img in images)

        stored_group = (await sqlite_store.list_duplicate_groups(result.batch_id))[0]
        rejected = await DuplicateReviewService(sqlite_store).keep_best(
            stored_group.id, scene_ids[2],
        )
        assert sorted(rejected) == sorted(scene_ids[:2])

        analytics = compute_batch_analytics(await sqlite_store.list_images(result.batch_id))
        assert analytics.total_images == 4
        assert analytics.duplicate_images == 3
        assert analytics.rejected >= 2

        batch = await sqlite_store.get_batch(result.batch_id)
        assert batch.processed_images == 5
        assert batch.rejected_images == analytics.rejected
        assert batch.status == "completed"

    @pytest.mark.asyncio
    async def test_chunked_run_with_cancel(self, tmp_path, sqlite_store):
        root = tmp_path / "many"
        root.mkdir()
        rng = np.random.default_rng(3)
        for i in range(12):
            noise = rng.integers(0, 256, (24, 24, 3), dtype=np.uint8)
            Image.fromarray(noise).save(root / f"n_{i:02d}.png")

        control = RunControl()
        seen = []

        def on_progress(progress):
            seen.append(progress.processed)
            control.cancel()

        orch = BatchOrchestrator(sqlite_store, Settings(_env_file=None, chunk_size=10))
        result = await orch.start_batch(
            scan_directory(root), "many", control=control, on_progress=on_progress,
        )

        assert seen == [10]
        assert result.status == "cancelled"
        assert [i.status for i in result.items[10:]] == ["pending", "pending"]
        assert result.groups == []
        assert len(await sqlite_store.list_images(result.batch_id)) == 10
        assert (await sqlite_store.get_batch(result.batch_id)).status == "cancelled"
