# src/photocull/store/sqlite_store.py
"""SQLite-based record store (STORE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Records survive the process,
so the CLI `stats` and `groups` commands can inspect earlier runs.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from photocull.core.errors import PersistenceError
from photocull.core.models import BatchStatus, Disposition, MetricResult
from photocull.store.base_record_store import BaseRecordStore
from photocull.store.models import BatchRecord, DuplicateGroupRecord, ImageRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS batches (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    total_images INTEGER NOT NULL,
    processed_images INTEGER NOT NULL DEFAULT 0,
    accepted_images INTEGER NOT NULL DEFAULT 0,
    rejected_images INTEGER NOT NULL DEFAULT 0,
    review_images INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS duplicate_groups (
    id TEXT PRIMARY KEY,
    batch_id TEXT NOT NULL REFERENCES batches(id) ON DELETE CASCADE,
    image_count INTEGER NOT NULL,
    best_image_id TEXT,
    override_best_image_id TEXT,
    similarity REAL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS images (
    id TEXT PRIMARY KEY,
    batch_id TEXT NOT NULL REFERENCES batches(id) ON DELETE CASCADE,
    filename TEXT NOT NULL,
    file_size INTEGER,
    width INTEGER,
    height INTEGER,
    sharpness_score REAL,
    exposure_score REAL,
    contrast_score REAL,
    overall_score INTEGER,
    fingerprint TEXT,
    has_face INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    issues TEXT NOT NULL DEFAULT '[]',
    duplicate_group_id TEXT REFERENCES duplicate_groups(id) ON DELETE SET NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_images_batch ON images(batch_id);
CREATE INDEX IF NOT EXISTS idx_images_group ON images(duplicate_group_id);
CREATE INDEX IF NOT EXISTS idx_groups_batch ON duplicate_groups(batch_id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteRecordStore(BaseRecordStore):
    """SQLite-backed record store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("Opened record store at %s", self._db_path)

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back and raise PersistenceError on failure."""
        try:
            yield self._conn
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise PersistenceError(f"{action} failed: {e}") from e

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Query failed: {e}") from e

    # --- Writes ---

    async def create_batch(self, name: str, total_count: int) -> str:
        batch_id = str(uuid.uuid4())
        now = _now()
        with self._transaction("create_batch") as conn:
            conn.execute(
                """INSERT INTO batches (id, name, total_images, status, created_at, updated_at)
                   VALUES (?, ?, ?, 'processing', ?, ?)""",
                (batch_id, name, total_count, now, now),
            )
        return batch_id

    async def insert_image_result(
        self,
        batch_id: str,
        filename: str,
        file_size: int,
        result: MetricResult,
        disposition: Disposition,
    ) -> str:
        image_id = str(uuid.uuid4())
        now = _now()
        with self._transaction("insert_image_result") as conn:
            conn.execute(
                """INSERT INTO images
                   (id, batch_id, filename, file_size, width, height,
                    sharpness_score, exposure_score, contrast_score, overall_score,
                    fingerprint, has_face, status, issues, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    image_id, batch_id, filename, file_size,
                    result.width, result.height,
                    result.sharpness, result.exposure, result.contrast, result.overall,
                    result.fingerprint, int(result.has_face), disposition,
                    json.dumps(result.issues), now, now,
                ),
            )
        return image_id

    async def update_batch_counters(
        self,
        batch_id: str,
        processed: int,
        accepted: int,
        rejected: int,
        review: int,
        status: BatchStatus,
    ) -> None:
        with self._transaction("update_batch_counters") as conn:
            cursor = conn.execute(
                """UPDATE batches SET processed_images = ?, accepted_images = ?,
                   rejected_images = ?, review_images = ?, status = ?, updated_at = ?
                   WHERE id = ?""",
                (processed, accepted, rejected, review, status, _now(), batch_id),
            )
            if cursor.rowcount == 0:
                raise sqlite3.IntegrityError(f"unknown batch {batch_id}")

    async def create_duplicate_group(
        self,
        batch_id: str,
        member_ids: list[str],
        best_id: str,
        similarity: float,
    ) -> str:
        group_id = str(uuid.uuid4())
        with self._transaction("create_duplicate_group") as conn:
            conn.execute(
                """INSERT INTO duplicate_groups
                   (id, batch_id, image_count, best_image_id, similarity, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (group_id, batch_id, len(member_ids), best_id, similarity, _now()),
            )
        return group_id

    async def link_images_to_group(self, image_ids: list[str], group_id: str) -> None:
        with self._transaction("link_images_to_group") as conn:
            conn.executemany(
                "UPDATE images SET duplicate_group_id = ?, updated_at = ? WHERE id = ?",
                [(group_id, _now(), image_id) for image_id in image_ids],
            )

    # --- Queries ---

    async def get_batch(self, batch_id: str) -> BatchRecord | None:
        rows = self._query("SELECT * FROM batches WHERE id = ?", (batch_id,))
        return BatchRecord(**dict(rows[0])) if rows else None

    async def list_batches(self) -> list[BatchRecord]:
        rows = self._query("SELECT * FROM batches ORDER BY created_at DESC")
        return [BatchRecord(**dict(r)) for r in rows]

    async def get_image(self, image_id: str) -> ImageRecord | None:
        rows = self._query("SELECT * FROM images WHERE id = ?", (image_id,))
        return self._to_image(rows[0]) if rows else None

    async def list_images(
        self, batch_id: str, status: Disposition | None = None
    ) -> list[ImageRecord]:
        if status is None:
            rows = self._query(
                "SELECT * FROM images WHERE batch_id = ? ORDER BY overall_score DESC",
                (batch_id,),
            )
        else:
            rows = self._query(
                """SELECT * FROM images WHERE batch_id = ? AND status = ?
                   ORDER BY overall_score DESC""",
                (batch_id, status),
            )
        return [self._to_image(r) for r in rows]

    async def get_duplicate_group(self, group_id: str) -> DuplicateGroupRecord | None:
        rows = self._query("SELECT * FROM duplicate_groups WHERE id = ?", (group_id,))
        return DuplicateGroupRecord(**dict(rows[0])) if rows else None

    async def list_duplicate_groups(self, batch_id: str) -> list[DuplicateGroupRecord]:
        rows = self._query(
            "SELECT * FROM duplicate_groups WHERE batch_id = ? ORDER BY rowid",
            (batch_id,),
        )
        return [DuplicateGroupRecord(**dict(r)) for r in rows]

    async def list_group_images(self, group_id: str) -> list[ImageRecord]:
        rows = self._query(
            "SELECT * FROM images WHERE duplicate_group_id = ? ORDER BY overall_score DESC",
            (group_id,),
        )
        return [self._to_image(r) for r in rows]

    # --- Review operations ---

    async def update_image_status(
        self, image_ids: list[str], status: Disposition
    ) -> None:
        with self._transaction("update_image_status") as conn:
            conn.executemany(
                "UPDATE images SET status = ?, updated_at = ? WHERE id = ?",
                [(status, _now(), image_id) for image_id in image_ids],
            )

    async def set_group_best(self, group_id: str, image_id: str) -> None:
        with self._transaction("set_group_best") as conn:
            cursor = conn.execute(
                "UPDATE duplicate_groups SET override_best_image_id = ? WHERE id = ?",
                (image_id, group_id),
            )
            if cursor.rowcount == 0:
                raise sqlite3.IntegrityError(f"unknown duplicate group {group_id}")

    async def delete_duplicate_group(self, group_id: str) -> None:
        with self._transaction("delete_duplicate_group") as conn:
            conn.execute(
                "UPDATE images SET duplicate_group_id = NULL WHERE duplicate_group_id = ?",
                (group_id,),
            )
            conn.execute("DELETE FROM duplicate_groups WHERE id = ?", (group_id,))

    async def delete_batch(self, batch_id: str) -> None:
        with self._transaction("delete_batch") as conn:
            conn.execute("DELETE FROM images WHERE batch_id = ?", (batch_id,))
            conn.execute("DELETE FROM duplicate_groups WHERE batch_id = ?", (batch_id,))
            conn.execute("DELETE FROM batches WHERE id = ?", (batch_id,))

    # --- Helpers ---

    @staticmethod
    def _to_image(row: sqlite3.Row) -> ImageRecord:
        data = dict(row)
        data["issues"] = json.loads(data.get("issues") or "[]")
        data["has_face"] = bool(data.get("has_face"))
        return ImageRecord(**data)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
