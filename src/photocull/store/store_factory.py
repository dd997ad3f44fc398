# src/photocull/store/store_factory.py
"""Factory for record store instantiation."""

from __future__ import annotations

from photocull.config.settings import Settings
from photocull.store.base_record_store import BaseRecordStore


def create_record_store(settings: Settings | None = None) -> BaseRecordStore:
    """Instantiate the configured record store backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseRecordStore implementation.
    """
    backend = "memory" if settings is None else settings.store_backend

    if backend == "memory":
        from photocull.store.memory_store import MemoryRecordStore
        return MemoryRecordStore()

    if backend == "sqlite":
        from photocull.store.sqlite_store import SqliteRecordStore
        if settings is None or settings.store_path is None:
            raise ValueError("STORE_PATH must be set when STORE_BACKEND=sqlite")
        return SqliteRecordStore(db_path=settings.store_path)

    raise ValueError(f"Unsupported record store backend: {backend!r}")
