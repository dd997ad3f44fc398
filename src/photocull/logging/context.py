# src/photocull/logging/context.py
"""Contextual logging support: attach batch_id and current image to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per batch run and per item task.
_batch_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch_id", default=None
)
_image: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "image", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    batch_id: str | None = None
    image: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(batch_id=_batch_id.get(), image=_image.get())


def set_batch_context(batch_id: str) -> None:
    """Set batch-level context (called once per batch run)."""
    _batch_id.set(batch_id)


def set_image_context(image: str | None) -> None:
    """Set item-level context.

    Each asyncio task runs in a copy of the parent context, so setting
    this inside an item task does not leak into sibling tasks.
    """
    _image.set(image)


def clear_context() -> None:
    """Reset all context variables."""
    _batch_id.set(None)
    _image.set(None)
