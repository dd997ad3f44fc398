# src/photocull/core/errors.py
"""Error taxonomy for the analysis engine and batch orchestrator.

Item-level errors (DecodeError, ExtractionError, PersistenceError) are
contained at the item boundary by the orchestrator. Only BatchCreationError
stops a run, and EmptyBatchError means a run never started.
"""

from __future__ import annotations


class PhotoCullError(Exception):
    """Base class for all photocull errors."""


class EmptyBatchError(PhotoCullError):
    """No files were submitted; the batch is never created."""


class BatchCreationError(PhotoCullError):
    """The record store failed to create the batch record."""


class DecodeError(PhotoCullError):
    """File bytes could not be turned into a usable pixel buffer."""


class ExtractionError(PhotoCullError):
    """Unexpected failure inside metric computation."""


class PersistenceError(PhotoCullError):
    """A record store write or lookup failed."""


class InvalidTransitionError(PhotoCullError):
    """A processing item was asked to make a transition its state forbids."""


class ReviewError(PhotoCullError):
    """A duplicate review request named an unknown group or a non-member image."""
