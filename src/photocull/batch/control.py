# src/photocull/batch/control.py
"""Run control token: cooperative pause / resume / cancel for one batch run.

The orchestrator only looks at the token between chunks, so none of these
commands interrupts an item that is already being analyzed. A token belongs
to a single run at a time; create a fresh one per run.
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class RunControl:
    """Pause / resume / cancel flags observed at chunk boundaries."""

    def __init__(self) -> None:
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._cancelled = False
        self._owner: str | None = None

    @property
    def is_paused(self) -> bool:
        return not self._resumed.is_set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def owner(self) -> str | None:
        """Identifier of the run currently bound to this token."""
        return self._owner

    def pause(self) -> None:
        """Hold dispatch of the next chunk until resume() or cancel()."""
        if self._cancelled:
            return
        self._resumed.clear()
        logger.info("Pause requested")

    def resume(self) -> None:
        self._resumed.set()
        logger.info("Resume requested")

    def cancel(self) -> None:
        """Stop before the next chunk. Also releases a pending pause."""
        self._cancelled = True
        self._resumed.set()
        logger.info("Cancel requested")

    async def wait_if_paused(self) -> None:
        """Return immediately unless paused; otherwise wait for resume or cancel."""
        await self._resumed.wait()

    def bind(self, run_id: str) -> None:
        """Attach the token to a run.

        Raises:
            RuntimeError: If another run already holds this token.
        """
        if self._owner is not None and self._owner != run_id:
            raise RuntimeError(
                f"RunControl is already bound to run {self._owner}; "
                "concurrent runs need separate tokens"
            )
        self._owner = run_id

    def release(self) -> None:
        self._owner = None
