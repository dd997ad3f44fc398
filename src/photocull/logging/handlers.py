# src/photocull/logging/handlers.py
"""Size-rotated log files for long batch runs.

Rotation sizes are a byte count with an optional B, KB, MB or GB suffix.
Settings validates PHOTOCULL_LOG_ROTATION with ``parse_size`` at load time.
"""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"(\d+)\s*(B|KB|MB|GB)?", re.IGNORECASE)
_UNIT_BYTES = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size: str) -> int:
    """Parse a rotation size such as '10MB', '512kb' or '4096' into bytes.

    Raises:
        ValueError: On an unknown format or a zero size, which would turn
            rotation off.
    """
    match = _SIZE_RE.fullmatch(size.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    n_bytes = int(match.group(1)) * _UNIT_BYTES[unit]
    if n_bytes == 0:
        raise ValueError(f"Rotation size must be > 0, got {size!r}")
    return n_bytes


def create_rotating_handler(
    log_file: str | Path, rotation: str, retention: int,
) -> RotatingFileHandler:
    """Open ``log_file`` for appending, rotating at ``rotation`` bytes.

    ``retention`` rotated copies are kept (app.log.1 ... app.log.N); the
    parent directory is created if missing.
    """
    if retention < 0:
        raise ValueError(f"Log retention must be >= 0, got {retention}")
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
