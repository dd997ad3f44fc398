# src/photocull/batch/scanner.py
"""Batch scanner: discover image files under a directory.

Files are returned in sorted path order so that batch indexes are stable
across runs of the same directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from photocull.analysis.decoder import SUPPORTED_EXTENSIONS
from photocull.batch.models import ImageFile

logger = logging.getLogger(__name__)


def scan_directory(
    scan_root: Path | str,
    recursive: bool = True,
    extensions: frozenset[str] | None = None,
) -> list[ImageFile]:
    """List supported image files under a directory.

    Args:
        scan_root: Root directory to scan.
        recursive: If True, scan subdirectories recursively.
        extensions: Lowercase suffixes to accept. Defaults to every
            format the decoder supports.

    Returns:
        ImageFile entries referencing the files on disk.

    Raises:
        ValueError: If scan_root is not a directory.
    """
    root = Path(scan_root)
    if not root.is_dir():
        msg = f"Scan root is not a directory: {root}"
        raise ValueError(msg)

    allowed = extensions or SUPPORTED_EXTENSIONS
    pattern_fn = root.rglob if recursive else root.glob

    files: list[ImageFile] = []
    skipped = 0
    for path in sorted(pattern_fn("*")):
        if not path.is_file():
            continue
        if path.suffix.lower() not in allowed:
            skipped += 1
            continue
        files.append(ImageFile.from_path(path))

    logger.info(
        "Scanned %s: found %d image files, skipped %d (recursive=%s)",
        root, len(files), skipped, recursive,
    )
    return files
