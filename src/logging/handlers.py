# src/logging/handlers.py — v1
"""Rotating file handler for the optional ``IBU_LOG_FILE`` log."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"^(\d+)\s*([KMG]?B?)$", re.IGNORECASE)
_UNIT_BYTES = {"": 1, "B": 1, "K": 1024, "M": 1024**2, "G": 1024**3}


def _parse_size(size_str: str) -> int:
    """Parse '10MB', '512K' or a plain byte count into bytes."""
    match = _SIZE_RE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    unit = match.group(2).upper()
    if len(unit) == 2:
        unit = unit[0]
    return int(match.group(1)) * _UNIT_BYTES[unit]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 5,
) -> RotatingFileHandler:
    """Create a size-rotated handler writing to ``log_file``.

    The parent directory is created if needed. The file itself is opened on
    the first record, so a run that logs nothing leaves no file behind.

    Args:
        log_file: Path to the log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=_parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
        delay=True,
    )
