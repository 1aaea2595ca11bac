"""
Idempotent file writing.

Generators return text; this is the only place generated text touches
the file system.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def write_if_changed(path: Path, content: str) -> bool:
    """
    Write ``content`` to ``path`` unless the file already holds exactly it.

    Parent directories are created as needed.

    Returns:
        True if the file was written, False if it was left untouched
    """
    path = Path(path)
    data = content.encode("utf-8")
    if path.is_file() and path.read_bytes() == data:
        logger.debug(f"Unchanged: {path}")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.debug(f"Wrote: {path}")
    return True
