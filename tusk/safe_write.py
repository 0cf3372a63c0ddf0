"""Lock-aware artifact writing."""

from __future__ import annotations

import logging
import os
import tempfile
from itertools import islice
from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_MARKER = "@lock"
LOCK_SCAN_LINES = 2


def is_locked(path: Path | str) -> bool:
    """
    Check if a file carries the lock marker in its first two lines.

    Missing or unreadable-as-text files are not locked.
    """
    path = Path(path)
    if not path.is_file():
        return False
    with open(path, encoding="utf-8", errors="replace") as f:
        return any(LOCK_MARKER in line for line in islice(f, LOCK_SCAN_LINES))


def safe_write(path: Path | str, content: str, force: bool = False) -> bool:
    """
    Write content to a file unless it is lock protected.

    A hand-edited artifact whose first two lines contain ``@lock`` is left
    untouched unless ``force`` is set. Content goes to a temporary file in the
    destination directory first and is then renamed over the target, so the
    target holds either the old or the complete new content.

    Args:
        path: Destination file
        content: Full file content
        force: Overwrite even if the file is locked

    Returns:
        True if written, False if skipped because of the lock marker
    """
    path = Path(path)

    if not force and is_locked(path):
        logger.warning(f"{path} is {LOCK_MARKER} protected. Skipping write.")
        return False

    path.parent.mkdir(parents=True, exist_ok=True)

    # mkstemp creates 0600 files; keep the existing mode or use 0644
    mode = path.stat().st_mode & 0o777 if path.exists() else 0o644

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    return True
