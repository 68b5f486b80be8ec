"""
Cleanup: delete temporary audio artifacts after acquisition.
Failures are logged and swallowed; they never affect a job's outcome.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def remove_temp_file(path: Path) -> bool:
    """Delete a single temp file. Returns True if it is gone afterwards."""
    try:
        path.unlink(missing_ok=True)
        logger.debug("Deleted: %s", path)
        return True
    except OSError as e:
        logger.warning("Failed to delete %s: %s", path, e)
        return False


def cleanup_prefixed_files(temp_dir: Path, prefix: str) -> int:
    """
    Delete every file in `temp_dir` whose name starts with `prefix`
    (partial downloads, intermediate formats). Returns the number removed.
    """
    removed = 0
    try:
        candidates = [p for p in temp_dir.iterdir()
                      if p.is_file() and p.name.startswith(prefix)]
    except OSError as e:
        logger.warning("Failed to scan %s for cleanup: %s", temp_dir, e)
        return 0

    for path in candidates:
        if remove_temp_file(path):
            removed += 1
    return removed
