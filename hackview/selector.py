"""Ranking of session log files by modification time."""

import logging
from pathlib import Path
from stat import S_ISREG
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

SESSION_EXTENSION = ".jsonl"


def list_session_files(dirs: Iterable[Path], extension: str = SESSION_EXTENSION) -> list[tuple[Path, float]]:
    """List session files across all directories, newest first.

    Directories that cannot be listed contribute nothing. Files with equal
    mtimes keep the order in which they were listed.
    """
    files = []
    for directory in dirs:
        directory = Path(directory)
        try:
            candidates = list(directory.glob(f"*{extension}"))
        except OSError as e:
            logger.debug(f"Cannot list {directory}: {e}")
            continue

        for path in candidates:
            try:
                st = path.stat()
            except OSError:
                # Removed between listing and stat
                continue
            if not S_ISREG(st.st_mode):
                continue
            files.append((path, st.st_mtime))

    files.sort(key=lambda item: item[1], reverse=True)
    return files


def find_session_file(dirs: Iterable[Path], nth: int = 0, extension: str = SESSION_EXTENSION) -> Optional[Path]:
    """Return the nth most recently modified session file (0 = newest)."""
    if nth < 0:
        return None
    files = list_session_files(dirs, extension)
    if len(files) > nth:
        return files[nth][0]
    return None
