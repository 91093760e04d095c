"""Crash-safe file writes."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

from ssoctl.core.exceptions import PersistError


def ensure_dir(path: Path, mode: int = 0o700) -> None:
    """Ensure a directory exists, creating it with restricted permissions."""
    try:
        path.mkdir(mode=mode, parents=True, exist_ok=True)
    except OSError as e:
        raise PersistError(f"failed to create directory {path}: {e}") from e


def write_atomic(path: Path, content: str, mode: int = stat.S_IRUSR | stat.S_IWUSR) -> None:
    """
    Replace a file's content atomically.

    The content goes to a temporary file in the same directory (so the rename
    never crosses filesystems), is flushed to disk, and is then renamed over
    the destination. Either the full new content lands or the original file
    is left untouched; the temporary file is removed on any failure.

    Args:
        path: Destination file
        content: Full replacement content
        mode: Permissions for the new file (default 0o600)

    Raises:
        PersistError: If writing or renaming fails
    """
    path = Path(path)
    ensure_dir(path.parent)

    try:
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
    except OSError as e:
        raise PersistError(f"failed to create temporary file for {path}: {e}") from e

    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise PersistError(f"failed to write {path}: {e}") from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
