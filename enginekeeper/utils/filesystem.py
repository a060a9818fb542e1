"""
Filesystem utilities for enginekeeper.

Safe helpers for locating project directories and for reading and
rewriting ``package.json``. Writes go through a temporary file and an
atomic replace, optionally keeping a timestamped backup of the previous
contents. All filesystem errors are normalized to ``FileOperationError``.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

from enginekeeper.utils.logger import get_logger
from enginekeeper.exceptions import FileOperationError
from enginekeeper.constants import MAX_FILE_SIZE


logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Check that ``path`` is an existing regular file and resolve it."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def _atomic_write(target: Path, content: str) -> None:
    """Atomically write text to a file using a temporary file + replace."""
    temp_path: Optional[Path] = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(target.parent),
            delete=False,
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)

        temp_path.replace(target)

    except OSError as exc:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
                logger.debug("Cleaned up temporary file: %s", temp_path)
            except OSError as cleanup_exc:
                logger.warning(
                    "Failed to clean up temporary file %s: %s",
                    temp_path,
                    cleanup_exc,
                )

        raise FileOperationError(
            f"Atomic write failed: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc


def _backup_path(path: Path) -> Path:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    return path.with_suffix(f"{path.suffix}.{timestamp}.backup")


def create_backup(file_path: PathLike) -> Path:
    """Copy ``file_path`` to ``<name>.<timestamp>.backup`` next to it.

    Returns:
        Path of the backup copy.
    """
    path = _validated_file(Path(file_path))
    backup = _backup_path(path)

    try:
        shutil.copy2(path, backup)
    except OSError as exc:
        raise FileOperationError(
            f"Failed to create backup: {exc}",
            file_path=str(path),
            operation="backup",
            original_error=exc,
        ) from exc

    logger.debug("Created backup: %s", backup)
    return backup


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Safely read a text file with optional size limits.

    Args:
        file_path: Path to the file.
        max_size: Maximum allowed file size in bytes (None disables limit).
        encoding: Text encoding.

    Returns:
        File contents as a string.

    Raises:
        FileOperationError: The file is missing, too large or unreadable.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        return path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc


def safe_write_file(
    file_path: PathLike,
    content: str,
    *,
    backup: bool = False,
) -> Optional[Path]:
    """Safely write text to an existing file using atomic replacement.

    Args:
        file_path: Destination path. Its directory must exist.
        content: Text content to write.
        backup: Keep a timestamped copy of the previous contents.

    Returns:
        Path to the created backup, if any.

    Raises:
        FileOperationError: The backup or the write failed. A failed write
            leaves the original file untouched.
    """
    path = Path(file_path)
    backup_path: Optional[Path] = None

    if backup and path.is_file():
        backup_path = create_backup(path)

    _atomic_write(path, content)
    logger.debug("Wrote %d characters to %s", len(content), path)
    return backup_path


def validate_directory(path: PathLike) -> Path:
    """Resolve ``path`` and check it is an existing directory.

    Raises:
        FileOperationError: ``path`` does not exist or is not a directory.
    """
    resolved = Path(path).expanduser().resolve(strict=False)

    if not resolved.is_dir():
        raise FileOperationError(
            f"Not a directory: {resolved}",
            file_path=str(path),
            operation="validate",
        )

    return resolved
