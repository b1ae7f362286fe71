"""
Path Utilities

Helper functions for directory operations on the capture filesystem.
"""

import logging
import os
from pathlib import Path
from typing import Iterator, Sequence, Tuple


logger = logging.getLogger(__name__)


def ensure_directory(path: Path, create: bool = True) -> bool:
    """
    Ensure directory exists.

    Args:
        path: Directory path
        create: If True, create if doesn't exist

    Returns:
        True if directory exists or was created

    Example:
        ensure_directory(Path("/backingfiles/archive_scratch"))
    """
    try:
        if path.exists():
            if not path.is_dir():
                logger.error(f"Path exists but is not a directory: {path}")
                return False
            return True

        if create:
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created directory: {path}")
            return True

        return False

    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def is_video_file(path, extensions: Sequence[str] = (".mp4",)) -> bool:
    """Check the file extension, case-insensitively"""
    return str(path).lower().endswith(tuple(ext.lower() for ext in extensions))


def iter_files_by_age(root: Path) -> Iterator[Tuple[float, int, Path]]:
    """
    List regular files under root, oldest first.

    Symlinks are skipped: deleting a link frees nothing.

    Yields:
        Tuples of (mtime, size_bytes, path)
    """
    entries = []
    for dirpath, _dirnames, filenames in os.walk(root, followlinks=False):
        for name in filenames:
            path = Path(dirpath) / name
            try:
                st = path.lstat()
            except OSError:
                continue
            if path.is_symlink():
                continue
            entries.append((st.st_mtime, st.st_size, path))

    entries.sort(key=lambda e: (e[0], str(e[2])))
    yield from entries


def remove_empty_directories(root: Path) -> int:
    """
    Remove empty directories below root (root itself is kept).

    Walks bottom-up so nested empty directories collapse in one pass.

    Returns:
        Number of directories removed
    """
    removed = 0
    root = Path(root)
    for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
        path = Path(dirpath)
        if path == root:
            continue
        try:
            if not any(path.iterdir()):
                path.rmdir()
                removed += 1
        except OSError as e:
            logger.debug(f"Could not remove {path}: {e}")
    return removed


def format_size(size_bytes: int) -> str:
    """
    Format byte count as a human-readable string.

    Example:
        format_size(5_000_000_000)  # "4.66 GB"
    """
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024 or unit == "GB":
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"
