"""Utility functions for photo offloading."""

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Iterable, List

import psutil

from .errors import DirectoryError

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


def format_bytes(bytes_value: int) -> str:
    """
    Format bytes as human-readable string.

    Args:
        bytes_value: Size in bytes

    Returns:
        Formatted string like "1.2GB"
    """
    if bytes_value == 0:
        return "0B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_value)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.1f}{units[unit_index]}"


def get_available_space(path: Path) -> int:
    """
    Get available disk space for a path in bytes.

    Walks up to the nearest existing parent, so it works for destinations
    that have not been created yet.

    Args:
        path: Path to check

    Returns:
        Available space in bytes
    """
    probe = Path(path)
    while not probe.exists() and probe.parent != probe:
        probe = probe.parent
    try:
        return psutil.disk_usage(str(probe)).free
    except Exception as e:
        logger.error(f"Failed to get disk space for {path}: {e}")
        return 0


def ensure_directory(path: Path) -> None:
    """
    Ensure directory exists, creating it if necessary.

    Raises:
        DirectoryError: the directory could not be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(f"creating directory {path}: {e}", path=str(path)) from e


def list_directory(path: Path) -> List[os.DirEntry]:
    """
    List the entries of a directory.

    Raises:
        DirectoryError: the directory could not be read
    """
    try:
        with os.scandir(path) as it:
            return list(it)
    except OSError as e:
        raise DirectoryError(f"reading directory {path}: {e}", path=str(path)) from e


def has_extension(file_name: str, extension: str) -> bool:
    """Check if file_name ends in .extension, ignoring case."""
    suffix = '.' + extension.lstrip('.')
    return len(file_name) > len(suffix) and file_name.lower().endswith(suffix.lower())


def strip_extension(file_name: str, extension: str) -> str:
    """Remove a trailing .extension (any case) from file_name."""
    suffix_len = len(extension.lstrip('.')) + 1
    return file_name[:-suffix_len] if has_extension(file_name, extension) else file_name


def matching_files(entries: Iterable[os.DirEntry], extension: str) -> List[os.DirEntry]:
    """Regular files among entries whose name ends in extension."""
    return [
        entry for entry in entries
        if entry.is_file() and has_extension(entry.name, extension)
    ]


def copy_file(source: Path, destination: Path, chunk_size: int = COPY_CHUNK_SIZE) -> int:
    """
    Stream source into destination, replacing any existing file.

    Only content is copied; timestamps and permissions are not preserved.

    Returns:
        Number of bytes written
    """
    with open(source, 'rb') as src, open(destination, 'wb') as dst:
        shutil.copyfileobj(src, dst, chunk_size)
        return dst.tell()


def get_current_timestamp():
    """Get current timestamp as ISO string."""
    return datetime.now().isoformat()
