"""Capture timestamp extraction from EXIF metadata."""

import logging
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

import exifread

from .errors import TimestampUnavailableError

logger = logging.getLogger(__name__)

DATE_TAGS = ('EXIF DateTimeOriginal', 'EXIF DateTimeDigitized', 'Image DateTime')
EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'


def read_capture_time(fh: BinaryIO) -> datetime:
    """
    Read the capture timestamp from an open image file.

    Args:
        fh: File opened in binary mode

    Returns:
        Capture time as a naive datetime, exactly as the camera recorded it

    Raises:
        TimestampUnavailableError: tag missing, metadata unreadable or value malformed
    """
    try:
        tags = exifread.process_file(fh, details=False)
    except Exception as e:
        raise TimestampUnavailableError(f"unreadable metadata: {e}") from e

    if not tags:
        raise TimestampUnavailableError("no EXIF metadata")

    for tag_name in DATE_TAGS:
        tag = tags.get(tag_name)
        if not tag:
            continue
        # Format: "2020:07:28 11:49:03"
        value = str(tag).strip().rstrip('\x00')
        try:
            return datetime.strptime(value[:19], EXIF_DATE_FORMAT)
        except ValueError:
            logger.debug(f"Malformed {tag_name} value: {value!r}")

    raise TimestampUnavailableError("no capture date tag")


def capture_time_for(file_path: Path) -> datetime:
    """Open file_path and read its capture timestamp."""
    try:
        with open(file_path, 'rb') as f:
            return read_capture_time(f)
    except OSError as e:
        raise TimestampUnavailableError(f"cannot open file: {e}", path=str(file_path)) from e
