"""Removal of edit sidecar files whose primary file is gone."""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from .errors import (
    BatchError,
    FileRemoveError,
    OffloadError,
    SidecarProbeError,
    SubdirectoryError,
)
from .parallel import run_batch
from .utils import has_extension, list_directory, strip_extension

logger = logging.getLogger(__name__)


class SidecarCleaner:
    """Deletes zombie sidecars (e.g. Lightroom .xmp files without their RAW).

    Files of one directory are checked on a pool of at most parallel_jobs
    threads. Subdirectories are cleaned one after another once that pool
    has finished, so only one pool is alive at a time.
    """

    def __init__(self, parallel_jobs: int = 8, show_progress: bool = False):
        self.parallel_jobs = parallel_jobs
        self.show_progress = show_progress

    def clean(
        self,
        directory: Path,
        sidecar_extension: str,
        primary_extensions: Iterable[str],
        recursive: bool = True,
    ) -> Tuple[int, Optional[BatchError]]:
        """
        Delete sidecars in directory that have no primary file next to them.

        A sidecar "name.xmp" is kept when "name.<ext>" exists for any of
        primary_extensions; extensions are compared ignoring case. When
        recursive is set, subdirectories are cleaned too and their counts
        and errors are folded into this call's result. Symlinked
        directories are not followed.

        Args:
            directory: Directory to clean
            sidecar_extension: Sidecar file extension, e.g. "xmp"
            primary_extensions: Extensions of the files sidecars belong to
            recursive: Whether to descend into subdirectories

        Returns:
            Tuple of (sidecars deleted, aggregated error or None)

        Raises:
            DirectoryError: directory itself cannot be listed
        """
        directory = Path(directory)
        primary_extensions = tuple(primary_extensions)
        entries = list_directory(directory)
        names = {entry.name for entry in entries}

        subdirs = [entry for entry in entries if entry.is_dir(follow_symlinks=False)]
        files = [entry for entry in entries if not entry.is_dir(follow_symlinks=False)]

        batch = run_batch(
            lambda entry: self._clean_file(
                directory, entry, names, sidecar_extension, primary_extensions
            ),
            files,
            self.parallel_jobs,
            desc=f"Checking {directory.name or directory}",
            show_progress=self.show_progress,
        )
        deleted = sum(batch.results)
        errors: List[Optional[Exception]] = list(batch.errors)

        if recursive:
            for entry in subdirs:
                try:
                    count, error = self.clean(Path(entry.path), sidecar_extension, primary_extensions, recursive)
                except OffloadError as e:
                    logger.warning(f"Skipping subdirectory {entry.path}: {e}")
                    errors.append(SubdirectoryError(entry.name, e))
                    continue
                deleted += count
                errors.append(error)

        return deleted, BatchError.combine(errors)

    def _clean_file(
        self,
        directory: Path,
        entry: os.DirEntry,
        names: Set[str],
        sidecar_extension: str,
        primary_extensions: Tuple[str, ...],
    ) -> int:
        # Links to directories are neither followed nor deleted
        if entry.is_dir() or not has_extension(entry.name, sidecar_extension):
            return 0

        if self._has_primary(directory, entry.name, names, sidecar_extension, primary_extensions):
            return 0

        try:
            os.remove(entry.path)
        except OSError as e:
            raise FileRemoveError(entry.name, e) from e

        logger.info(f"Removed zombie edit file: {entry.path}")
        return 1

    def _has_primary(
        self,
        directory: Path,
        sidecar_name: str,
        names: Set[str],
        sidecar_extension: str,
        primary_extensions: Tuple[str, ...],
    ) -> bool:
        """Probe directory for a primary file matching sidecar_name."""
        stem = strip_extension(sidecar_name, sidecar_extension)
        wanted = {f"{stem}.{ext}".lower() for ext in primary_extensions}

        candidates = []
        for ext in primary_extensions:
            for variant in (ext, ext.lower(), ext.upper()):
                candidates.append(f"{stem}.{variant}")
        # Listed names catch mixed-case extensions like ".Arw"
        candidates.extend(name for name in names if name.lower() in wanted)

        for candidate in dict.fromkeys(candidates):
            try:
                (directory / candidate).stat()
                return True
            except FileNotFoundError:
                continue
            except OSError as e:
                raise SidecarProbeError(sidecar_name, e) from e
        return False
