"""Offload orchestration: copy passes, source cleanup, sidecar cleanup."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import OffloadSettings
from .errors import BatchError
from .sidecars import SidecarCleaner
from .transfer import FileTransfer, TransferOutcome, TransferPlan
from .utils import ensure_directory, format_bytes, get_current_timestamp

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Totals for one offload run."""
    dry_run: bool = False
    copied: int = 0
    skipped: int = 0
    undated: int = 0
    copied_bytes: int = 0
    removed: int = 0
    sidecars_removed: int = 0
    source_cleaned: bool = False
    started: str = ''
    finished: str = ''
    errors: Optional[BatchError] = None
    per_extension: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def removed_total(self) -> int:
        """Source files removed plus zombie sidecars deleted."""
        return self.removed + self.sidecars_removed

    @property
    def success(self) -> bool:
        return self.errors is None

    def add(self, extension: str, destination: Path, outcome: TransferOutcome) -> None:
        self.copied += outcome.copied
        self.skipped += outcome.skipped
        self.undated += outcome.undated
        self.copied_bytes += outcome.copied_bytes
        self.errors = BatchError.combine([self.errors, outcome.error])
        self.per_extension.append({
            'extension': extension,
            'destination': str(destination),
            'copied': outcome.copied,
            'skipped': outcome.skipped,
            'undated': outcome.undated,
            'failed': len(outcome.error) if outcome.error else 0,
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dry_run': self.dry_run,
            'started': self.started,
            'finished': self.finished,
            'statistics': {
                'files_copied': self.copied,
                'files_skipped': self.skipped,
                'files_undated': self.undated,
                'files_removed': self.removed,
                'sidecars_removed': self.sidecars_removed,
                'removed_total': self.removed_total,
                'copied_size_bytes': self.copied_bytes,
                'copied_size_human': format_bytes(self.copied_bytes),
            },
            'source_cleaned': self.source_cleaned,
            'per_extension': self.per_extension,
            'errors': [str(e) for e in self.errors] if self.errors else [],
            'success': self.success,
        }


class PhotoOffloader:
    """Moves photos from a card into date-organized archive folders."""

    def __init__(self, settings: OffloadSettings):
        """
        Initialize offloader with run settings.

        Args:
            settings: Immutable settings for this run
        """
        self.settings = settings
        self.transfer = FileTransfer(settings)
        self.cleaner = SidecarCleaner(settings.parallel_jobs, settings.show_progress)
        self.mode = 'DRY RUN: ' if settings.dry_run else ''

    def _passes(self):
        """Yield (extension, destination) for every copy pass of the run."""
        for ext in self.settings.primary_extensions:
            yield ext, self.settings.destination
        if not self.settings.keep_previews:
            for ext in self.settings.preview_extensions:
                if ext not in self.settings.primary_extensions:
                    yield ext, self.settings.previews_destination

    def plan(self) -> List[TransferPlan]:
        """Folder assignment for every pass, without touching any file."""
        return [self.transfer.plan(self.settings.source, ext) for ext, _ in self._passes()]

    def run(self) -> RunSummary:
        """
        Run the full offload.

        Per-file failures are collected in the summary's errors; the summary
        counts still say how much succeeded. The source is only cleaned when
        every copy succeeded.

        Returns:
            RunSummary with copied/removed totals

        Raises:
            DirectoryError: source unreadable or a destination cannot be created
            InsufficientSpaceError: a destination is too full
        """
        settings = self.settings
        summary = RunSummary(dry_run=settings.dry_run, started=get_current_timestamp())

        if settings.dry_run:
            logger.info("Running in Dry-Run mode. No files will be modified.")
        if settings.overwrite:
            logger.info("Running in Overwrite mode. Existing files in destination will be overwritten.")
        else:
            logger.info("Running in Skip-Existing mode. Existing files in destination will be skipped.")

        processed: List[str] = []
        created = set()
        for ext, destination in self._passes():
            if not settings.dry_run and destination not in created:
                ensure_directory(destination)
                created.add(destination)
            outcome = self.transfer.copy_extension(settings.source, destination, ext)
            summary.add(ext, destination, outcome)
            processed.extend(outcome.processed)

        if settings.dry_run:
            logger.info("DRY RUN: source cleanup skipped")
        elif summary.errors:
            logger.warning(
                f"Source cleanup skipped: {len(summary.errors)} files failed to copy, "
                f"all files remain on {settings.source}"
            )
        else:
            removed, error = self.transfer.remove_sources(settings.source, processed)
            summary.removed = removed
            summary.source_cleaned = error is None
            summary.errors = BatchError.combine([summary.errors, error])

        if not settings.dry_run and settings.delete_zombie_sidecars:
            summary.sidecars_removed, error = self.clean_sidecars()
            summary.errors = BatchError.combine([summary.errors, error])

        summary.finished = get_current_timestamp()
        logger.info(
            f"{self.mode}Offload complete: {summary.copied:,} copied, "
            f"{summary.skipped:,} skipped, {summary.removed_total:,} removed, "
            f"{format_bytes(summary.copied_bytes)}"
        )
        if summary.undated:
            logger.warning(f"{summary.undated:,} files without capture date left on {settings.source}")
        return summary

    def clean_sidecars(self) -> Tuple[int, Optional[BatchError]]:
        """
        Delete zombie sidecars in the destination for every sidecar extension.

        Returns:
            Tuple of (sidecars deleted, aggregated error or None)
        """
        deleted = 0
        errors: List[Optional[Exception]] = []
        for sidecar_ext in self.settings.sidecar_extensions:
            count, error = self.cleaner.clean(
                self.settings.destination,
                sidecar_ext,
                self.settings.primary_extensions,
                self.settings.recursive_sidecar_cleanup,
            )
            deleted += count
            if error:
                logger.warning(f"{len(error)} errors while deleting .{sidecar_ext} zombie files")
            errors.append(error)
        logger.info(f"Removed {deleted:,} zombie edit files from {self.settings.destination}")
        return deleted, BatchError.combine(errors)
