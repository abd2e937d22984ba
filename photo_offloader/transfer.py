"""Concurrent transfer of dated files into their destination folders."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .clustering import ROOT_FOLDER, Cluster, FileRecord, cluster_days, group_by_date
from .config import OffloadSettings
from .errors import (
    BatchError,
    FileCopyError,
    FileRemoveError,
    InsufficientSpaceError,
    TimestampUnavailableError,
)
from .parallel import run_batch
from .timestamps import capture_time_for
from .utils import (
    copy_file,
    ensure_directory,
    format_bytes,
    get_available_space,
    list_directory,
    matching_files,
)

logger = logging.getLogger(__name__)

COPIED = 'copied'
SKIPPED = 'skipped'


@dataclass
class TransferOutcome:
    """Result of one transfer pass."""
    copied: int = 0
    skipped: int = 0
    # Files left on the source because they have no capture date
    undated: int = 0
    copied_bytes: int = 0
    processed: List[str] = field(default_factory=list)
    error: Optional[BatchError] = None


@dataclass
class TransferPlan:
    """Folder assignment for one extension in one source directory."""
    extension: str
    clusters: List[Cluster] = field(default_factory=list)
    undated: List[str] = field(default_factory=list)
    total_size: int = 0
    sizes: Dict[str, int] = field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return sum(len(c.files) for c in self.clusters)


class FileTransfer:
    """Copies files from a source directory into date-based folders."""

    def __init__(self, settings: OffloadSettings):
        self.settings = settings
        self.mode = 'DRY RUN: ' if settings.dry_run else ''

    def plan(self, source_dir: Path, extension: str) -> TransferPlan:
        """
        Read capture times of every matching file and assign folders.

        Args:
            source_dir: Directory to read (not recursive)
            extension: File extension to select, matched ignoring case

        Returns:
            TransferPlan; undated files are added to the root folder when the
            undated policy is "root"

        Raises:
            DirectoryError: source_dir cannot be listed
        """
        entries = matching_files(list_directory(source_dir), extension)
        plan = TransferPlan(extension=extension)
        if not entries:
            logger.info(f"No .{extension} files in {source_dir}")
            return plan

        logger.info(f"Reading capture dates of {len(entries):,} .{extension} files")
        batch = run_batch(
            self._read_record,
            [Path(entry.path) for entry in entries],
            self.settings.parallel_jobs,
            desc=f"Reading .{extension} dates",
            show_progress=self.settings.show_progress,
        )
        records = []
        for name, capture_time, size in batch.results:
            plan.sizes[name] = size
            if capture_time is None:
                plan.undated.append(name)
                if self.settings.undated_policy == 'root':
                    plan.total_size += size
                continue
            records.append(FileRecord(name=name, capture_time=capture_time))
            plan.total_size += size

        plan.clusters = cluster_days(group_by_date(records), self.settings.thresholds)

        if plan.undated:
            if self.settings.undated_policy == 'root':
                logger.info(f"{len(plan.undated):,} .{extension} files without capture date go to the root folder")
                plan.clusters.append(Cluster(files=sorted(plan.undated), destination_folder=ROOT_FOLDER))
            else:
                logger.warning(f"{len(plan.undated):,} .{extension} files without capture date will stay on the source")

        for cluster in plan.clusters:
            logger.info(f"  {cluster.destination_folder}: {len(cluster.files):,} files")
        return plan

    def _read_record(self, path: Path) -> Tuple[str, Optional[datetime], int]:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        try:
            return path.name, capture_time_for(path), size
        except TimestampUnavailableError as e:
            logger.debug(f"No capture date for {path.name}: {e}")
            return path.name, None, size

    def pending_bytes(self, dest_dir: Path, plan: TransferPlan) -> int:
        """Bytes the pass will write; files that will be skipped are not counted."""
        total = 0
        for cluster in plan.clusters:
            target_dir = self._target_dir(dest_dir, cluster)
            for name in cluster.files:
                if not self.settings.overwrite and (target_dir / name).exists():
                    continue
                total += plan.sizes.get(name, 0)
        return total

    def _target_dir(self, dest_dir: Path, cluster: Cluster) -> Path:
        return dest_dir if cluster.is_root else dest_dir / cluster.destination_folder

    def check_space(self, dest_dir: Path, needed_bytes: int) -> None:
        """
        Make sure dest_dir can take needed_bytes plus the safety margin.

        Raises:
            InsufficientSpaceError: not enough free space
        """
        available = get_available_space(dest_dir)
        needed = needed_bytes + self.settings.min_free_space_bytes
        if needed > available:
            raise InsufficientSpaceError(
                f"Insufficient space in {dest_dir}: "
                f"need {format_bytes(needed)}, have {format_bytes(available)}",
                needed=needed, available=available,
            )
        logger.info(f"Space check OK: need {format_bytes(needed)}, have {format_bytes(available)}")

    def transfer(self, source_dir: Path, dest_dir: Path, clusters: List[Cluster]) -> TransferOutcome:
        """
        Copy every clustered file into its folder under dest_dir.

        Folder creation failures are fatal and happen before any copy
        starts. Per-file failures are collected into the outcome's error;
        the remaining files are still transferred.

        Args:
            source_dir: Directory holding the files
            dest_dir: Root destination directory
            clusters: Folder assignment from cluster_days

        Returns:
            TransferOutcome for this batch

        Raises:
            DirectoryError: a destination folder cannot be created
        """
        jobs: List[Tuple[str, Path]] = []
        for cluster in clusters:
            target_dir = self._target_dir(dest_dir, cluster)
            if not self.settings.dry_run:
                ensure_directory(target_dir)
            jobs.extend((name, target_dir) for name in cluster.files)

        outcome = TransferOutcome()
        if not jobs:
            return outcome

        batch = run_batch(
            lambda job: self._transfer_one(source_dir, *job),
            jobs,
            self.settings.parallel_jobs,
            desc="Copying files",
            show_progress=self.settings.show_progress,
        )

        for status, name, size in batch.results:
            if status == COPIED:
                outcome.copied += 1
                outcome.copied_bytes += size
            else:
                outcome.skipped += 1
            outcome.processed.append(name)
        outcome.error = batch.error

        logger.info(
            f"{self.mode}Transfer complete: {outcome.copied:,} copied, "
            f"{outcome.skipped:,} skipped, {len(batch.errors):,} failed, "
            f"{format_bytes(outcome.copied_bytes)}"
        )
        return outcome

    def _transfer_one(self, source_dir: Path, name: str, target_dir: Path) -> Tuple[str, str, int]:
        src_path = source_dir / name
        dst_path = target_dir / name

        if not self.settings.overwrite and dst_path.exists():
            logger.info(f"Skipping copying existing file: {name}")
            return SKIPPED, name, 0

        if self.settings.dry_run:
            logger.info(f"DRY RUN: would copy {name} to {target_dir}")
            return COPIED, name, src_path.stat().st_size

        try:
            size = copy_file(src_path, dst_path)
        except OSError as e:
            raise FileCopyError(name, e) from e

        logger.debug(f"Copied {name} to {target_dir}")
        return COPIED, name, size

    def copy_extension(self, source_dir: Path, dest_dir: Path, extension: str) -> TransferOutcome:
        """
        Run one full pass for a single extension: date, cluster, copy.

        Raises:
            DirectoryError: source cannot be listed or a folder cannot be created
            InsufficientSpaceError: destination is too full for the pass
        """
        logger.info(f"{self.mode}Processing .{extension} files: {source_dir} -> {dest_dir}")
        plan = self.plan(source_dir, extension)

        if not self.settings.dry_run and plan.clusters:
            self.check_space(dest_dir, self.pending_bytes(dest_dir, plan))

        outcome = self.transfer(source_dir, dest_dir, plan.clusters)
        if self.settings.undated_policy != 'root':
            outcome.undated = len(plan.undated)
        return outcome

    def remove_sources(self, source_dir: Path, names: List[str]) -> Tuple[int, Optional[BatchError]]:
        """
        Delete transferred files from the source directory.

        Args:
            source_dir: Directory the files were copied from
            names: File names to delete

        Returns:
            Tuple of (files removed, aggregated error or None)
        """
        batch = run_batch(
            lambda name: self._remove_one(source_dir, name),
            sorted(set(names)),
            self.settings.parallel_jobs,
            desc="Removing source files",
            show_progress=self.settings.show_progress,
        )
        removed = len(batch.results)
        logger.info(f"Removed {removed:,} files from {source_dir}")
        return removed, batch.error

    def _remove_one(self, source_dir: Path, name: str) -> str:
        try:
            (source_dir / name).unlink()
        except OSError as e:
            raise FileRemoveError(name, e) from e
        logger.debug(f"Removed {name}")
        return name
