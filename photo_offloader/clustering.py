"""Grouping of dated files into day buckets and event folders."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List

from .config import ThresholdConfig

logger = logging.getLogger(__name__)

ROOT_FOLDER = "."
FOLDER_DATE_FORMAT = "%Y%m%d"


@dataclass(frozen=True)
class FileRecord:
    """A source file and its capture time."""
    name: str
    capture_time: datetime


@dataclass
class DayBucket:
    """Files captured on one calendar day."""
    day: date
    files: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.files)


@dataclass
class Cluster:
    """Files bound for one destination folder."""
    files: List[str]
    destination_folder: str

    @property
    def is_root(self) -> bool:
        return self.destination_folder == ROOT_FOLDER


def group_by_date(records: Iterable[FileRecord]) -> List[DayBucket]:
    """
    Group file records by the calendar day of their capture time.

    Args:
        records: File records in any order

    Returns:
        Day buckets sorted ascending by day
    """
    buckets: Dict[date, DayBucket] = {}
    for record in records:
        day = record.capture_time.date()
        if day not in buckets:
            buckets[day] = DayBucket(day=day)
        buckets[day].files.append(record.name)

    return [buckets[day] for day in sorted(buckets)]


def is_next_day(first: date, second: date) -> bool:
    """Check if second is the calendar day right after first."""
    return first + timedelta(days=1) == second


def format_day(day: date) -> str:
    return day.strftime(FOLDER_DATE_FORMAT)


def cluster_days(buckets: List[DayBucket], thresholds: ThresholdConfig) -> List[Cluster]:
    """
    Assign day buckets to destination folders.

    Runs of two or more contiguous days that each reach
    thresholds.consecutive_days are merged into one "first-last" folder.
    Any other day reaching thresholds.single_day gets its own folder; the
    remaining days go to the root destination. The scan is a single greedy
    pass and the run check always comes before the single-day check.

    Args:
        buckets: Day buckets sorted ascending by day
        thresholds: Volume thresholds

    Returns:
        Clusters in day order; together they contain every input file once
    """
    clusters: List[Cluster] = []

    i = 0
    while i < len(buckets):
        current = buckets[i]

        if len(current) >= thresholds.consecutive_days:
            run = [current]
            j = i + 1
            while (
                j < len(buckets)
                and is_next_day(run[-1].day, buckets[j].day)
                and len(buckets[j]) >= thresholds.consecutive_days
            ):
                run.append(buckets[j])
                j += 1

            if len(run) >= 2:
                folder = f"{format_day(run[0].day)}-{format_day(run[-1].day)}"
                files = [name for bucket in run for name in bucket.files]
                logger.debug(f"Event folder {folder}: {len(run)} days, {len(files)} files")
                clusters.append(Cluster(files=files, destination_folder=folder))
                i = j
                continue

        if len(current) >= thresholds.single_day:
            folder = format_day(current.day)
        else:
            folder = ROOT_FOLDER
        clusters.append(Cluster(files=list(current.files), destination_folder=folder))
        i += 1

    return clusters
