"""
Photo Offload Tool

Moves photos off a camera card into a date-organized archive: one folder per
busy day, one folder per multi-day event, everything else at the archive
root. Cleans the card afterwards and removes orphaned edit sidecars.
"""

__version__ = "1.0.0"
__author__ = "Homelab Team"

from .config import Config, OffloadSettings, ThresholdConfig
from .clustering import Cluster, DayBucket, FileRecord, cluster_days, group_by_date
from .errors import BatchError, OffloadError
from .transfer import FileTransfer, TransferOutcome
from .sidecars import SidecarCleaner
from .offloader import PhotoOffloader, RunSummary
from .reporter import OffloadReporter

__all__ = [
    'Config',
    'OffloadSettings',
    'ThresholdConfig',
    'Cluster',
    'DayBucket',
    'FileRecord',
    'cluster_days',
    'group_by_date',
    'BatchError',
    'OffloadError',
    'FileTransfer',
    'TransferOutcome',
    'SidecarCleaner',
    'PhotoOffloader',
    'RunSummary',
    'OffloadReporter',
]
