"""Configuration management for photo offloading."""

import copy
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

UNDATED_POLICIES = ('skip', 'root')

DEFAULTS: Dict[str, Any] = {
    'offload': {
        'paths': {
            'source': 'E:\\DCIM\\100MSDCF',
            'destination': 'D:\\raw',
            'previews_destination': 'D:\\jpg',
        },
        'extensions': {
            'primary': ['arw', 'raw'],
            'previews': ['jpg', 'jpeg'],
            'sidecars': ['xmp'],
        },
        'thresholds': {
            'single_day': 700,
            'consecutive_days': 300,
        },
        'process': {
            'dry_run': False,
            'overwrite': False,
            'keep_previews': True,
            'delete_zombie_sidecars': True,
            'recursive_sidecar_cleanup': True,
            'parallel_jobs': 8,
            'undated_policy': 'skip',
        },
        'safety': {
            'min_free_space_gb': 1,
        },
    },
    'logging': {
        'level': 'INFO',
        'log_dir': None,
        'report_dir': None,
    },
}


def normalize_extensions(extensions: List[str]) -> Tuple[str, ...]:
    """Lowercase, strip dots and de-duplicate extensions, keeping order."""
    seen = []
    for ext in extensions or []:
        ext = str(ext).strip().lstrip('.').lower()
        if ext and ext not in seen:
            seen.append(ext)
    return tuple(seen)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _is_unset(path: Path) -> bool:
    return str(path) in ('', '.')


@dataclass(frozen=True)
class ThresholdConfig:
    """Volume thresholds for folder creation."""
    # Minimum photos on one day for that day to get its own folder
    single_day: int = 700
    # Minimum photos per day for contiguous days to merge into an event folder
    consecutive_days: int = 300


@dataclass(frozen=True)
class OffloadSettings:
    """Immutable options for one offload run."""
    source: Path
    destination: Path
    previews_destination: Path
    primary_extensions: Tuple[str, ...] = ('arw', 'raw')
    preview_extensions: Tuple[str, ...] = ('jpg', 'jpeg')
    sidecar_extensions: Tuple[str, ...] = ('xmp',)
    thresholds: ThresholdConfig = ThresholdConfig()
    dry_run: bool = False
    overwrite: bool = False
    keep_previews: bool = True
    delete_zombie_sidecars: bool = True
    recursive_sidecar_cleanup: bool = True
    parallel_jobs: int = 8
    undated_policy: str = 'skip'
    min_free_space_bytes: int = 1024 * 1024 * 1024
    show_progress: bool = False

    def with_overrides(self, **overrides: Any) -> 'OffloadSettings':
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


class Config:
    """Manages configuration for photo offloading from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches for config files
                and falls back to built-in defaults.
        """
        self.config_path = config_path or self._find_config_file()
        self.config: Dict[str, Any] = {}
        self._load_config()

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations."""
        possible_paths = [
            Path.cwd() / "config.local.yml",
            Path.cwd() / "config.yml",
            Path(__file__).parent / "config.local.yml",
            Path(__file__).parent / "config.yml",
        ]

        for config_file in possible_paths:
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return str(config_file.resolve())

        logger.info("No configuration file found, using built-in defaults")
        return None

    def _load_config(self) -> None:
        """Load configuration from YAML file on top of the defaults."""
        if self.config_path is None:
            self.config = copy.deepcopy(DEFAULTS)
            return

        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_path}")
        except Exception as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise

        self.config = _merge(DEFAULTS, loaded)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'offload.thresholds.single_day'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def get_source_dir(self) -> str:
        return self.get('offload.paths.source', '')

    def get_destination_dir(self) -> str:
        return self.get('offload.paths.destination', '')

    def get_previews_destination_dir(self) -> str:
        return self.get('offload.paths.previews_destination', '')

    def get_extensions(self) -> Dict[str, Tuple[str, ...]]:
        """Get primary, preview and sidecar extensions, normalized."""
        extensions = self.get('offload.extensions', {})
        return {
            'primary': normalize_extensions(extensions.get('primary', [])),
            'previews': normalize_extensions(extensions.get('previews', [])),
            'sidecars': normalize_extensions(extensions.get('sidecars', [])),
        }

    def get_thresholds(self) -> ThresholdConfig:
        return ThresholdConfig(
            single_day=int(self.get('offload.thresholds.single_day', 700)),
            consecutive_days=int(self.get('offload.thresholds.consecutive_days', 300)),
        )

    def get_parallel_jobs(self) -> int:
        """Get number of parallel jobs to run."""
        return self.get('offload.process.parallel_jobs', 8)

    def get_min_free_space_gb(self) -> float:
        """Get minimum free space to leave on the destination in GB."""
        return self.get('offload.safety.min_free_space_gb', 1)

    def get_undated_policy(self) -> str:
        return str(self.get('offload.process.undated_policy', 'skip')).lower()

    def is_dry_run(self) -> bool:
        """Check if this is a dry run."""
        return bool(self.get('offload.process.dry_run', False))

    def get_log_level(self) -> str:
        """Get logging level."""
        return self.get('logging.level', 'INFO')

    def get_log_dir(self) -> Optional[str]:
        return self.get('logging.log_dir')

    def get_report_dir(self) -> Optional[str]:
        return self.get('logging.report_dir')

    def validate_config(
        self,
        settings: Optional[OffloadSettings] = None,
        require_source: bool = True,
    ) -> List[str]:
        """
        Validate configuration and return list of errors.

        Args:
            settings: Settings to check, e.g. with CLI overrides applied
                (built from this config if None)
            require_source: Whether the source directory must exist

        Returns:
            List of validation error messages
        """
        if settings is None:
            settings = self.to_settings()
        errors = []

        if require_source:
            if _is_unset(settings.source):
                errors.append("Source directory not configured")
            elif not settings.source.exists():
                errors.append(f"Source directory does not exist: {settings.source}")

        if _is_unset(settings.destination):
            errors.append("Destination directory not configured")

        if not settings.primary_extensions:
            errors.append("No primary file extensions configured")

        thresholds = settings.thresholds
        if thresholds.single_day < 1 or thresholds.consecutive_days < 1:
            errors.append(
                f"Invalid thresholds: single_day={thresholds.single_day}, "
                f"consecutive_days={thresholds.consecutive_days} (must be >= 1)"
            )

        if settings.parallel_jobs < 1 or settings.parallel_jobs > 32:
            errors.append(f"Invalid parallel_jobs value: {settings.parallel_jobs} (must be 1-32)")

        if settings.undated_policy not in UNDATED_POLICIES:
            errors.append(
                f"Invalid undated_policy: {settings.undated_policy} "
                f"(must be one of {', '.join(UNDATED_POLICIES)})"
            )

        return errors

    def to_settings(self, **overrides: Any) -> OffloadSettings:
        """
        Build the immutable settings for one run.

        Args:
            **overrides: OffloadSettings fields to replace; None values are ignored

        Returns:
            OffloadSettings instance
        """
        extensions = self.get_extensions()
        process = self.get('offload.process', {})
        settings = OffloadSettings(
            source=Path(self.get_source_dir() or ''),
            destination=Path(self.get_destination_dir() or ''),
            previews_destination=Path(self.get_previews_destination_dir() or ''),
            primary_extensions=extensions['primary'],
            preview_extensions=extensions['previews'],
            sidecar_extensions=extensions['sidecars'],
            thresholds=self.get_thresholds(),
            dry_run=self.is_dry_run(),
            overwrite=bool(process.get('overwrite', False)),
            keep_previews=bool(process.get('keep_previews', True)),
            delete_zombie_sidecars=bool(process.get('delete_zombie_sidecars', True)),
            recursive_sidecar_cleanup=bool(process.get('recursive_sidecar_cleanup', True)),
            parallel_jobs=int(self.get_parallel_jobs()),
            undated_policy=self.get_undated_policy(),
            min_free_space_bytes=int(self.get_min_free_space_gb() * 1024 * 1024 * 1024),
        )
        return settings.with_overrides(**overrides)

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"Config(path={self.config_path}, source={self.get_source_dir()})"
