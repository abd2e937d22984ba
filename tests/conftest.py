"""Shared fixtures for photo offload tests."""

from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from photo_offloader.config import OffloadSettings, ThresholdConfig
from photo_offloader.errors import TimestampUnavailableError


@pytest.fixture
def card_dir(tmp_path):
    """Source directory standing in for a camera card."""
    path = tmp_path / 'DCIM' / '100MSDCF'
    path.mkdir(parents=True)
    return path


@pytest.fixture
def archive_dir(tmp_path):
    """Destination root (not created, the offloader creates it)."""
    return tmp_path / 'archive' / 'raw'


@pytest.fixture
def previews_dir(tmp_path):
    return tmp_path / 'archive' / 'jpg'


@pytest.fixture
def sample_config_file(tmp_path, card_dir, archive_dir, previews_dir):
    """Factory fixture: write a YAML config and return its path."""

    def _write(**process_overrides):
        config_data = {
            'offload': {
                'paths': {
                    'source': str(card_dir),
                    'destination': str(archive_dir),
                    'previews_destination': str(previews_dir),
                },
                'extensions': {
                    'primary': ['arw', 'raw'],
                    'previews': ['jpg', 'JPG', 'jpeg'],
                    'sidecars': ['xmp'],
                },
                'thresholds': {
                    'single_day': 3,
                    'consecutive_days': 2,
                },
                'process': {
                    'dry_run': False,
                    'overwrite': False,
                    'parallel_jobs': 4,
                    **process_overrides,
                },
                'safety': {
                    'min_free_space_gb': 0,
                },
            },
            'logging': {
                'level': 'DEBUG',
            },
        }
        config_path = tmp_path / 'config.yml'
        with open(config_path, 'w') as f:
            yaml.dump(config_data, f)
        return config_path

    return _write


@pytest.fixture
def sample_config(sample_config_file):
    from photo_offloader.config import Config
    return Config(str(sample_config_file()))


@pytest.fixture
def make_settings(card_dir, archive_dir, previews_dir):
    """Factory fixture: OffloadSettings pointing at the temp card and archive."""

    def _make(**overrides):
        settings = OffloadSettings(
            source=card_dir,
            destination=archive_dir,
            previews_destination=previews_dir,
            thresholds=ThresholdConfig(single_day=3, consecutive_days=2),
            parallel_jobs=4,
            min_free_space_bytes=0,
        )
        return settings.with_overrides(**overrides)

    return _make


@pytest.fixture
def capture_times():
    """Capture time per file name, read by the patched timestamp extractor."""
    return {}


@pytest.fixture
def fake_capture_times(capture_times):
    """Patch EXIF reading so files get the dates registered in capture_times."""

    def _lookup(path):
        name = Path(path).name
        if name not in capture_times:
            raise TimestampUnavailableError("no capture date tag")
        return capture_times[name]

    with patch('photo_offloader.transfer.capture_time_for', side_effect=_lookup) as mock:
        yield mock


@pytest.fixture
def create_photo(card_dir, capture_times):
    """Factory fixture: create a file on the card, optionally with a capture time."""

    def _create(name, taken=None, content=None, directory=None):
        path = (directory or card_dir) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content if content is not None else f'data-{name}'.encode())
        if taken is not None:
            if isinstance(taken, str):
                taken = datetime.strptime(taken, '%Y-%m-%d %H:%M')
            capture_times[name] = taken
        return path

    return _create
