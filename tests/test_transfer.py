"""Tests for dated file transfer."""

from pathlib import Path
from unittest.mock import patch

import pytest

from photo_offloader.clustering import ROOT_FOLDER, Cluster
from photo_offloader.errors import (
    BatchError,
    DirectoryError,
    FileCopyError,
    InsufficientSpaceError,
)
from photo_offloader.transfer import FileTransfer
from photo_offloader.utils import copy_file as real_copy_file


def tree(directory: Path):
    """Relative paths of all files under directory."""
    if not directory.exists():
        return set()
    return {str(p.relative_to(directory)) for p in directory.rglob('*') if p.is_file()}


class TestPlan:
    """Test reading dates and assigning folders."""

    def test_event_day_and_root_folders(self, make_settings, create_photo, card_dir, fake_capture_times):
        # Jan 1 + Jan 2: 2 each -> event; Jan 5: 3 -> own folder; Jan 9: 1 -> root
        for i in range(2):
            create_photo(f'a{i}.ARW', '2026-01-01 10:00')
            create_photo(f'b{i}.arw', '2026-01-02 11:00')
        for i in range(3):
            create_photo(f'c{i}.arw', '2026-01-05 12:00')
        create_photo('d0.arw', '2026-01-09 08:00')
        create_photo('preview.jpg', '2026-01-09 08:00')

        plan = FileTransfer(make_settings()).plan(card_dir, 'arw')

        folders = {c.destination_folder: sorted(c.files) for c in plan.clusters}
        assert folders == {
            '20260101-20260102': ['a0.ARW', 'a1.ARW', 'b0.arw', 'b1.arw'],
            '20260105': ['c0.arw', 'c1.arw', 'c2.arw'],
            ROOT_FOLDER: ['d0.arw'],
        }
        assert plan.file_count == 8
        assert plan.undated == []

    def test_subdirectories_are_ignored(self, make_settings, create_photo, card_dir, fake_capture_times):
        create_photo('top.arw', '2026-01-01 10:00')
        (card_dir / 'nested.arw').mkdir()

        plan = FileTransfer(make_settings()).plan(card_dir, 'arw')

        assert plan.file_count == 1

    def test_undated_files_skipped_by_default(self, make_settings, create_photo, card_dir, fake_capture_times):
        create_photo('dated.arw', '2026-01-01 10:00')
        create_photo('nodate.arw')

        plan = FileTransfer(make_settings()).plan(card_dir, 'arw')

        assert plan.undated == ['nodate.arw']
        assert [f for c in plan.clusters for f in c.files] == ['dated.arw']

    def test_undated_files_go_to_root_with_root_policy(
        self, make_settings, create_photo, card_dir, fake_capture_times
    ):
        create_photo('dated.arw', '2026-01-01 10:00')
        create_photo('nodate.arw')

        plan = FileTransfer(make_settings(undated_policy='root')).plan(card_dir, 'arw')

        root_files = [f for c in plan.clusters if c.is_root for f in c.files]
        assert sorted(root_files) == ['dated.arw', 'nodate.arw']

    def test_missing_source_is_fatal(self, make_settings, tmp_path):
        with pytest.raises(DirectoryError):
            FileTransfer(make_settings()).plan(tmp_path / 'no-card', 'arw')


class TestTransfer:
    """Test copying into the assigned folders."""

    def test_copies_bytes_into_folders(self, make_settings, create_photo, card_dir, archive_dir):
        create_photo('a.arw', content=b'\x00\x01raw-a')
        create_photo('b.arw', content=b'raw-b' * 1000)
        archive_dir.mkdir(parents=True)
        clusters = [
            Cluster(files=['a.arw'], destination_folder='20260115'),
            Cluster(files=['b.arw'], destination_folder=ROOT_FOLDER),
        ]

        outcome = FileTransfer(make_settings()).transfer(card_dir, archive_dir, clusters)

        assert outcome.copied == 2
        assert outcome.error is None
        assert (archive_dir / '20260115' / 'a.arw').read_bytes() == b'\x00\x01raw-a'
        assert (archive_dir / 'b.arw').read_bytes() == b'raw-b' * 1000
        assert outcome.copied_bytes == len(b'\x00\x01raw-a') + 5000
        assert sorted(outcome.processed) == ['a.arw', 'b.arw']

    def test_existing_file_skipped_without_overwrite(self, make_settings, create_photo, card_dir, archive_dir):
        create_photo('a.arw', content=b'new')
        archive_dir.mkdir(parents=True)
        (archive_dir / 'a.arw').write_bytes(b'old')

        outcome = FileTransfer(make_settings()).transfer(
            card_dir, archive_dir, [Cluster(files=['a.arw'], destination_folder=ROOT_FOLDER)]
        )

        assert outcome.copied == 0
        assert outcome.skipped == 1
        assert outcome.processed == ['a.arw']
        assert (archive_dir / 'a.arw').read_bytes() == b'old'

    def test_existing_file_replaced_with_overwrite(self, make_settings, create_photo, card_dir, archive_dir):
        create_photo('a.arw', content=b'new')
        archive_dir.mkdir(parents=True)
        (archive_dir / 'a.arw').write_bytes(b'old-and-longer')

        outcome = FileTransfer(make_settings(overwrite=True)).transfer(
            card_dir, archive_dir, [Cluster(files=['a.arw'], destination_folder=ROOT_FOLDER)]
        )

        assert outcome.copied == 1
        assert (archive_dir / 'a.arw').read_bytes() == b'new'

    def test_dry_run_is_idempotent_and_touches_nothing(self, make_settings, create_photo, card_dir, archive_dir):
        for i in range(4):
            create_photo(f'p{i}.arw')
        clusters = [Cluster(files=[f'p{i}.arw' for i in range(4)], destination_folder='20260101-20260102')]
        before = tree(card_dir)
        transfer = FileTransfer(make_settings(dry_run=True))

        first = transfer.transfer(card_dir, archive_dir, clusters)
        second = transfer.transfer(card_dir, archive_dir, clusters)

        assert first.copied == second.copied == 4
        assert not archive_dir.exists()
        assert tree(card_dir) == before

    def test_failed_copy_does_not_stop_siblings(self, make_settings, create_photo, card_dir, archive_dir):
        for name in ('ok1.arw', 'bad.arw', 'ok2.arw'):
            create_photo(name)
        archive_dir.mkdir(parents=True)

        def flaky_copy(source, destination, *args, **kwargs):
            if Path(source).name == 'bad.arw':
                raise PermissionError("card is write-protected")
            return real_copy_file(source, destination, *args, **kwargs)

        with patch('photo_offloader.transfer.copy_file', side_effect=flaky_copy):
            outcome = FileTransfer(make_settings()).transfer(
                card_dir, archive_dir,
                [Cluster(files=['ok1.arw', 'bad.arw', 'ok2.arw'], destination_folder=ROOT_FOLDER)],
            )

        assert outcome.copied == 2
        assert sorted(outcome.processed) == ['ok1.arw', 'ok2.arw']
        assert isinstance(outcome.error, BatchError)
        assert len(outcome.error) == 1
        failure = outcome.error.errors[0]
        assert isinstance(failure, FileCopyError)
        assert failure.file_name == 'bad.arw'
        assert 'copying file bad.arw' in str(outcome.error)
        assert tree(archive_dir) == {'ok1.arw', 'ok2.arw'}

    def test_all_failures_collected(self, make_settings, create_photo, card_dir, archive_dir):
        names = [f'p{i}.arw' for i in range(10)]
        for name in names:
            create_photo(name)
        archive_dir.mkdir(parents=True)

        with patch('photo_offloader.transfer.copy_file', side_effect=OSError("disk error")):
            outcome = FileTransfer(make_settings(parallel_jobs=3)).transfer(
                card_dir, archive_dir, [Cluster(files=names, destination_folder=ROOT_FOLDER)]
            )

        assert outcome.copied == 0
        assert sorted(e.file_name for e in outcome.error) == names

    def test_folder_creation_failure_is_fatal(self, make_settings, create_photo, card_dir, archive_dir):
        create_photo('a.arw')
        archive_dir.mkdir(parents=True)
        # A file where the day folder should go
        (archive_dir / '20260115').write_bytes(b'')

        with pytest.raises(DirectoryError):
            FileTransfer(make_settings()).transfer(
                card_dir, archive_dir, [Cluster(files=['a.arw'], destination_folder='20260115')]
            )


class TestCopyExtension:
    """Test the full per-extension pass."""

    def test_pass_copies_into_dated_folders(
        self, make_settings, create_photo, card_dir, archive_dir, fake_capture_times
    ):
        for i in range(3):
            create_photo(f'busy{i}.arw', '2026-02-14 09:00')
        create_photo('quiet.arw', '2026-02-20 09:00')
        create_photo('other.raw', '2026-02-14 09:00')
        archive_dir.mkdir(parents=True)

        outcome = FileTransfer(make_settings()).copy_extension(card_dir, archive_dir, 'arw')

        assert outcome.copied == 4
        assert tree(archive_dir) == {
            '20260214/busy0.arw', '20260214/busy1.arw', '20260214/busy2.arw', 'quiet.arw',
        }

    def test_undated_count_reported(
        self, make_settings, create_photo, card_dir, archive_dir, fake_capture_times
    ):
        create_photo('nodate.arw')
        archive_dir.mkdir(parents=True)

        outcome = FileTransfer(make_settings()).copy_extension(card_dir, archive_dir, 'arw')

        assert outcome.copied == 0
        assert outcome.undated == 1
        assert tree(archive_dir) == set()

    def test_insufficient_space_is_fatal(
        self, make_settings, create_photo, card_dir, archive_dir, fake_capture_times
    ):
        create_photo('a.arw', '2026-01-01 10:00', content=b'x' * 1000)
        archive_dir.mkdir(parents=True)

        with patch('photo_offloader.transfer.get_available_space', return_value=1):
            with pytest.raises(InsufficientSpaceError, match='Insufficient space'):
                FileTransfer(make_settings()).copy_extension(card_dir, archive_dir, 'arw')

        assert tree(archive_dir) == set()

    def test_existing_files_not_counted_against_free_space(
        self, make_settings, create_photo, card_dir, archive_dir, fake_capture_times
    ):
        create_photo('big.arw', '2026-01-01 10:00', content=b'x' * 10000)
        archive_dir.mkdir(parents=True)
        (archive_dir / 'big.arw').write_bytes(b'x' * 10000)

        with patch('photo_offloader.transfer.get_available_space', return_value=100):
            outcome = FileTransfer(make_settings()).copy_extension(card_dir, archive_dir, 'arw')

        assert outcome.skipped == 1
        assert outcome.copied == 0
        assert outcome.error is None

    def test_existing_files_counted_when_overwriting(
        self, make_settings, create_photo, card_dir, archive_dir, fake_capture_times
    ):
        create_photo('big.arw', '2026-01-01 10:00', content=b'x' * 10000)
        archive_dir.mkdir(parents=True)
        (archive_dir / 'big.arw').write_bytes(b'x' * 10000)

        with patch('photo_offloader.transfer.get_available_space', return_value=100):
            with pytest.raises(InsufficientSpaceError):
                FileTransfer(make_settings(overwrite=True)).copy_extension(card_dir, archive_dir, 'arw')

    def test_pending_bytes_skip_only_existing_targets(
        self, make_settings, create_photo, card_dir, archive_dir, fake_capture_times
    ):
        for i in range(3):
            create_photo(f'day{i}.arw', '2026-02-14 09:00', content=b'x' * 100)
        create_photo('quiet.arw', '2026-02-20 09:00', content=b'x' * 7)
        (archive_dir / '20260214').mkdir(parents=True)
        (archive_dir / '20260214' / 'day1.arw').write_bytes(b'')
        # Same name, wrong folder: still has to be copied
        (archive_dir / 'day2.arw').write_bytes(b'')
        transfer = FileTransfer(make_settings())

        plan = transfer.plan(card_dir, 'arw')

        assert transfer.pending_bytes(archive_dir, plan) == 207


class TestRemoveSources:

    def test_removes_only_named_files(self, make_settings, create_photo, card_dir):
        create_photo('a.arw')
        create_photo('b.arw')
        create_photo('keep.jpg')

        removed, error = FileTransfer(make_settings()).remove_sources(card_dir, ['a.arw', 'b.arw'])

        assert removed == 2
        assert error is None
        assert tree(card_dir) == {'keep.jpg'}

    def test_missing_file_reported(self, make_settings, create_photo, card_dir):
        create_photo('a.arw')

        removed, error = FileTransfer(make_settings()).remove_sources(card_dir, ['a.arw', 'gone.arw'])

        assert removed == 1
        assert len(error) == 1
        assert 'removing file gone.arw' in str(error)
