"""Tests for the offload error types."""

from photo_offloader.errors import (
    BatchError,
    FileCopyError,
    FileRemoveError,
    OffloadError,
    SubdirectoryError,
)


class TestFileOperationError:

    def test_message_names_action_and_file(self):
        error = FileCopyError('DSC0001.ARW', OSError("No space left on device"))

        assert str(error) == "copying file DSC0001.ARW: No space left on device"
        assert error.file_name == 'DSC0001.ARW'
        assert error.context == {'file_name': 'DSC0001.ARW'}
        assert isinstance(error, OffloadError)

    def test_subdirectory_wraps_inner_error(self):
        inner = FileRemoveError('x.xmp', PermissionError("denied"))

        error = SubdirectoryError('20260101', inner)

        assert str(error) == "processing subdirectory 20260101: removing file x.xmp: denied"
        assert error.cause is inner


class TestBatchError:

    def test_combine_nothing(self):
        assert BatchError.combine([]) is None
        assert BatchError.combine([None, None]) is None

    def test_combine_flattens_nested_batches(self):
        a = FileCopyError('a.arw', OSError("x"))
        b = FileCopyError('b.arw', OSError("y"))
        c = FileRemoveError('c.arw', OSError("z"))

        combined = BatchError.combine([BatchError([a, b]), None, c])

        assert list(combined) == [a, b, c]
        assert len(combined) == 3
        assert combined.context == {'failed': 3}

    def test_message_lists_every_failure(self):
        error = BatchError([ValueError("one"), ValueError("two")])

        assert str(error) == "one\ntwo"
