"""Exception hierarchy for photo offloading."""

from typing import Any, Dict, Iterable, List, Optional


class OffloadError(Exception):
    """Base exception for all photo offloading errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class DirectoryError(OffloadError):
    """A directory could not be listed or created."""
    pass


class InsufficientSpaceError(OffloadError):
    """Destination does not have room for the pending copy pass."""
    pass


class TimestampUnavailableError(OffloadError):
    """No capture timestamp could be read from a file."""
    pass


class FileOperationError(OffloadError):
    """Base exception for failures on a single directory entry."""

    action = "processing file"

    def __init__(self, file_name: str, cause: BaseException) -> None:
        super().__init__(f"{self.action} {file_name}: {cause}", file_name=file_name)
        self.file_name = file_name
        self.cause = cause


class FileCopyError(FileOperationError):
    action = "copying file"


class FileRemoveError(FileOperationError):
    action = "removing file"


class SidecarProbeError(FileOperationError):
    action = "checking primary file for"


class SubdirectoryError(FileOperationError):
    action = "processing subdirectory"


class BatchError(OffloadError):
    """Several independent failures collected from one batch of work.

    Counts returned next to a BatchError are still valid: the error only
    says that some subset of the batch failed.
    """

    def __init__(self, errors: List[Exception]) -> None:
        super().__init__("\n".join(str(e) for e in errors), failed=len(errors))
        self.errors = errors

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    @classmethod
    def combine(cls, errors: Iterable[Optional[Exception]]) -> Optional["BatchError"]:
        """Join errors into one BatchError, or None when there are none.

        None entries are dropped and nested BatchErrors are flattened.
        """
        flat: List[Exception] = []
        for error in errors:
            if error is None:
                continue
            if isinstance(error, BatchError):
                flat.extend(error.errors)
            else:
                flat.append(error)
        if not flat:
            return None
        return cls(flat)
