"""
Exception taxonomy for the uploader.

Every error raised by the transfer core derives from ``UploaderError`` and
keeps the lower-level cause chained (``raise ... from exc``) so callers can
report the operation, the path or key involved, and the original failure.
"""

from typing import List, Optional


class UploaderError(Exception):
    """Base class for all uploader errors."""


class ConfigurationError(UploaderError):
    """Invalid transfer configuration or missing credentials."""


class ProfileError(UploaderError):
    """Profile store could not be read, written, or updated."""


class PathAccessError(UploaderError):
    """The source path is missing or cannot be statted."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        message = f"error accessing path: {path}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class TraversalError(UploaderError):
    """A recursive walk hit an entry it could not read."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        message = f"error walking directory at {path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class TransferError(UploaderError):
    """A chunk upload or the final assembly of an object failed."""

    def __init__(self, source_path: str, cause: Optional[BaseException] = None,
                 key: Optional[str] = None):
        self.source_path = source_path
        self.cause = cause
        self.key = key
        # Objects stored earlier in the same batch
        self.completed: List = []
        message = f"unable to upload file {source_path}"
        if key:
            message += f" as {key}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class SigningError(UploaderError):
    """A presigned retrieval URL could not be produced for one object."""

    def __init__(self, key: str, cause: Optional[BaseException] = None):
        self.key = key
        self.cause = cause
        message = f"couldn't generate presigned URL for {key}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
