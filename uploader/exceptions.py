"""Custom exception classes for the uploader."""

from typing import Optional

from common.constants import HTTP_ERROR, IO_ERROR, OTHER_ERROR


class UploaderException(Exception):
    """
    Base exception class for all uploader errors.
    """
    pass


class UploadError(UploaderException):
    """
    A failed chunk exchange. Recoverable through the retry budget.

    Attributes:
        code: Numeric error code reported in failure notifications
        kind: Short error kind name
        phase: Exchange phase that failed ('prepare', 'send' or 'response')
    """
    code: int = OTHER_ERROR
    kind: str = "other"

    def __init__(self, message: str, phase: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.phase = phase

    @property
    def description(self) -> str:
        if self.phase:
            return f"{self.phase}: {self.message}"
        return self.message


class TransportError(UploadError):
    """
    Raised when the network or HTTP layer fails.
    """
    code = HTTP_ERROR
    kind = "transport"


class LocalIOError(UploadError):
    """
    Raised when reading the source file fails.
    """
    code = IO_ERROR
    kind = "local_io"


class OtherError(UploadError):
    """
    Raised for anything unclassified, including unexpected response status.
    """
    code = OTHER_ERROR
    kind = "other"


class UnknownSessionError(UploaderException):
    """
    Raised when a host command names a session id that is not active.
    """
    pass


class UploadAlreadyActiveError(UploaderException):
    """
    Raised when a file resumes into a session id that is already uploading.
    """
    pass


class UploadsDisabledError(UploaderException):
    """
    Raised when files are added while the registry is disabled.
    """
    pass
