"""Notification types emitted by uploads onto the registry's event queue."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    CONTINUE = "continue"
    RETRY = "retry"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.COMPLETE, UploadStatus.FAILED, UploadStatus.CANCELED)


@dataclass(frozen=True)
class UploadQueued:
    """A file was added and is waiting for a start command."""

    session_id: str
    name: str
    total_bytes: int
    batch_size: int


@dataclass(frozen=True)
class StatusChanged:
    session_id: str
    status: UploadStatus


@dataclass(frozen=True)
class ProgressChanged:
    session_id: str
    bytes_uploaded: int
    total_bytes: int


@dataclass(frozen=True)
class UploadCompleted:
    """The server confirmed every byte; carries the final response body."""

    session_id: str
    response_text: str
    total_bytes: int


@dataclass(frozen=True)
class UploadFailed:
    session_id: str
    error_code: int
    error_description: str


UploadEvent = Union[UploadQueued, StatusChanged, ProgressChanged, UploadCompleted, UploadFailed]

EventListener = Callable[[UploadEvent], None]
