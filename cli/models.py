"""Command request data types for the shell."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class AddCommand:
    """Queue files for upload."""

    file_list: tuple[str, ...]
    command: Literal["add"] = "add"


@dataclass(frozen=True)
class StartCommand:
    """Start a queued upload."""

    session_id: str
    url: str | None = None
    additional_data: str = ""
    command: Literal["start"] = "start"


@dataclass(frozen=True)
class UploadCommand:
    """Queue one file and start it right away."""

    file_path: str
    url: str | None = None
    additional_data: str = ""
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class CancelCommand:
    session_id: str
    command: Literal["cancel"] = "cancel"


@dataclass(frozen=True)
class ListCommand:
    """List active uploads."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class EnableCommand:
    """Allow or refuse new files."""

    enabled: bool
    command: Literal["enable", "disable"] = "enable"


CommandRequest = (
    AddCommand
    | StartCommand
    | UploadCommand
    | CancelCommand
    | ListCommand
    | EnableCommand
)
