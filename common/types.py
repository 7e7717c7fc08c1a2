"""Shared data type definitions (FileHandle, ByteRange)."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class FileHandle:
    """
    Immutable reference to a local file selected for upload.
    """
    path: str
    length: int

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "FileHandle":
        """
        Build a handle from a filesystem path.

        Args:
            path: Path to an existing regular file

        Returns:
            FileHandle with the file's current length

        Raises:
            OSError: If the file cannot be stat'ed
        """
        resolved = os.path.abspath(os.fspath(path))
        return cls(path=resolved, length=os.path.getsize(resolved))

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


@dataclass(frozen=True)
class ByteRange:
    """
    Inclusive byte range reported by the server as already received.
    """
    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1
