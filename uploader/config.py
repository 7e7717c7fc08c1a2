"""Configuration settings for the upload core."""

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from common.constants import (
    DEFAULT_RESUME_STORE_PATH,
    FINGERPRINT_MAX_WINDOW_BYTES,
    FINGERPRINT_MIN_FILE_SIZE_BYTES,
    FINGERPRINT_POINTS,
    MAX_CHUNK_RETRIES,
    MAX_CHUNK_SIZE_BYTES,
    MIN_CHUNK_SIZE_BYTES,
    PERCENT_PRECISION,
    RESUME_RETENTION_SECONDS,
    RESUME_STORE_MAX_BYTES,
    RETRY_TIMEOUT_BASE_SECONDS,
)


RESUME_STORE_PATH = os.environ.get("FERRY_RESUME_STORE_PATH", str(DEFAULT_RESUME_STORE_PATH))

_timeout_env = os.environ.get("FERRY_REQUEST_TIMEOUT")
REQUEST_TIMEOUT: Optional[float] = float(_timeout_env) if _timeout_env else None


@dataclass(frozen=True)
class UploadSettings:
    """
    Tunables shared by the fingerprint engine, resume store, planner and state machine.
    """
    min_chunk_size: int = MIN_CHUNK_SIZE_BYTES
    max_chunk_size: int = MAX_CHUNK_SIZE_BYTES
    percent_precision: float = PERCENT_PRECISION
    max_chunk_retries: int = MAX_CHUNK_RETRIES
    retry_timeout_base: float = RETRY_TIMEOUT_BASE_SECONDS
    request_timeout: Optional[float] = REQUEST_TIMEOUT
    fingerprint_points: int = FINGERPRINT_POINTS
    fingerprint_max_window: int = FINGERPRINT_MAX_WINDOW_BYTES
    fingerprint_min_file_size: int = FINGERPRINT_MIN_FILE_SIZE_BYTES
    resume_store_path: str = RESUME_STORE_PATH
    resume_store_max_bytes: int = RESUME_STORE_MAX_BYTES
    resume_retention_seconds: int = RESUME_RETENTION_SECONDS

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UploadSettings":
        """
        Build settings from a mapping, ignoring keys that are not settings.

        Args:
            data: Mapping such as a loaded JSON config

        Returns:
            UploadSettings with defaults for missing keys
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
