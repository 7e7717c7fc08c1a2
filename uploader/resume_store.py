"""
Persistent resume store keyed by file fingerprint.

Records survive process restarts in a JSON file. Every failure to read or
write that file degrades to "no resume available": callers get an explicit
UNAVAILABLE outcome and the upload itself carries on.
"""

import json
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ValidationError, field_validator

from common.constants import (
    DEFAULT_RESUME_STORE_PATH,
    RESUME_RETENTION_SECONDS,
    RESUME_STORE_MAX_BYTES,
)
from common.logging_config import get_logger

logger = get_logger(__name__)


class ResumeRecord(BaseModel):
    """Saved state for continuing an interrupted upload."""
    fingerprint: str
    session_id: str
    upload_url: str
    uploaded_ranges: Optional[str] = None
    created_at: datetime

    @field_validator('created_at')
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    SKIPPED = "skipped"
    UNAVAILABLE = "unavailable"


class StoreResult(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class LookupResult:
    status: LookupStatus
    record: Optional[ResumeRecord] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResumeStore:
    """
    Thread-safe JSON-backed store of resume records.

    Construction loads the file and runs an eviction sweep: records past the
    retention window go first, then the oldest records until the serialized
    store fits the byte budget.
    """

    def __init__(
        self,
        store_path: Optional[str] = None,
        max_bytes: int = RESUME_STORE_MAX_BYTES,
        retention_seconds: int = RESUME_RETENTION_SECONDS,
    ):
        """
        Initialize resume store.

        Args:
            store_path: Path to JSON store file (default: ~/.ferry/resume_store.json)
            max_bytes: Byte budget for the serialized store
            retention_seconds: Maximum record age before eviction
        """
        self._store_path = Path(store_path or DEFAULT_RESUME_STORE_PATH)
        self._max_bytes = max_bytes
        self._retention = timedelta(seconds=retention_seconds)
        self._lock = threading.RLock()
        self._records: Dict[str, ResumeRecord] = {}
        self._available = True

        self._load_from_disk()
        self.evict()

        logger.info(f"Resume store initialized [path={self._store_path}, records={len(self._records)}]")

    @property
    def available(self) -> bool:
        return self._available

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def lookup(self, key: str) -> LookupResult:
        """
        Find the record for a fingerprint.

        Args:
            key: File fingerprint

        Returns:
            LookupResult distinguishing found, missing, expired, skipped and unavailable
        """
        if not key:
            return LookupResult(LookupStatus.SKIPPED)

        with self._lock:
            if not self._available:
                return LookupResult(LookupStatus.UNAVAILABLE)

            record = self._records.get(key)
            if record is None:
                return LookupResult(LookupStatus.NOT_FOUND)

            if self._is_expired(record, _utcnow()):
                del self._records[key]
                self._save_to_disk()
                logger.debug(f"Dropped expired resume record [session_id={record.session_id}]")
                return LookupResult(LookupStatus.EXPIRED)

            return LookupResult(LookupStatus.FOUND, record.model_copy())

    def get(self, key: str) -> Optional[ResumeRecord]:
        """
        Get the record for a fingerprint, or None if there is nothing to resume.
        """
        return self.lookup(key).record

    def put(self, record: ResumeRecord) -> StoreResult:
        """
        Add a record, or update the uploaded ranges of an existing one.

        An existing record keeps its creation time, session id and URL.

        Args:
            record: Record to store

        Returns:
            StoreResult of the write
        """
        if not record.fingerprint:
            return StoreResult.SKIPPED

        with self._lock:
            existing = self._records.get(record.fingerprint)
            if existing is not None:
                self._records[record.fingerprint] = existing.model_copy(
                    update={'uploaded_ranges': record.uploaded_ranges}
                )
            else:
                self._records[record.fingerprint] = record.model_copy()
            return self._save_to_disk()

    def delete(self, key: str) -> StoreResult:
        """
        Remove the record for a fingerprint.

        Args:
            key: File fingerprint

        Returns:
            StoreResult of the removal
        """
        if not key:
            return StoreResult.SKIPPED

        with self._lock:
            if self._records.pop(key, None) is None:
                return StoreResult.NOT_FOUND
            return self._save_to_disk()

    def evict(self) -> int:
        """
        Remove expired records, then the oldest ones while over the byte budget.

        Returns:
            Number of records removed
        """
        with self._lock:
            now = _utcnow()
            expired = [k for k, r in self._records.items() if self._is_expired(r, now)]
            for key in expired:
                del self._records[key]

            over_budget = 0
            oldest_first = sorted(self._records.items(), key=lambda kv: kv[1].created_at)
            for key, _ in oldest_first:
                if self._serialized_size() <= self._max_bytes:
                    break
                del self._records[key]
                over_budget += 1

            removed = len(expired) + over_budget
            if removed:
                logger.info(
                    f"Evicted {removed} resume record(s) "
                    f"({len(expired)} expired, {over_budget} over {self._max_bytes} byte budget)"
                )
                self._save_to_disk()
            return removed

    def usage_bytes(self) -> int:
        """Size of the serialized store in bytes."""
        with self._lock:
            return self._serialized_size()

    def _is_expired(self, record: ResumeRecord, now: datetime) -> bool:
        return record.created_at < now - self._retention

    def _serialize(self) -> Dict[str, dict]:
        return {
            key: record.model_dump(mode='json', exclude={'fingerprint'})
            for key, record in self._records.items()
        }

    def _serialized_size(self) -> int:
        return len(json.dumps(self._serialize()).encode('utf-8'))

    def _load_from_disk(self) -> bool:
        """
        Load records from the JSON file.

        Returns:
            True if records were loaded, False if the file is missing, corrupted or unreadable
        """
        if not self._store_path.exists():
            logger.debug(f"Resume store not found at {self._store_path}, starting empty")
            return False

        try:
            with open(self._store_path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Resume store at {self._store_path} is corrupted, starting empty: {e}")
            return False
        except OSError as e:
            logger.warning(f"Resume store at {self._store_path} is unavailable: {e}")
            self._available = False
            return False

        if not isinstance(data, dict):
            logger.warning(f"Resume store at {self._store_path} has unexpected layout, starting empty")
            return False

        with self._lock:
            for key, value in data.items():
                try:
                    self._records[key] = ResumeRecord(fingerprint=key, **value)
                except (TypeError, ValidationError) as e:
                    logger.warning(f"Skipping malformed resume record: {e}")
        return True

    def _save_to_disk(self) -> StoreResult:
        """
        Persist records to the JSON file, replacing it atomically.

        Returns:
            StoreResult.OK, or StoreResult.UNAVAILABLE if the file could not be written
        """
        tmp_path = self._store_path.with_suffix('.json.tmp')
        try:
            self._store_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w') as f:
                json.dump(self._serialize(), f)
            os.replace(tmp_path, self._store_path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(
                f"Failed to save resume store to {self._store_path}: {e}, "
                "continuing without resume support"
            )
            self._available = False
            return StoreResult.UNAVAILABLE

        self._available = True
        return StoreResult.OK
