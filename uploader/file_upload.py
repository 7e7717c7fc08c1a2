"""
State machine driving one file's chunked, resumable upload.

A FileUpload is built once per selected file. Its fingerprint, chunk size and
any resumed state are computed at construction; afterwards only its own task
mutates it. Notifications are handed to a single listener, which the registry
points at its event queue.
"""

import asyncio
import random
from datetime import datetime, timezone
from typing import Optional

from common.constants import SESSION_ID_BASE, SESSION_ID_RANDOM_MAX, SESSION_ID_RANDOM_MIN
from common.logging_config import get_logger
from common.types import FileHandle
from uploader.chunk_planner import ChunkPlan, compute_chunk_size, next_range
from uploader.config import UploadSettings
from uploader.events import (
    EventListener,
    ProgressChanged,
    StatusChanged,
    UploadCompleted,
    UploadEvent,
    UploadFailed,
    UploadStatus,
)
from uploader.exceptions import OtherError, UploadError
from uploader.fingerprint import fingerprint as compute_fingerprint
from uploader.resume_store import ResumeRecord, ResumeStore
from uploader.transport import ChunkTransport

logger = get_logger(__name__)


def generate_session_id() -> str:
    return str(SESSION_ID_BASE + random.randint(SESSION_ID_RANDOM_MIN, SESSION_ID_RANDOM_MAX))


class FileUpload:
    """
    One file's upload lifecycle.

    Status flow: PENDING -> UPLOADING -> {CONTINUE, RETRY} -> ... ->
    COMPLETE | FAILED | CANCELED.
    """

    def __init__(
        self,
        handle: Optional[FileHandle],
        transport: ChunkTransport,
        resume_store: ResumeStore,
        settings: Optional[UploadSettings] = None,
        session_id: Optional[str] = None,
        fingerprint: str = "",
        upload_url: Optional[str] = None,
        response_text: Optional[str] = None,
        listener: Optional[EventListener] = None,
    ):
        """
        Initialize an upload. Prefer FileUpload.from_file, which fingerprints
        the file and restores saved state.

        Args:
            handle: File to upload (None yields FAILED on run)
            transport: Chunk transport
            resume_store: Shared resume store
            settings: Upload settings (defaults if None)
            session_id: Correlation id (random if None)
            fingerprint: Resume key ("" disables resume)
            upload_url: Target URL, if already known
            response_text: Last known range report
            listener: Callable receiving every emitted event
        """
        self.handle = handle
        self.transport = transport
        self.resume_store = resume_store
        self.settings = settings or UploadSettings()
        self.session_id = session_id or generate_session_id()
        self.fingerprint = fingerprint
        self.upload_url = upload_url
        self.response_text = response_text
        self.resumed = response_text is not None and upload_url is not None
        self.listener = listener

        length = handle.length if handle else 0
        self.chunk_size = compute_chunk_size(
            length,
            self.settings.min_chunk_size,
            self.settings.max_chunk_size,
            self.settings.percent_precision,
        )

        self.status = UploadStatus.PENDING
        self.bytes_uploaded = 0
        self.retries_left = self.settings.max_chunk_retries
        self.last_error: Optional[UploadError] = None
        self.plan: Optional[ChunkPlan] = None

        self._cancel_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_file(
        cls,
        handle: FileHandle,
        transport: ChunkTransport,
        resume_store: ResumeStore,
        settings: Optional[UploadSettings] = None,
        listener: Optional[EventListener] = None,
    ) -> "FileUpload":
        """
        Build an upload for a file, resuming saved state when the store has it.

        Args:
            handle: File to upload
            transport: Chunk transport
            resume_store: Shared resume store
            settings: Upload settings
            listener: Event listener

        Returns:
            Fresh or resumed FileUpload
        """
        settings = settings or UploadSettings()
        key = compute_fingerprint(
            handle,
            points=settings.fingerprint_points,
            max_window=settings.fingerprint_max_window,
            min_file_size=settings.fingerprint_min_file_size,
        )

        record = resume_store.get(key)
        if record is not None and record.session_id and record.upload_url:
            logger.info(f"Resuming {handle.name} from saved state [session_id={record.session_id}]")
            upload = cls(
                handle,
                transport,
                resume_store,
                settings=settings,
                session_id=record.session_id,
                fingerprint=key,
                upload_url=record.upload_url,
                response_text=record.uploaded_ranges,
                listener=listener,
            )
            upload.resumed = True
            return upload

        return cls(handle, transport, resume_store, settings=settings, fingerprint=key, listener=listener)

    @property
    def name(self) -> str:
        return self.handle.name if self.handle else ""

    @property
    def file_length(self) -> int:
        return self.handle.length if self.handle else 0

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def retry_delay(self) -> float:
        """Seconds to wait before the next retry; grows linearly with retries used."""
        used = self.settings.max_chunk_retries - self.retries_left + 1
        return self.settings.retry_timeout_base * used

    def start(self) -> asyncio.Task:
        """
        Schedule the upload on the running event loop.

        Returns:
            Task running the upload; an already running task is returned as is
        """
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self.run(), name=f"upload-{self.session_id}")
        return self._task

    def cancel(self) -> None:
        """
        Request cancellation. Takes effect at the next response boundary; an
        in-flight chunk request is allowed to finish. An upload that is not
        running (never started, or already failed) is canceled immediately.
        """
        logger.info(f"Cancel requested [session_id={self.session_id}]")
        self._cancel_event.set()
        idle = self._task is None or self._task.done()
        if idle and self.status not in (UploadStatus.COMPLETE, UploadStatus.CANCELED):
            self._set_status(UploadStatus.CANCELED)

    async def run(self) -> UploadStatus:
        """
        Upload the file until it completes, fails or is canceled.

        Returns:
            Terminal status
        """
        if self.handle is None or not self.upload_url:
            self._fail(OtherError("Upload requires a file and an upload URL", phase='prepare'))
            return self.status
        if self.handle.length == 0:
            self._fail(OtherError(f"File is empty: {self.handle.name}", phase='prepare'))
            return self.status
        if self.cancel_requested:
            self._set_status(UploadStatus.CANCELED)
            return self.status

        self.retries_left = self.settings.max_chunk_retries
        self.last_error = None
        self._set_status(UploadStatus.UPLOADING)

        if self.plan is None:
            self.plan = next_range(self.file_length, self.chunk_size, self.response_text)
            self.bytes_uploaded = self.plan.confirmed
            if self.plan.complete:
                logger.info(f"Server already holds {self.name} [session_id={self.session_id}]")
                self._complete()
                return self.status

        logger.info(
            f"Upload started: {self.name} ({self.file_length} bytes, chunk_size={self.chunk_size}) "
            f"to {self.upload_url} [session_id={self.session_id}]"
        )

        while True:
            if self.cancel_requested:
                self._set_status(UploadStatus.CANCELED)
                break

            if self.status is not UploadStatus.UPLOADING:
                self._set_status(UploadStatus.UPLOADING)

            error = await self._send_current_chunk()
            status = self._handle_response(error)

            if status is UploadStatus.CONTINUE:
                continue
            if status is UploadStatus.RETRY:
                await self._wait_before_retry(self.retry_delay())
                continue
            break

        return self.status

    async def _send_current_chunk(self) -> Optional[UploadError]:
        try:
            self.response_text = await self.transport.send_chunk(
                self.upload_url, self.handle, self.plan.start, self.plan.end, self.session_id
            )
        except UploadError as e:
            return e
        return None

    def _handle_response(self, error: Optional[UploadError]) -> UploadStatus:
        if self.cancel_requested:
            self._set_status(UploadStatus.CANCELED)
            return self.status

        if error is not None:
            self.last_error = error
            self.retries_left -= 1
            if self.retries_left > 0:
                logger.warning(
                    f"Chunk {self.plan.start}-{self.plan.end} failed ({error.kind}): {error.description}, "
                    f"{self.retries_left} retries left [session_id={self.session_id}]"
                )
                self._set_status(UploadStatus.RETRY)
            else:
                logger.error(
                    f"Chunk {self.plan.start}-{self.plan.end} failed ({error.kind}): {error.description}, "
                    f"retries exhausted [session_id={self.session_id}]"
                )
                self._fail(error)
            return self.status

        if not self.response_text:
            # an empty success body is a final payload, not a range report
            self.plan = ChunkPlan(self.file_length, self.file_length - 1, self.file_length, complete=True)
        else:
            self.plan = next_range(self.file_length, self.chunk_size, self.response_text)
        self.bytes_uploaded = self.plan.confirmed
        self._emit(ProgressChanged(self.session_id, self.bytes_uploaded, self.file_length))

        if not self.plan.complete:
            self._save_resume_state()
            self.retries_left = self.settings.max_chunk_retries
            self._set_status(UploadStatus.CONTINUE)
        else:
            self._complete()
        return self.status

    async def _wait_before_retry(self, delay: float) -> None:
        if delay <= 0:
            return
        logger.debug(f"Retrying in {delay}s [session_id={self.session_id}]")
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _save_resume_state(self) -> None:
        record = ResumeRecord(
            fingerprint=self.fingerprint,
            session_id=self.session_id,
            upload_url=self.upload_url,
            uploaded_ranges=self.response_text,
            created_at=datetime.now(timezone.utc),
        )
        self.resume_store.put(record)

    def _complete(self) -> None:
        self.resume_store.delete(self.fingerprint)
        self.bytes_uploaded = self.file_length
        logger.info(f"Upload complete: {self.name} ({self.file_length} bytes) [session_id={self.session_id}]")
        self._set_status(UploadStatus.COMPLETE)
        self._emit(UploadCompleted(self.session_id, self.response_text or "", self.file_length))

    def _fail(self, error: UploadError) -> None:
        self.last_error = error
        self._set_status(UploadStatus.FAILED)
        self._emit(UploadFailed(self.session_id, error.code, error.description))

    def _set_status(self, status: UploadStatus) -> None:
        self.status = status
        self._emit(StatusChanged(self.session_id, status))

    def _emit(self, event: UploadEvent) -> None:
        if self.listener is None:
            return
        try:
            self.listener(event)
        except Exception as e:
            logger.error(f"Event listener failed for {type(event).__name__}: {e}", exc_info=True)
