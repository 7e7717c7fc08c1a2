"""Registry of active uploads and routing of host commands."""

import asyncio
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import httpx

from common.logging_config import get_logger
from common.types import FileHandle
from uploader.config import UploadSettings
from uploader.events import StatusChanged, UploadEvent, UploadQueued, UploadStatus
from uploader.exceptions import (
    UnknownSessionError,
    UploadAlreadyActiveError,
    UploadsDisabledError,
)
from uploader.file_upload import FileUpload, generate_session_id
from uploader.resume_store import ResumeStore
from uploader.transport import ChunkTransport

logger = get_logger(__name__)


def build_upload_url(url: str, additional_data: str = "") -> str:
    """
    Append host-supplied query data to an upload URL.

    Args:
        url: Base upload URL
        additional_data: Query string without leading '?' (e.g. "folder=7&token=abc")

    Returns:
        URL with the additional data appended as query parameters
    """
    additional_data = additional_data.lstrip('?&')
    if not additional_data:
        return url
    separator = '&' if '?' in url else '?'
    return f"{url}{separator}{additional_data}"


class UploadRegistry:
    """
    Holds the active uploads keyed by session id.

    All uploads share one httpx.AsyncClient, one resume store and one event
    queue. Sessions leave the active set when they complete or are canceled;
    failed sessions stay so the host can start them again.
    """

    def __init__(
        self,
        settings: Optional[UploadSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        resume_store: Optional[ResumeStore] = None,
    ):
        """
        Args:
            settings: Upload settings (defaults if None)
            client: Shared HTTP client (created and owned by the registry if None)
            resume_store: Shared resume store (created from settings if None)
        """
        self.settings = settings or UploadSettings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.settings.request_timeout)
        self.transport = ChunkTransport(self.client)
        self.resume_store = resume_store or ResumeStore(
            self.settings.resume_store_path,
            max_bytes=self.settings.resume_store_max_bytes,
            retention_seconds=self.settings.resume_retention_seconds,
        )
        self.uploads: Dict[str, FileUpload] = {}
        self.events: asyncio.Queue = asyncio.Queue()
        self.enabled = True

    def add_files(self, paths: Iterable[Union[str, Path]]) -> List[FileUpload]:
        """
        Enqueue files for upload. Each gets a fingerprint and, when saved state
        exists, resumes its previous session id and URL.

        Args:
            paths: Paths of the files to add

        Returns:
            The new uploads, in PENDING status

        Raises:
            UploadsDisabledError: If the registry is disabled
            UploadAlreadyActiveError: If a file resumes into a session that is already active
            OSError: If a file cannot be stat'ed
        """
        if not self.enabled:
            raise UploadsDisabledError("Adding files is disabled")

        handles = [FileHandle.from_path(p) for p in paths]
        added = [
            FileUpload.from_file(
                handle,
                self.transport,
                self.resume_store,
                settings=self.settings,
                listener=self._on_event,
            )
            for handle in handles
        ]

        resumed_ids = [u.session_id for u in added if u.resumed]
        for upload in added:
            if upload.resumed and (upload.session_id in self.uploads or resumed_ids.count(upload.session_id) > 1):
                raise UploadAlreadyActiveError(
                    f"{upload.name} is already uploading as session {upload.session_id}"
                )

        for upload in added:
            while not upload.resumed and (upload.session_id in self.uploads or upload.session_id in resumed_ids):
                upload.session_id = generate_session_id()
            self.uploads[upload.session_id] = upload
            logger.info(
                f"Queued {upload.name} ({upload.file_length} bytes, resumed={upload.resumed}) "
                f"[session_id={upload.session_id}]"
            )

        for upload in added:
            self._on_event(UploadQueued(upload.session_id, upload.name, upload.file_length, len(added)))
        return added

    def get(self, session_id: str) -> FileUpload:
        """
        Look up an active upload.

        Raises:
            UnknownSessionError: If no active upload has this id
        """
        upload = self.uploads.get(session_id)
        if upload is None:
            raise UnknownSessionError(f"No active upload with session id {session_id}")
        return upload

    def active(self) -> List[FileUpload]:
        return list(self.uploads.values())

    def start_upload(self, session_id: str, url: str, additional_data: str = "") -> asyncio.Task:
        """
        Attach the upload URL (unless restored from saved state) and start the upload.

        Args:
            session_id: Session to start
            url: Upload URL
            additional_data: Optional query string appended to the URL

        Returns:
            Task running the upload

        Raises:
            UnknownSessionError: If no active upload has this id
        """
        upload = self.get(session_id)
        if not upload.upload_url:
            upload.upload_url = build_upload_url(url, additional_data)
        logger.debug(f"Start command for {upload.name} [session_id={session_id}]")
        return upload.start()

    def cancel_upload(self, session_id: str) -> None:
        """
        Request cancellation of an upload.

        A session that was never started is canceled immediately.

        Raises:
            UnknownSessionError: If no active upload has this id
        """
        self.get(session_id).cancel()

    def set_enabled(self, state: bool) -> None:
        """Allow or refuse new files."""
        self.enabled = state
        logger.info(f"Registry {'enabled' if state else 'disabled'}")

    async def wait_all(self) -> None:
        """Wait until every started upload has finished."""
        tasks = [u.task for u in list(self.uploads.values()) if u.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel running upload tasks and release the HTTP client."""
        for upload in list(self.uploads.values()):
            if upload.task is not None and not upload.task.done():
                upload.task.cancel()
        await self.wait_all()
        if self._owns_client:
            await self.client.aclose()

    def _on_event(self, event: UploadEvent) -> None:
        self.events.put_nowait(event)
        if isinstance(event, StatusChanged) and event.status in (UploadStatus.COMPLETE, UploadStatus.CANCELED):
            removed = self.uploads.pop(event.session_id, None)
            if removed is not None:
                logger.debug(f"Removed {event.status.value} session [session_id={event.session_id}]")
