"""HTTP transport for sending one chunk and reading the server's range report."""

from typing import Dict
from urllib.parse import quote_plus

import httpx

from common.constants import SUCCESS_STATUS_CODES
from common.logging_config import get_logger
from common.types import FileHandle
from uploader.exceptions import LocalIOError, OtherError, TransportError

logger = get_logger(__name__)


class ChunkTransport:
    """
    Sends chunk requests over a shared httpx.AsyncClient.

    Every failure is raised as one of TransportError, LocalIOError or
    OtherError, tagged with the phase of the exchange it happened in.
    """

    def __init__(self, client: httpx.AsyncClient):
        """
        Initialize transport.

        Args:
            client: Async HTTP client shared by all uploads
        """
        self.client = client

    @staticmethod
    def build_headers(filename: str, start: int, end: int, total: int, session_id: str) -> Dict[str, str]:
        """
        Build the chunk request headers.

        Args:
            filename: Display name of the file (URL-encoded into Content-Disposition)
            start: First byte of the chunk (inclusive)
            end: Last byte of the chunk (inclusive)
            total: Total file length
            session_id: Upload session id

        Returns:
            Header dictionary
        """
        return {
            'Content-Type': 'application/octet-stream',
            'Content-Disposition': f'attachment; filename="{quote_plus(filename)}"',
            'X-Content-Range': f'bytes {start}-{end}/{total}',
            'Session-ID': session_id,
        }

    @staticmethod
    def read_chunk(handle: FileHandle, start: int, end: int) -> bytes:
        """
        Read the bytes of ``[start, end]`` from the file, closing it before returning.

        Raises:
            OSError: If the file cannot be opened or read
        """
        with open(handle.path, 'rb') as f:
            f.seek(start)
            return f.read(end - start + 1)

    async def send_chunk(self, url: str, handle: FileHandle, start: int, end: int, session_id: str) -> str:
        """
        Send one chunk and return the response body.

        Args:
            url: Upload URL
            handle: Source file
            start: First byte of the chunk (inclusive)
            end: Last byte of the chunk (inclusive)
            session_id: Upload session id

        Returns:
            Response body text (range report or final server payload)

        Raises:
            TransportError: If the request fails at the network/HTTP layer
            LocalIOError: If the source file cannot be read
            OtherError: If the server answers with an unexpected status, or anything else fails
        """
        try:
            headers = self.build_headers(handle.name, start, end, handle.length, session_id)
            data = self.read_chunk(handle, start, end)
        except OSError as e:
            raise LocalIOError(str(e), phase='prepare') from e
        except Exception as e:
            raise OtherError(str(e), phase='prepare') from e

        logger.debug(
            f"Sending chunk: POST bytes {start}-{end}/{handle.length} ({len(data)} bytes) "
            f"[session_id={session_id}]"
        )

        try:
            response = await self.client.post(url, content=data, headers=headers)
        except httpx.TransportError as e:
            raise TransportError(f"{type(e).__name__}: {e}", phase='send') from e
        except OSError as e:
            raise LocalIOError(str(e), phase='send') from e
        except Exception as e:
            raise OtherError(f"{type(e).__name__}: {e}", phase='send') from e

        if response.status_code not in SUCCESS_STATUS_CODES:
            raise OtherError(f"Unexpected response status {response.status_code}", phase='response')

        try:
            body = response.text
        except Exception as e:
            raise OtherError(f"Unreadable response body: {e}", phase='response') from e

        logger.debug(
            f"Chunk accepted: status={response.status_code} body={body[:80]!r} [session_id={session_id}]"
        )
        return body
