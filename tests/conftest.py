"""Shared pytest fixtures for all tests."""

import re

import httpx
import pytest

from cli.config import Config
from common.types import FileHandle
from uploader.config import UploadSettings
from uploader.resume_store import ResumeStore

CONTENT_RANGE = re.compile(r'^bytes (\d+)-(\d+)/(\d+)$')


class FakeUploadServer:
    """
    In-memory upload endpoint for httpx.MockTransport.

    Stores received chunks and answers with a range report until every byte
    is present, then with the final body.
    """

    def __init__(self, final_body: str = "OK", fail_times: int = 0, fail_status: int | None = None):
        """
        Args:
            final_body: Body returned once the file is complete
            fail_times: Number of initial requests that fail
            fail_status: Status for failing requests (None raises a connection error)
        """
        self.final_body = final_body
        self.fail_times = fail_times
        self.fail_status = fail_status
        self.requests: list[httpx.Request] = []
        self.ranges: list[tuple[int, int]] = []
        self.data: dict[int, bytes] = {}
        self.total = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_times > 0:
            self.fail_times -= 1
            if self.fail_status is None:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(self.fail_status, text="server error")

        match = CONTENT_RANGE.match(request.headers['X-Content-Range'])
        start, end, total = (int(g) for g in match.groups())
        self.total = total
        self.ranges.append((start, end))
        self.data[start] = request.content

        if self.received_bytes() >= total:
            return httpx.Response(201, text=self.final_body)
        return httpx.Response(200, text=self.range_report())

    def covered(self) -> list[tuple[int, int]]:
        merged: list[tuple[int, int]] = []
        for start, end in sorted(self.ranges):
            if merged and start <= merged[-1][1] + 1:
                merged[-1] = (merged[-1][0], max(merged[-1][1], end))
            else:
                merged.append((start, end))
        return merged

    def received_bytes(self) -> int:
        return sum(end - start + 1 for start, end in self.covered())

    def range_report(self) -> str:
        return ','.join(f"{start}-{end}/{self.total}" for start, end in self.covered())

    def assembled(self) -> bytes:
        return b''.join(self.data[start] for start in sorted(self.data))


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .ferry directory
    """
    config_dir = tmp_path / '.ferry'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def make_file(tmp_path):
    """
    Factory writing a file with deterministic content.

    Returns:
        Callable (name, size, seed=0) -> Path
    """
    def _make(name: str, size: int, seed: int = 0):
        pattern = bytes((i * 7 + seed) % 256 for i in range(256))
        path = tmp_path / name
        path.write_bytes((pattern * (size // 256 + 1))[:size])
        return path

    return _make


@pytest.fixture
def sample_file(make_file):
    """200 KiB file: four minimum-size chunks."""
    return make_file('sample.bin', 200 * 1024)


@pytest.fixture
def sample_handle(sample_file):
    return FileHandle.from_path(sample_file)


@pytest.fixture
def settings(tmp_path):
    """
    Upload settings for tests: no retry waits, a temp resume store and
    fingerprints for small files.
    """
    return UploadSettings(
        retry_timeout_base=0,
        max_chunk_retries=3,
        fingerprint_min_file_size=1024,
        resume_store_path=str(tmp_path / 'resume_store.json'),
    )


@pytest.fixture
def resume_store(settings):
    return ResumeStore(
        settings.resume_store_path,
        max_bytes=settings.resume_store_max_bytes,
        retention_seconds=settings.resume_retention_seconds,
    )


@pytest.fixture
def server_factory():
    """Factory for FakeUploadServer with custom failure behavior."""
    return FakeUploadServer


@pytest.fixture
def fake_server():
    return FakeUploadServer()
