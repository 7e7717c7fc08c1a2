"""Tests for the per-file upload state machine against an in-memory server."""

import dataclasses
from datetime import datetime, timezone

import httpx
import pytest

from common.types import FileHandle
from uploader.events import (
    ProgressChanged,
    StatusChanged,
    UploadCompleted,
    UploadFailed,
    UploadStatus,
)
from uploader.file_upload import FileUpload, generate_session_id
from uploader.resume_store import ResumeRecord
from uploader.transport import ChunkTransport

UPLOAD_URL = "http://test/upload"


def make_transport(handler) -> ChunkTransport:
    return ChunkTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def build_upload(handle, handler, resume_store, settings, events=None, url=UPLOAD_URL) -> FileUpload:
    upload = FileUpload.from_file(
        handle,
        make_transport(handler),
        resume_store,
        settings=settings,
        listener=events.append if events is not None else None,
    )
    if url and not upload.upload_url:
        upload.upload_url = url
    return upload


def statuses(events):
    return [e.status for e in events if isinstance(e, StatusChanged)]


def test_session_id_range():
    for _ in range(100):
        value = int(generate_session_id())
        assert 1110000000 <= value <= 1199999999


def test_retry_delay_grows_linearly(sample_handle, resume_store):
    upload = FileUpload(sample_handle, make_transport(None), resume_store)

    assert upload.retry_delay() == 5.0
    upload.retries_left -= 1
    assert upload.retry_delay() == 10.0


class TestSuccessfulUpload:
    """Test uploads that run to completion."""

    @pytest.mark.asyncio
    async def test_uploads_every_chunk(self, sample_file, sample_handle, resume_store, settings, fake_server):
        events = []
        upload = build_upload(sample_handle, fake_server, resume_store, settings, events)

        status = await upload.run()

        assert status == UploadStatus.COMPLETE
        assert fake_server.ranges == [(0, 51199), (51200, 102399), (102400, 153599), (153600, 204799)]
        assert fake_server.assembled() == sample_file.read_bytes()
        assert upload.bytes_uploaded == sample_handle.length
        assert len(resume_store) == 0

    @pytest.mark.asyncio
    async def test_emits_progress_and_completion(self, sample_handle, resume_store, settings, fake_server):
        events = []
        upload = build_upload(sample_handle, fake_server, resume_store, settings, events)

        await upload.run()

        progress = [e.bytes_uploaded for e in events if isinstance(e, ProgressChanged)]
        assert progress == [51200, 102400, 153600, 204800]
        [completed] = [e for e in events if isinstance(e, UploadCompleted)]
        assert completed.response_text == "OK"
        assert statuses(events)[0] == UploadStatus.UPLOADING
        assert statuses(events)[-1] == UploadStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_empty_final_body_completes(self, sample_handle, resume_store, settings, server_factory):
        server = server_factory(final_body="")
        upload = build_upload(sample_handle, server, resume_store, settings)

        assert await upload.run() == UploadStatus.COMPLETE
        assert len(server.requests) == 4

    @pytest.mark.asyncio
    async def test_session_header_is_stable(self, sample_handle, resume_store, settings, fake_server):
        upload = build_upload(sample_handle, fake_server, resume_store, settings)

        await upload.run()

        assert {r.headers['Session-ID'] for r in fake_server.requests} == {upload.session_id}


class TestResume:
    """Test interruption and resumption through the resume store."""

    @pytest.mark.asyncio
    async def test_cancel_saves_progress_and_resume_continues(
        self, sample_file, sample_handle, resume_store, settings, fake_server
    ):
        events = []
        first = build_upload(sample_handle, fake_server, resume_store, settings, events)

        def cancel_after_two_chunks(event):
            events.append(event)
            if isinstance(event, ProgressChanged) and event.bytes_uploaded >= 102400:
                first.cancel()

        first.listener = cancel_after_two_chunks
        assert await first.run() == UploadStatus.CANCELED
        assert len(fake_server.requests) == 2

        record = resume_store.get(first.fingerprint)
        assert record.session_id == first.session_id
        assert record.uploaded_ranges == "0-102399/204800"

        second = build_upload(FileHandle.from_path(sample_file), fake_server, resume_store, settings, url=None)
        assert second.resumed
        assert second.session_id == first.session_id
        assert second.upload_url == UPLOAD_URL

        assert await second.run() == UploadStatus.COMPLETE
        assert fake_server.ranges[2:] == [(102400, 153599), (153600, 204799)]
        assert fake_server.assembled() == sample_file.read_bytes()
        assert resume_store.get(first.fingerprint) is None

    @pytest.mark.asyncio
    async def test_resumed_complete_report_sends_nothing(self, sample_handle, resume_store, settings, fake_server):
        fresh = build_upload(sample_handle, fake_server, resume_store, settings, url=None)
        resume_store.put(ResumeRecord(
            fingerprint=fresh.fingerprint,
            session_id="1155512345",
            upload_url=UPLOAD_URL,
            uploaded_ranges="0-204799/204800",
            created_at=datetime.now(timezone.utc),
        ))

        upload = build_upload(sample_handle, fake_server, resume_store, settings, url=None)

        assert await upload.run() == UploadStatus.COMPLETE
        assert fake_server.requests == []
        assert resume_store.get(fresh.fingerprint) is None

    @pytest.mark.asyncio
    async def test_small_file_is_not_persisted(self, make_file, resume_store, settings, fake_server):
        handle = FileHandle.from_path(make_file('tiny.bin', 100 * 1024))
        strict = dataclasses.replace(settings, fingerprint_min_file_size=1024 * 1024)
        upload = build_upload(handle, fake_server, resume_store, strict)

        assert upload.fingerprint == ""
        assert await upload.run() == UploadStatus.COMPLETE
        assert len(resume_store) == 0


class TestRetries:
    """Test the retry budget."""

    @pytest.mark.asyncio
    async def test_fails_after_budget_exhausted(self, sample_handle, resume_store, settings, server_factory):
        server = server_factory(fail_times=100)
        events = []
        upload = build_upload(sample_handle, server, resume_store, settings, events)

        assert await upload.run() == UploadStatus.FAILED
        assert len(server.requests) == settings.max_chunk_retries

        [failed] = [e for e in events if isinstance(e, UploadFailed)]
        assert failed.error_code == 1
        assert "ConnectError" in failed.error_description
        assert statuses(events).count(UploadStatus.RETRY) == settings.max_chunk_retries - 1

    @pytest.mark.asyncio
    async def test_server_error_status_fails_with_other_code(self, sample_handle, resume_store, settings, server_factory):
        server = server_factory(fail_times=100, fail_status=503)
        events = []
        upload = build_upload(sample_handle, server, resume_store, settings, events)

        assert await upload.run() == UploadStatus.FAILED
        [failed] = [e for e in events if isinstance(e, UploadFailed)]
        assert failed.error_code == 4

    @pytest.mark.asyncio
    async def test_recovers_within_budget(self, sample_file, sample_handle, resume_store, settings, server_factory):
        server = server_factory(fail_times=2)
        upload = build_upload(sample_handle, server, resume_store, settings)

        assert await upload.run() == UploadStatus.COMPLETE
        assert server.assembled() == sample_file.read_bytes()

    @pytest.mark.asyncio
    async def test_success_resets_budget(self, sample_handle, resume_store, settings, server_factory):
        server = server_factory()
        calls = {'count': 0}

        def flaky(request):
            calls['count'] += 1
            if calls['count'] % 3 != 0:
                raise httpx.ReadTimeout("timed out", request=request)
            return server(request)

        upload = build_upload(sample_handle, flaky, resume_store, settings)

        assert await upload.run() == UploadStatus.COMPLETE
        assert calls['count'] == 12


class TestCancelAndFailure:
    @pytest.mark.asyncio
    async def test_cancel_interrupts_retry_wait(self, sample_handle, resume_store, settings, server_factory):
        server = server_factory(fail_times=100)
        slow = dataclasses.replace(settings, retry_timeout_base=30)
        events = []
        upload = build_upload(sample_handle, server, resume_store, slow)

        def cancel_on_retry(event):
            events.append(event)
            if isinstance(event, StatusChanged) and event.status == UploadStatus.RETRY:
                upload.cancel()

        upload.listener = cancel_on_retry

        assert await upload.run() == UploadStatus.CANCELED
        assert len(server.requests) == 1

    def test_cancel_before_start(self, sample_handle, resume_store, settings, fake_server):
        events = []
        upload = build_upload(sample_handle, fake_server, resume_store, settings, events)

        upload.cancel()

        assert upload.status == UploadStatus.CANCELED
        assert statuses(events) == [UploadStatus.CANCELED]

    @pytest.mark.asyncio
    async def test_cancel_before_first_step_wins_over_stored_completion(
        self, sample_handle, resume_store, settings, fake_server
    ):
        fresh = build_upload(sample_handle, fake_server, resume_store, settings, url=None)
        resume_store.put(ResumeRecord(
            fingerprint=fresh.fingerprint,
            session_id="1155512345",
            upload_url=UPLOAD_URL,
            uploaded_ranges="0-204799/204800",
            created_at=datetime.now(timezone.utc),
        ))
        upload = build_upload(sample_handle, fake_server, resume_store, settings, url=None)

        task = upload.start()
        upload.cancel()

        assert await task == UploadStatus.CANCELED
        assert fake_server.requests == []
        assert resume_store.get(fresh.fingerprint) is not None

    @pytest.mark.asyncio
    async def test_cancel_after_failure(self, sample_handle, resume_store, settings, server_factory):
        events = []
        upload = build_upload(sample_handle, server_factory(fail_times=100), resume_store, settings, events)
        await upload.start()

        upload.cancel()

        assert upload.status == UploadStatus.CANCELED
        assert statuses(events)[-2:] == [UploadStatus.FAILED, UploadStatus.CANCELED]

    @pytest.mark.asyncio
    async def test_cancel_after_completion_keeps_status(self, sample_handle, resume_store, settings, fake_server):
        upload = build_upload(sample_handle, fake_server, resume_store, settings)
        await upload.start()

        upload.cancel()

        assert upload.status == UploadStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_missing_url_fails(self, sample_handle, resume_store, settings, fake_server):
        events = []
        upload = build_upload(sample_handle, fake_server, resume_store, settings, events, url=None)

        assert await upload.run() == UploadStatus.FAILED
        [failed] = [e for e in events if isinstance(e, UploadFailed)]
        assert failed.error_code == 4
        assert fake_server.requests == []

    @pytest.mark.asyncio
    async def test_empty_file_fails(self, make_file, resume_store, settings, fake_server):
        handle = FileHandle.from_path(make_file('empty.bin', 0))
        upload = build_upload(handle, fake_server, resume_store, settings)

        assert await upload.run() == UploadStatus.FAILED
        assert fake_server.requests == []

    @pytest.mark.asyncio
    async def test_vanished_file_fails_with_io_code(self, make_file, resume_store, settings, fake_server):
        path = make_file('vanish.bin', 100 * 1024)
        handle = FileHandle.from_path(path)
        events = []
        upload = build_upload(handle, fake_server, resume_store, settings, events)
        path.unlink()

        assert await upload.run() == UploadStatus.FAILED
        [failed] = [e for e in events if isinstance(e, UploadFailed)]
        assert failed.error_code == 2

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_break_upload(self, sample_handle, resume_store, settings, fake_server):
        def broken(event):
            raise RuntimeError("listener bug")

        upload = build_upload(sample_handle, fake_server, resume_store, settings)
        upload.listener = broken

        assert await upload.run() == UploadStatus.COMPLETE
