"""Tests for the upload orchestrator."""
import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from photodrop.exceptions import ApplicationError, SelectionLockedError
from photodrop.models import MB, EndpointConfig, RejectionReason, SourceFile, UploadConfig
from photodrop.orchestrator import (
    SubmissionState,
    SubmissionStatus,
    UploadOrchestrator,
    UploadProgress,
)
from photodrop.services.api_client import JSONAPIClient
from photodrop.services.preview import PreviewService
from photodrop.utils.events import BATCH_COMPLETE, PROGRESS, STATE

ENDPOINT = EndpointConfig(url="https://upload.example.com/exec", secret="s3cret")
FAST = UploadConfig(retry_base_delay=0)


def _photo(name, size=1 * MB, last_modified=1, content_type="image/jpeg"):
    return SourceFile(
        name=name, size=size, last_modified=last_modified, content_type=content_type, data=b"x"
    )


def _photos(count, size=1 * MB):
    return [_photo(f"img{i}.jpg", size=size, last_modified=i) for i in range(count)]


def _fake_client(side_effect=None):
    client = AsyncMock()
    if side_effect is None:
        client.fetch_json = AsyncMock(return_value={"ok": True})
    else:
        client.fetch_json = AsyncMock(side_effect=side_effect)
    return client


def _orchestrator(client, config=FAST, endpoint=ENDPOINT, previews=None):
    return UploadOrchestrator(
        endpoint, config, preview_factory=previews or PreviewService(), api_client=client
    )


class TestSubmitValidation:
    @pytest.mark.asyncio
    async def test_blank_name_never_calls_network(self):
        client = _fake_client()
        async with _orchestrator(client) as uploader:
            uploader.add_files(_photos(2))
            outcome = await uploader.submit("   ")

        assert outcome.status == SubmissionStatus.INVALID
        assert outcome.error
        client.fetch_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_selection_never_calls_network(self):
        client = _fake_client()
        async with _orchestrator(client) as uploader:
            outcome = await uploader.submit("Alice")
            assert uploader.state == SubmissionState.IDLE

        assert outcome.status == SubmissionStatus.INVALID
        client.fetch_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_endpoint_is_configuration_failure(self):
        client = _fake_client()
        async with _orchestrator(client, endpoint=EndpointConfig()) as uploader:
            uploader.add_files(_photos(1))
            outcome = await uploader.submit("Alice")
            assert len(uploader.selection) == 1

        assert outcome.status == SubmissionStatus.INVALID
        assert "not configured" in outcome.error
        client.fetch_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_encoding_is_configuration_failure(self):
        client = _fake_client()
        endpoint = EndpointConfig(url="https://x", encoding="xml")
        async with _orchestrator(client, endpoint=endpoint) as uploader:
            uploader.add_files(_photos(1))
            outcome = await uploader.submit("Alice")

        assert outcome.status == SubmissionStatus.INVALID
        client.fetch_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_context_for_default_client(self):
        uploader = UploadOrchestrator(ENDPOINT, FAST)
        uploader.add_files(_photos(1))
        with pytest.raises(RuntimeError, match="not initialized"):
            await uploader.submit("Alice")


class TestAddFiles:
    def test_rejections_do_not_abort_the_rest(self):
        previews = PreviewService()
        uploader = _orchestrator(_fake_client(), previews=previews)

        report = uploader.add_files([
            _photo("ok1.jpg", last_modified=1),
            _photo("notes.txt", content_type="text/plain"),
            _photo("huge.jpg", size=26 * MB),
            _photo("ok2.png", last_modified=2, content_type="image/png"),
            _photo("ok1.jpg", last_modified=1),
        ])

        assert [item.name for item in report.accepted] == ["ok1.jpg", "ok2.png"]
        assert [r.reason for r in report.rejected] == [
            RejectionReason.NOT_IMAGE,
            RejectionReason.TOO_LARGE,
            RejectionReason.DUPLICATE,
        ]
        assert "too large" in report.rejected[1].message
        assert len(uploader.selection) == 2
        assert previews.live_count == 2

    def test_file_at_ceiling_accepted(self):
        uploader = _orchestrator(_fake_client())
        report = uploader.add_files([_photo("edge.jpg", size=25 * MB)])
        assert report.accepted_count == 1

    def test_remove_and_clear_release_handles(self):
        previews = PreviewService()
        uploader = _orchestrator(_fake_client(), previews=previews)
        report = uploader.add_files(_photos(4))

        assert uploader.remove(report.accepted[0].identity) is True
        assert previews.live_count == 3
        assert uploader.clear() == 3
        assert previews.live_count == 0

    def test_name_is_truncated(self):
        uploader = _orchestrator(_fake_client())
        uploader.set_name("x" * 100)
        assert len(uploader.name) == 64


class TestSubmission:
    @pytest.mark.asyncio
    async def test_five_ten_megabyte_files_in_two_batches(self):
        client = _fake_client()
        config = UploadConfig(max_batch_bytes=30 * MB, max_batch_count=3, retry_base_delay=0)
        reported = []

        async with _orchestrator(client, config=config) as uploader:
            uploader.on(PROGRESS, reported.append)
            uploader.add_files(_photos(5, size=10 * MB))
            outcome = await uploader.submit("Alice")

        assert outcome.success is True
        assert outcome.batches_sent == 2
        sent = [call.args[0] for call in client.fetch_json.await_args_list]
        assert [len(request.files) for request in sent] == [3, 2]
        assert [(p.completed_items, p.total_items) for p in reported if p] == [(0, 5), (3, 5), (5, 5)]
        assert reported[-1] is None

    @pytest.mark.asyncio
    async def test_uses_small_retry_budget(self):
        client = _fake_client()
        async with _orchestrator(client) as uploader:
            uploader.add_files(_photos(1))
            await uploader.submit("Alice")

        kwargs = client.fetch_json.await_args.kwargs
        assert kwargs["retries"] == 1
        assert kwargs["base_delay"] == 0

    @pytest.mark.asyncio
    async def test_success_clears_selection_and_name(self):
        previews = PreviewService()
        client = _fake_client()
        states = []

        async with _orchestrator(client, previews=previews) as uploader:
            uploader.on(STATE, states.append)
            uploader.add_files(_photos(4))
            outcome = await uploader.submit("  Alice  ")

            assert outcome.success is True
            assert uploader.state == SubmissionState.SUCCEEDED
            assert uploader.name == ""
            assert uploader.progress is None
            assert len(uploader.selection) == 0
            assert previews.live_count == 0

            request = client.fetch_json.await_args_list[0].args[0]
            assert request.data == {"subfolderName": "Alice"}
            assert request.params == {"secret": "s3cret"}

            # Success display persists across edits until reset
            uploader.set_name("Bob")
            assert uploader.state == SubmissionState.SUCCEEDED
            uploader.reset()
            assert uploader.state == SubmissionState.IDLE

        assert states == [SubmissionState.SUBMITTING, SubmissionState.SUCCEEDED]

    @pytest.mark.asyncio
    async def test_batch_failure_aborts_and_keeps_input(self):
        previews = PreviewService()
        client = _fake_client([{"ok": True}, ApplicationError("Storage quota exceeded")])

        async with _orchestrator(client, previews=previews) as uploader:
            uploader.add_files(_photos(7))
            outcome = await uploader.submit("Alice")

            assert outcome.status == SubmissionStatus.FAILED
            assert outcome.error == "Storage quota exceeded"
            assert outcome.uploaded_items == 3
            assert client.fetch_json.await_count == 2
            assert uploader.state == SubmissionState.FAILED
            assert uploader.progress is None
            assert uploader.name == "Alice"
            assert len(uploader.selection) == 7
            assert previews.live_count == 7

            uploader.set_name("Alice")
            assert uploader.state == SubmissionState.IDLE

    @pytest.mark.asyncio
    async def test_error_without_message_gets_fallback(self):
        client = _fake_client([RuntimeError()])
        async with _orchestrator(client) as uploader:
            uploader.add_files(_photos(1))
            outcome = await uploader.submit("Alice")
        assert outcome.error == "Upload failed. Please try again."

    @pytest.mark.asyncio
    async def test_retry_budget_exhausted_on_first_batch(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("network unreachable")

        config = UploadConfig(max_batch_count=2, batch_retries=1, retry_base_delay=0)
        async with JSONAPIClient(transport=httpx.MockTransport(handler)) as client:
            async with _orchestrator(client, config=config) as uploader:
                uploader.add_files(_photos(4))
                outcome = await uploader.submit("Alice")

                assert outcome.status == SubmissionStatus.FAILED
                assert outcome.batches_sent == 0
                assert len(calls) == 2
                assert len(uploader.selection) == 4

    @pytest.mark.asyncio
    async def test_malformed_gateway_response_reports_status(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async with JSONAPIClient(transport=httpx.MockTransport(handler)) as client:
            async with _orchestrator(client) as uploader:
                uploader.add_files(_photos(1))
                outcome = await uploader.submit("Alice")

        assert outcome.status == SubmissionStatus.FAILED
        assert "502" in outcome.error

    @pytest.mark.asyncio
    async def test_base64_endpoint(self):
        client = _fake_client()
        endpoint = EndpointConfig(url="https://x", encoding="base64")
        async with _orchestrator(client, endpoint=endpoint) as uploader:
            uploader.add_files(_photos(2))
            await uploader.submit("Alice")

        request = client.fetch_json.await_args.args[0]
        assert request.files is None
        assert len(request.json["files"]) == 2

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_break_submission(self):
        def broken(*args):
            raise ValueError("listener bug")

        async with _orchestrator(_fake_client()) as uploader:
            uploader.on(PROGRESS, broken)
            uploader.on(BATCH_COMPLETE, broken)
            uploader.add_files(_photos(2))
            outcome = await uploader.submit("Alice")
        assert outcome.success is True


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_second_submit_is_refused_and_edits_locked(self):
        gate = asyncio.Event()

        async def slow_fetch(request, **kwargs):
            await gate.wait()
            return {"ok": True}

        client = _fake_client(slow_fetch)
        async with _orchestrator(client) as uploader:
            uploader.add_files(_photos(2))
            task = asyncio.create_task(uploader.submit("Alice"))
            await asyncio.sleep(0)

            assert uploader.state == SubmissionState.SUBMITTING
            assert uploader.progress is not None
            busy = await uploader.submit("Alice")
            assert busy.status == SubmissionStatus.BUSY
            with pytest.raises(SelectionLockedError):
                uploader.add_files(_photos(1))
            with pytest.raises(SelectionLockedError):
                uploader.clear()

            gate.set()
            outcome = await task

        assert outcome.success is True
        assert client.fetch_json.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_stops_new_batches(self):
        holder = {}

        async def fetch(request, **kwargs):
            holder["uploader"].cancel()
            return {"ok": True}

        async with _orchestrator(_fake_client(fetch)) as uploader:
            holder["uploader"] = uploader
            uploader.add_files(_photos(6))
            outcome = await uploader.submit("Alice")

            assert outcome.status == SubmissionStatus.CANCELLED
            assert outcome.batches_sent == 1
            assert outcome.uploaded_items == 3
            assert uploader.state == SubmissionState.IDLE
            assert uploader.progress is None
            assert len(uploader.selection) == 6
            assert uploader.name == "Alice"

    def test_cancel_when_idle(self):
        uploader = _orchestrator(_fake_client())
        assert uploader.cancel() is False

    @pytest.mark.asyncio
    async def test_task_cancellation_clears_progress(self):
        async def hang(request, **kwargs):
            await asyncio.Event().wait()

        async with _orchestrator(_fake_client(hang)) as uploader:
            progress_events = []
            state_events = []
            uploader.on(PROGRESS, progress_events.append)
            uploader.on(STATE, state_events.append)
            uploader.add_files(_photos(2))
            task = asyncio.create_task(uploader.submit("Alice"))
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            assert uploader.state == SubmissionState.IDLE
            assert uploader.progress is None
            assert len(uploader.selection) == 2
            assert progress_events == [UploadProgress(0, 2), None]
            assert state_events == [SubmissionState.SUBMITTING, SubmissionState.IDLE]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_exit_releases_all_handles(self):
        previews = PreviewService()
        async with _orchestrator(_fake_client(), previews=previews) as uploader:
            uploader.add_files(_photos(3))
            assert previews.live_count == 3
        assert previews.live_count == 0
