"""
Image-to-Video Client Tests

Drives VideoGenerationClient end to end against a fake google-genai client and
an httpx MockTransport, covering:
1. Happy path (submit, poll, download, asset handle)
2. Credential checks (missing, rejected)
3. Submission and polling failures
4. Missing result URI and failed downloads
5. Progress callbacks

Run with:
    python -m pytest tests/test_video_generation.py -v
"""

import base64
import logging
import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from google.genai import errors as genai_errors

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import APIConfig, Config, CredentialPolicy, DownloadConfig, PollingConfig
from services.video_generation import (
    AssetFetcher,
    AssetFetchFailedError,
    InvalidCredentialError,
    InvalidRequestError,
    MissingCredentialError,
    NoResultProducedError,
    PollingTimeoutError,
    PollPolicy,
    SubmissionFailedError,
    UnclassifiedError,
    VideoGenerationClient,
    generate_video,
)


RESULT_URI = "https://example/video123"
IMAGE_B64 = base64.b64encode(b"\xff\xd8\xff\xe0" + b"\x00" * (10 * 1024 - 4)).decode("ascii")


def pending_operation(name="operations/abc"):
    return SimpleNamespace(name=name, done=False, error=None, response=None)


def finished_operation(uri=RESULT_URI, name="operations/abc"):
    video = SimpleNamespace(uri=uri)
    response = SimpleNamespace(
        generated_videos=[SimpleNamespace(video=video)] if uri is not None else [],
        rai_media_filtered_count=0,
        rai_media_filtered_reasons=None,
    )
    return SimpleNamespace(name=name, done=True, error=None, response=response)


def make_genai_client(submit_result=None, poll_results=None):
    """Fake genai.Client exposing client.aio.models / client.aio.operations."""
    client = MagicMock()
    client.aio.models.generate_videos = AsyncMock(
        return_value=submit_result if submit_result is not None else pending_operation()
    )
    client.aio.operations.get = AsyncMock(side_effect=list(poll_results or []))
    return client


class Transport:
    """Records download requests and answers with a fixed response."""

    def __init__(self, status_code=200, content=b"\x00" * 500, headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers if headers is not None else {"content-type": "video/mp4"}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)


@pytest.fixture
def config(tmp_path):
    return Config(
        api=APIConfig(api_key="test-key", base_url=""),
        download=DownloadConfig(
            credential_policy=CredentialPolicy.APPEND_KEY,
            timeout_seconds=5.0,
            output_dir=str(tmp_path),
        ),
    )


@pytest.fixture
def sleep():
    return AsyncMock()


def make_client(config, genai_client, transport, sleep, max_attempts=10, on_progress=None):
    fetcher = AssetFetcher(
        api_key=config.api.api_key,
        credential_policy=config.download.credential_policy,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
    )
    policy = PollPolicy(interval_seconds=10.0, max_attempts=max_attempts, sleep=sleep)
    return VideoGenerationClient(
        config=config,
        on_progress=on_progress,
        genai_client=genai_client,
        fetcher=fetcher,
        poll_policy=policy,
    )


class TestGenerateVideo:
    """Successful generation."""

    @pytest.mark.asyncio
    async def test_wave_scenario(self, config, sleep):
        """Two pending polls then done: three polls, 500-byte asset."""
        genai_client = make_genai_client(
            poll_results=[pending_operation(), pending_operation(), finished_operation()]
        )
        transport = Transport(content=b"v" * 500)
        client = make_client(config, genai_client, transport, sleep)

        asset = await client.generate_video("make the person wave", IMAGE_B64, "image/jpeg")

        assert asset.size == 500
        assert asset.content == b"v" * 500
        assert asset.path.read_bytes() == b"v" * 500
        assert asset.url.startswith("file://")
        assert asset.mime_type == "video/mp4"
        assert genai_client.aio.models.generate_videos.await_count == 1
        assert genai_client.aio.operations.get.await_count == 3
        assert sleep.await_count == 3
        sleep.assert_awaited_with(10.0)

    @pytest.mark.asyncio
    async def test_submission_payload(self, config, sleep):
        """The SDK receives the model, enhanced prompt, raw image bytes and count 1."""
        genai_client = make_genai_client(submit_result=finished_operation())
        client = make_client(config, genai_client, Transport(), sleep)

        await client.generate_video("make the person wave", IMAGE_B64, "image/jpeg")

        kwargs = genai_client.aio.models.generate_videos.await_args.kwargs
        assert kwargs["model"] == config.models.video_model
        assert 'User description: "make the person wave"' in kwargs["prompt"]
        assert kwargs["image"].image_bytes == base64.b64decode(IMAGE_B64)
        assert kwargs["image"].mime_type == "image/jpeg"
        assert kwargs["config"].number_of_videos == 1

    @pytest.mark.asyncio
    async def test_already_done_skips_polling(self, config, sleep):
        genai_client = make_genai_client(submit_result=finished_operation())
        client = make_client(config, genai_client, Transport(), sleep)

        asset = await client.generate_video("zoom in", IMAGE_B64, "image/png")

        assert asset.size == 500
        assert genai_client.aio.operations.get.await_count == 0
        assert sleep.await_count == 0

    @pytest.mark.asyncio
    async def test_credential_appended_to_download(self, config, sleep):
        genai_client = make_genai_client(
            submit_result=finished_operation(uri="https://example/files/v1:download?alt=media")
        )
        transport = Transport()
        client = make_client(config, genai_client, transport, sleep)

        asset = await client.generate_video("zoom in", IMAGE_B64, "image/png")

        params = transport.requests[0].url.params
        assert params["alt"] == "media"
        assert params["key"] == "test-key"
        assert "test-key" not in asset.source_uri

    @pytest.mark.asyncio
    async def test_self_authorizing_download(self, config, sleep):
        config.download.credential_policy = CredentialPolicy.SELF_AUTHORIZING
        genai_client = make_genai_client(submit_result=finished_operation())
        transport = Transport()
        client = make_client(config, genai_client, transport, sleep)

        await client.generate_video("zoom in", IMAGE_B64, "image/png")

        assert "key" not in transport.requests[0].url.params
        assert str(transport.requests[0].url) == RESULT_URI

    @pytest.mark.asyncio
    async def test_each_call_submits_a_new_job(self, config, sleep):
        """Identical inputs still create one remote job per call."""
        genai_client = make_genai_client()
        genai_client.aio.models.generate_videos = AsyncMock(
            side_effect=[finished_operation(name="operations/1"), finished_operation(name="operations/2")]
        )
        client = make_client(config, genai_client, Transport(), sleep)

        first = await client.generate_video("wave", IMAGE_B64, "image/jpeg")
        second = await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert genai_client.aio.models.generate_videos.await_count == 2
        assert first.path != second.path

    @pytest.mark.asyncio
    async def test_asset_release(self, config, sleep):
        genai_client = make_genai_client(submit_result=finished_operation())
        client = make_client(config, genai_client, Transport(), sleep)

        asset = await client.generate_video("wave", IMAGE_B64, "image/jpeg")
        assert not asset.released

        asset.release()
        asset.release()

        assert asset.released


class TestCredentials:
    """Missing and rejected API keys."""

    @pytest.mark.asyncio
    async def test_missing_credential_makes_no_calls(self, config, sleep):
        config.api.api_key = ""
        genai_client = make_genai_client(submit_result=finished_operation())
        transport = Transport()
        client = make_client(config, genai_client, transport, sleep)

        with pytest.raises(MissingCredentialError):
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert genai_client.aio.models.generate_videos.await_count == 0
        assert genai_client.aio.operations.get.await_count == 0
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_rejected_key_on_submit(self, config, sleep):
        genai_client = make_genai_client()
        genai_client.aio.models.generate_videos = AsyncMock(
            side_effect=genai_errors.ClientError(
                400,
                {
                    "error": {
                        "code": 400,
                        "message": "API key not valid. Please pass a valid API key.",
                        "status": "INVALID_ARGUMENT",
                    }
                },
            )
        )
        client = make_client(config, genai_client, Transport(), sleep)

        with pytest.raises(InvalidCredentialError) as exc_info:
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert isinstance(exc_info.value.cause, genai_errors.ClientError)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_forbidden_download(self, config, sleep):
        genai_client = make_genai_client(submit_result=finished_operation())
        client = make_client(config, genai_client, Transport(status_code=403, content=b""), sleep)

        with pytest.raises(InvalidCredentialError) as exc_info:
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert exc_info.value.status_code == 403


class TestSubmissionFailures:
    """Failures before a job exists."""

    @pytest.mark.asyncio
    async def test_transport_error_is_submission_failed(self, config, sleep):
        genai_client = make_genai_client()
        genai_client.aio.models.generate_videos = AsyncMock(
            side_effect=httpx.ConnectError("connection refused")
        )
        client = make_client(config, genai_client, Transport(), sleep)

        with pytest.raises(SubmissionFailedError) as exc_info:
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert exc_info.value.error_code == "SUBMISSION_FAILED"
        assert "connection refused" not in str(exc_info.value)
        assert genai_client.aio.operations.get.await_count == 0

    @pytest.mark.asyncio
    async def test_invalid_image_is_never_submitted(self, config, sleep):
        genai_client = make_genai_client()
        client = make_client(config, genai_client, Transport(), sleep)

        with pytest.raises(InvalidRequestError):
            await client.generate_video("wave", "not base64!!", "image/jpeg")

        assert genai_client.aio.models.generate_videos.await_count == 0

    @pytest.mark.asyncio
    async def test_empty_prompt_is_never_submitted(self, config, sleep):
        genai_client = make_genai_client()
        client = make_client(config, genai_client, Transport(), sleep)

        with pytest.raises(SubmissionFailedError):
            await client.generate_video("   ", IMAGE_B64, "image/jpeg")

        assert genai_client.aio.models.generate_videos.await_count == 0


class TestPolling:
    """Polling ceiling and poll errors."""

    @pytest.mark.asyncio
    async def test_never_done_times_out(self, config, sleep):
        genai_client = make_genai_client(poll_results=[pending_operation()] * 5)
        transport = Transport()
        client = make_client(config, genai_client, transport, sleep, max_attempts=5)

        with pytest.raises(PollingTimeoutError) as exc_info:
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert exc_info.value.attempts == 5
        assert genai_client.aio.operations.get.await_count == 5
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_unbounded_policy_keeps_waiting(self, config, sleep):
        """With no ceiling the client keeps polling until the job reports done."""
        genai_client = make_genai_client(
            poll_results=[pending_operation()] * 50 + [finished_operation()]
        )
        client = make_client(config, genai_client, Transport(), sleep, max_attempts=0)

        asset = await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert asset.size == 500
        assert genai_client.aio.operations.get.await_count == 51

    @pytest.mark.asyncio
    async def test_poll_error_aborts(self, config, sleep):
        genai_client = make_genai_client(
            poll_results=[pending_operation(), httpx.ReadTimeout("timed out"), finished_operation()]
        )
        client = make_client(config, genai_client, Transport(), sleep)

        with pytest.raises(UnclassifiedError):
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert genai_client.aio.operations.get.await_count == 2


class TestResults:
    """Finished jobs without a usable video."""

    @pytest.mark.asyncio
    async def test_missing_uri(self, config, sleep):
        genai_client = make_genai_client(poll_results=[finished_operation(uri=None)])
        transport = Transport()
        client = make_client(config, genai_client, transport, sleep)

        with pytest.raises(NoResultProducedError):
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_operation_error(self, config, sleep):
        failed = SimpleNamespace(
            name="operations/abc",
            done=True,
            error={"code": 13, "message": "Internal error"},
            response=None,
        )
        genai_client = make_genai_client(submit_result=failed)
        client = make_client(config, genai_client, Transport(), sleep)

        with pytest.raises(NoResultProducedError) as exc_info:
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert "Internal error" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_not_found_download(self, config, sleep, tmp_path):
        genai_client = make_genai_client(submit_result=finished_operation())
        client = make_client(config, genai_client, Transport(status_code=404, content=b"missing"), sleep)

        with pytest.raises(AssetFetchFailedError) as exc_info:
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert exc_info.value.status_code == 404
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_empty_download(self, config, sleep):
        genai_client = make_genai_client(submit_result=finished_operation())
        client = make_client(config, genai_client, Transport(content=b""), sleep)

        with pytest.raises(AssetFetchFailedError):
            await client.generate_video("wave", IMAGE_B64, "image/jpeg")


class TestProgress:
    """Progress callback behavior."""

    @pytest.mark.asyncio
    async def test_progress_reported(self, config, sleep):
        events = []
        genai_client = make_genai_client(poll_results=[pending_operation(), finished_operation()])
        client = make_client(
            config,
            genai_client,
            Transport(),
            sleep,
            on_progress=lambda request_id, percent, message: events.append((request_id, percent)),
        )

        await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        percents = [percent for _, percent in events]
        assert percents[0] == 5
        assert percents[-1] == 100
        assert percents == sorted(percents)
        assert len({request_id for request_id, _ in events}) == 1

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_abort(self, config, sleep):
        genai_client = make_genai_client(submit_result=finished_operation())

        def broken(request_id, percent, message):
            raise RuntimeError("display gone")

        client = make_client(config, genai_client, Transport(), sleep, on_progress=broken)

        asset = await client.generate_video("wave", IMAGE_B64, "image/jpeg")

        assert asset.size == 500


class TestClientConfiguration:
    """Configuration problems surface as classified errors."""

    @pytest.mark.asyncio
    async def test_unknown_credential_policy(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "test-key")
        monkeypatch.setenv("ASSET_CREDENTIAL_POLICY", "bogus")
        monkeypatch.setattr("core.config._config", None)

        with pytest.raises(UnclassifiedError) as exc_info:
            await generate_video("wave", IMAGE_B64, "image/jpeg")

        assert "bogus" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, ValueError)

    def test_unknown_policy_on_explicit_config(self, config):
        config.download.credential_policy = "sometimes"

        with pytest.raises(UnclassifiedError):
            VideoGenerationClient(config=config, genai_client=make_genai_client())

    def test_negative_max_attempts(self, config):
        config.polling = PollingConfig(interval_seconds=10.0, max_attempts=-1, max_elapsed_seconds=None)

        with pytest.raises(UnclassifiedError) as exc_info:
            VideoGenerationClient(config=config, genai_client=make_genai_client())

        assert "max_attempts" in str(exc_info.value)

    def test_unbounded_policy_warns(self, config, caplog):
        with caplog.at_level(logging.WARNING, logger="services.video_generation.client"):
            VideoGenerationClient(
                config=config,
                genai_client=make_genai_client(),
                poll_policy=PollPolicy(max_attempts=0, max_elapsed_seconds=None),
            )

        assert "unbounded" in caplog.text

    def test_bounded_policy_is_quiet(self, config, caplog):
        with caplog.at_level(logging.WARNING, logger="services.video_generation.client"):
            VideoGenerationClient(
                config=config,
                genai_client=make_genai_client(),
                poll_policy=PollPolicy(max_attempts=5),
            )

        assert "unbounded" not in caplog.text
