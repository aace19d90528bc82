"""
Image-to-Video Generation Client

Turns (prompt, base64 image, mime type) into a playable local video using the
Gemini API video model:
1. Build the enhanced prompt and payload
2. Submit a long-running generate_videos operation
3. Poll the operation until done (bounded by PollPolicy)
4. Download the result URI and materialize it as a GeneratedAsset

Every failure leaves as exactly one VideoGenerationError subclass. Nothing is
retried automatically: a submission creates a billable remote job and is not
idempotent, so callers should only re-invoke generate_video deliberately.
"""

import logging
import uuid
from typing import Any, Callable, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from core.config import Config, CredentialPolicy, get_config

from .assets import AssetFetcher, GeneratedAsset, redact_uri
from .errors import (
    AssetFetchFailedError,
    InvalidCredentialError,
    MissingCredentialError,
    NoResultProducedError,
    SubmissionFailedError,
    UnclassifiedError,
    VideoGenerationError,
)
from .operations import Failed, Pending, decode_operation
from .polling import PollPolicy, poll_until_done
from .prompts import GenerationRequest, VideoPayload, build_payload

logger = logging.getLogger(__name__)


def is_credential_error(error: BaseException) -> bool:
    """True if the SDK error means the API key was rejected."""
    if not isinstance(error, genai_errors.APIError):
        return False
    if error.code in (401, 403):
        return True
    text = f"{error.status or ''} {error.message or ''}"
    return "API_KEY" in text.upper().replace(" ", "_")


def classify_error(stage: str, error: BaseException) -> VideoGenerationError:
    """
    Map a raw failure from ``stage`` to a user-facing error kind.

    The raw error is logged here with its traceback; the returned error
    carries only a presentable message and keeps the raw one on ``cause``.
    """
    if isinstance(error, VideoGenerationError):
        logger.error(f"{stage} failed [{error.error_code}]: {error.message}", exc_info=error.cause)
        return error

    logger.error(f"{stage} failed: {type(error).__name__}: {error}", exc_info=error)

    if is_credential_error(error):
        return InvalidCredentialError(
            "The API key is invalid or lacks access. Please check your settings.",
            status_code=error.code,
            cause=error,
        )
    if stage == "config":
        return UnclassifiedError(f"Invalid configuration: {error}", cause=error)
    if stage == "submit":
        return SubmissionFailedError(
            "The video generation request could not be submitted.",
            cause=error,
        )
    if stage == "download":
        return AssetFetchFailedError(
            "The generated video could not be downloaded.",
            cause=error,
        )
    return UnclassifiedError(
        "An error occurred while contacting the video generation service.",
        cause=error,
    )


class VideoGenerationClient:
    """
    Image-to-video client.

    Usage:
        async with VideoGenerationClient() as client:
            asset = await client.generate_video(
                prompt="make the person wave",
                image_data=image_base64,
                mime_type="image/jpeg",
            )
            print(asset.url)
            asset.release()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        on_progress: Optional[Callable[[str, int, str], None]] = None,
        genai_client: Optional[Any] = None,
        fetcher: Optional[AssetFetcher] = None,
        poll_policy: Optional[PollPolicy] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Optional config override
            on_progress: Callback for progress updates (request_id, percent, message)
            genai_client: Pre-built google-genai client (created lazily otherwise)
            fetcher: Asset downloader (built from config otherwise)
            poll_policy: Polling delay and ceiling (built from config otherwise)
        """
        self.on_progress = on_progress
        try:
            self.config = config or get_config()
            CredentialPolicy(self.config.download.credential_policy)
            self.poll_policy = poll_policy or PollPolicy.from_config(self.config.polling)
        except ValueError as e:
            raise classify_error("config", e) from e

        if not self.poll_policy.bounded:
            logger.warning("Polling is unbounded; a stuck operation will be waited on forever")

        self._genai_client = genai_client
        self._fetcher = fetcher

    async def __aenter__(self) -> "VideoGenerationClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the download client."""
        if self._fetcher:
            await self._fetcher.close()

    def _require_api_key(self) -> str:
        api_key = self.config.api.api_key
        if not api_key:
            raise classify_error(
                "config",
                MissingCredentialError(
                    "No API key configured. Set API_KEY (or GEMINI_API_KEY) and try again."
                ),
            )
        return api_key

    def _get_genai_client(self, api_key: str):
        """Get or create the Gemini client."""
        if self._genai_client is None:
            http_options = None
            if self.config.api.base_url:
                http_options = {"base_url": self.config.api.base_url}
            self._genai_client = genai.Client(api_key=api_key, http_options=http_options)
        return self._genai_client

    def _get_fetcher(self, api_key: str) -> AssetFetcher:
        if self._fetcher is None:
            self._fetcher = AssetFetcher(
                api_key=api_key,
                credential_policy=self.config.download.credential_policy,
                timeout_seconds=self.config.download.timeout_seconds,
            )
        return self._fetcher

    def _emit_progress(self, request_id: str, percent: int, message: str):
        """Emit progress update via callback."""
        if self.on_progress:
            try:
                self.on_progress(request_id, percent, message)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def _poll_progress(self, attempt: int) -> int:
        if self.poll_policy.max_attempts:
            return min(20 + attempt * 70 // self.poll_policy.max_attempts, 90)
        return min(20 + attempt * 5, 90)

    async def _submit(self, client, payload: VideoPayload):
        return await client.aio.models.generate_videos(
            model=payload.model,
            prompt=payload.prompt,
            image=types.Image(image_bytes=payload.image_bytes, mime_type=payload.mime_type),
            config=types.GenerateVideosConfig(number_of_videos=payload.number_of_videos),
        )

    async def generate_video(self, prompt: str, image_data: str, mime_type: str) -> GeneratedAsset:
        """
        Generate a video from a base image and a text prompt.

        Args:
            prompt: Description of the desired animation
            image_data: Base64 encoded source image
            mime_type: MIME type of the source image (e.g. "image/jpeg")

        Returns:
            GeneratedAsset wrapping the downloaded video; the caller releases it

        Raises:
            MissingCredentialError: no API key, raised before any network call
            InvalidCredentialError: the API key was rejected
            SubmissionFailedError: the job could not be created
            PollingTimeoutError: the job outlived the polling ceiling
            NoResultProducedError: the job finished without a video
            AssetFetchFailedError: the video could not be downloaded
            UnclassifiedError: anything else
        """
        request_id = str(uuid.uuid4())
        api_key = self._require_api_key()
        request = GenerationRequest(prompt=prompt, image_data=image_data, mime_type=mime_type)

        stage = "build"
        try:
            payload = build_payload(
                request,
                model=self.config.models.video_model,
                watermark=self.config.models.watermark_text,
                number_of_videos=self.config.models.number_of_videos,
            )
            client = self._get_genai_client(api_key)

            # Submit
            stage = "submit"
            self._emit_progress(request_id, 5, "Submitting generation request")
            logger.info(f"Submitting video job {request_id}: model={payload.model}, prompt={prompt[:50]}...")
            operation = await self._submit(client, payload)
            logger.info(f"Video job {request_id} created: operation={getattr(operation, 'name', None)}")
            self._emit_progress(request_id, 20, "Job queued")

            # Poll
            stage = "poll"

            def on_poll(attempt: int, op: Any):
                self._emit_progress(request_id, self._poll_progress(attempt), f"Processing (check {attempt})")

            operation = await poll_until_done(
                operation,
                refresh=lambda op: client.aio.operations.get(op),
                policy=self.poll_policy,
                on_poll=on_poll,
            )

            # Extract
            stage = "result"
            state = decode_operation(operation)
            if isinstance(state, Failed):
                raise NoResultProducedError(f"Video generation failed: {state.reason}")
            if isinstance(state, Pending):
                raise UnclassifiedError("The operation was reported done but is still pending.")

            # Download
            stage = "download"
            self._emit_progress(request_id, 92, "Downloading video")
            content, video_mime = await self._get_fetcher(api_key).fetch(state.uri)
            asset = GeneratedAsset.materialize(
                content,
                video_mime,
                source_uri=redact_uri(state.uri),
                output_dir=self.config.download.output_dir,
            )
        except VideoGenerationError as e:
            raise classify_error(stage, e)
        except Exception as e:
            raise classify_error(stage, e) from e

        self._emit_progress(request_id, 100, "Generation complete")
        logger.info(f"Video job {request_id} complete: {asset.path} ({asset.size} bytes)")
        return asset


async def generate_video(
    prompt: str,
    image_data: str,
    mime_type: str,
    config: Optional[Config] = None,
    on_progress: Optional[Callable[[str, int, str], None]] = None,
) -> GeneratedAsset:
    """Generate one video with a short-lived client."""
    async with VideoGenerationClient(config=config, on_progress=on_progress) as client:
        return await client.generate_video(prompt, image_data, mime_type)
