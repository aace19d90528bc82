"""
Image-to-Video Generation Service

Animates a still image according to a text description using the Gemini API
video model. A single awaitable call submits the job, polls it to
completion, downloads the result and hands back a local asset handle.
"""

from .assets import AssetFetcher, GeneratedAsset
from .client import VideoGenerationClient, classify_error, generate_video
from .errors import (
    AssetFetchFailedError,
    InvalidCredentialError,
    InvalidRequestError,
    MissingCredentialError,
    NoResultProducedError,
    PollingTimeoutError,
    SubmissionFailedError,
    UnclassifiedError,
    VideoGenerationError,
)
from .operations import Failed, Pending, Succeeded, decode_operation
from .polling import PollPolicy
from .prompts import GenerationRequest, build_payload, enhance_prompt

__all__ = [
    "VideoGenerationClient",
    "generate_video",
    "classify_error",
    "GeneratedAsset",
    "AssetFetcher",
    "GenerationRequest",
    "build_payload",
    "enhance_prompt",
    "PollPolicy",
    "Pending",
    "Succeeded",
    "Failed",
    "decode_operation",
    "VideoGenerationError",
    "MissingCredentialError",
    "InvalidCredentialError",
    "SubmissionFailedError",
    "InvalidRequestError",
    "NoResultProducedError",
    "AssetFetchFailedError",
    "PollingTimeoutError",
    "UnclassifiedError",
]
