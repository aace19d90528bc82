"""
Error taxonomy for image-to-video generation.

Every failure that leaves the client is exactly one of these kinds. The raw
SDK or transport error is kept on ``cause`` for diagnostics and never shown
to the user directly.
"""

from typing import Optional


class VideoGenerationError(Exception):
    """Raised when video generation fails."""

    error_code = "VIDEO_GENERATION_ERROR"

    def __init__(self, message: str, error_code: str = None, cause: Optional[BaseException] = None):
        self.message = message
        self.error_code = error_code or self.error_code
        self.cause = cause
        super().__init__(message)


class MissingCredentialError(VideoGenerationError):
    """No API key configured. Raised before any network call."""
    error_code = "MISSING_CREDENTIAL"


class InvalidCredentialError(VideoGenerationError):
    """The remote service rejected the API key."""
    error_code = "INVALID_CREDENTIAL"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.status_code = status_code
        super().__init__(message, cause=cause)


class SubmissionFailedError(VideoGenerationError):
    """The generation job could not be created."""
    error_code = "SUBMISSION_FAILED"


class InvalidRequestError(SubmissionFailedError):
    """The request was structurally invalid and never submitted."""
    error_code = "INVALID_REQUEST"


class NoResultProducedError(VideoGenerationError):
    """The job finished without a downloadable video."""
    error_code = "NO_RESULT"


class AssetFetchFailedError(VideoGenerationError):
    """Downloading the generated video failed."""
    error_code = "ASSET_FETCH_FAILED"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.status_code = status_code
        super().__init__(message, cause=cause)


class PollingTimeoutError(VideoGenerationError):
    """The job did not finish within the polling ceiling."""
    error_code = "POLL_TIMEOUT"

    def __init__(self, message: str, attempts: int, elapsed_seconds: float):
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        super().__init__(message)


class UnclassifiedError(VideoGenerationError):
    """Any other failure."""
    error_code = "UNCLASSIFIED"
