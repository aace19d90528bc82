"""
Decoding of remote video operations.

The SDK returns a loosely-typed operation object whose result URI sits several
optional levels deep. ``decode_operation`` turns it into one of three explicit
states so the rest of the client never inspects nested fields itself.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Pending:
    """The operation is still running."""
    name: Optional[str] = None


@dataclass(frozen=True)
class Succeeded:
    """The operation finished with a downloadable video."""
    uri: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Failed:
    """The operation finished without a video."""
    reason: str
    name: Optional[str] = None


OperationState = Union[Pending, Succeeded, Failed]


def _describe_error(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message")
        code = error.get("code")
    else:
        message = getattr(error, "message", None)
        code = getattr(error, "code", None)
    if message and code is not None:
        return f"{message} (code {code})"
    return str(message or error)


def decode_operation(operation: Any) -> OperationState:
    """Decode an SDK operation into Pending, Succeeded or Failed."""
    name = getattr(operation, "name", None)

    if not getattr(operation, "done", False):
        return Pending(name=name)

    error = getattr(operation, "error", None)
    if error:
        return Failed(reason=_describe_error(error), name=name)

    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    if response is None:
        return Failed(reason="The operation finished without a response.", name=name)

    videos = list(getattr(response, "generated_videos", None) or [])
    if not videos:
        filtered = getattr(response, "rai_media_filtered_count", 0) or 0
        reasons = getattr(response, "rai_media_filtered_reasons", None) or []
        if filtered or reasons:
            detail = "; ".join(reasons) if reasons else f"{filtered} video(s) filtered"
            return Failed(reason=f"Blocked by the safety filter: {detail}", name=name)
        return Failed(reason="The operation returned no videos.", name=name)

    video = getattr(videos[0], "video", None)
    uri = getattr(video, "uri", None) if video is not None else None
    if not uri:
        return Failed(reason="The generated video has no download link.", name=name)

    return Succeeded(uri=uri, name=name)
