"""
Generated video download and local asset handles.
"""

import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from core.config import CredentialPolicy

from .errors import AssetFetchFailedError, InvalidCredentialError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
}


def redact_uri(uri: str) -> str:
    """Strip the ``key`` query parameter so URIs are safe to log or store."""
    parts = urlsplit(uri)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "key"]
    return urlunsplit(parts._replace(query=urlencode(query)))


@dataclass
class GeneratedAsset:
    """
    A downloaded video materialized as a local file.

    The caller owns the handle and should call ``release()`` (or use it as a
    context manager) once playback is finished.
    """
    content: bytes
    mime_type: str
    path: Path
    source_uri: str

    @property
    def url(self) -> str:
        """Locally addressable ``file://`` URL for playback."""
        return self.path.as_uri()

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def released(self) -> bool:
        return not self.path.exists()

    def save(self, destination) -> Path:
        """Copy the video to ``destination`` and return its path."""
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.path, destination)
        return destination

    def release(self):
        """Delete the local file. Safe to call more than once."""
        self.path.unlink(missing_ok=True)

    def __enter__(self) -> "GeneratedAsset":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()

    @classmethod
    def materialize(
        cls,
        content: bytes,
        mime_type: str,
        source_uri: str,
        output_dir: str,
    ) -> "GeneratedAsset":
        base_dir = Path(output_dir)
        base_dir.mkdir(parents=True, exist_ok=True)
        extension = _EXTENSIONS.get(mime_type, ".mp4")
        path = base_dir / f"video_{uuid.uuid4().hex}{extension}"
        with open(path, "wb") as f:
            f.write(content)
        return cls(content=content, mime_type=mime_type, path=path, source_uri=source_uri)


class AssetFetcher:
    """
    Downloads the binary payload behind a result URI.

    ``credential_policy`` decides whether the API key is appended to the URI
    as the ``key`` query parameter or the URI is used as a signed link.
    """

    def __init__(
        self,
        api_key: str,
        credential_policy: CredentialPolicy = CredentialPolicy.APPEND_KEY,
        timeout_seconds: float = 300.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.credential_policy = CredentialPolicy(credential_policy)
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout_seconds)
            self._owns_client = True
        return self._http_client

    async def close(self):
        """Close the HTTP client if this fetcher created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def _authorize(self, uri: str) -> httpx.URL:
        """Result URI with the credential merged into its existing query."""
        url = httpx.URL(uri)
        if self.credential_policy == CredentialPolicy.APPEND_KEY:
            url = url.copy_merge_params({"key": self.api_key})
        return url

    async def fetch(self, uri: str) -> tuple[bytes, str]:
        """
        Download ``uri``.

        Returns:
            (payload bytes, mime type)

        Raises:
            InvalidCredentialError: the download was refused with 401/403
            AssetFetchFailedError: transport error, non-2xx status or empty body
        """
        safe_uri = redact_uri(uri)
        client = await self._get_client()

        try:
            response = await client.get(self._authorize(uri), follow_redirects=True)
        except httpx.TimeoutException as e:
            raise AssetFetchFailedError(
                "Downloading the video timed out.", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise AssetFetchFailedError(
                "The video could not be downloaded.", cause=e
            ) from e

        if response.status_code in (401, 403):
            raise InvalidCredentialError(
                "The API key was rejected while downloading the video.",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise AssetFetchFailedError(
                f"Failed to download the video: {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
            )

        content = response.content
        if not content:
            raise AssetFetchFailedError(
                "The downloaded video is empty.", status_code=response.status_code
            )

        mime_type = response.headers.get("content-type", "video/mp4").split(";")[0].strip()
        logger.info(f"Video downloaded from {safe_uri} ({len(content) / 1024 / 1024:.1f} MB)")
        return content, mime_type or "video/mp4"
