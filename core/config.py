"""
Configuration management for the image-to-video service.

Centralizes all configuration including:
- API credential and endpoint override
- Video model selection
- Polling ceiling for long-running operations
- Asset download policy
"""

import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_api_key() -> str:
    for name in ("API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"):
        value = os.getenv(name, "")
        if value:
            return value
    return ""


class CredentialPolicy(str, Enum):
    """How the result URI is authorized when the asset is downloaded."""
    APPEND_KEY = "append_key"              # credential sent as ?key=...
    SELF_AUTHORIZING = "self_authorizing"  # URI is a signed temporary link


@dataclass
class APIConfig:
    """Credential and endpoint for the Gemini API."""
    api_key: str = field(default_factory=_env_api_key)
    base_url: str = field(default_factory=lambda: os.getenv("GEMINI_BASE_URL", ""))


@dataclass
class ModelConfig:
    """Model selection configuration."""
    video_model: str = field(
        default_factory=lambda: os.getenv("VIDEO_MODEL", "veo-2.0-generate-001")
    )
    number_of_videos: int = 1
    watermark_text: str = field(
        default_factory=lambda: os.getenv("WATERMARK_TEXT", "ZERO AI")
    )


@dataclass
class PollingConfig:
    """Operation polling behavior."""
    interval_seconds: float = field(
        default_factory=lambda: _env_float("POLL_INTERVAL_SECONDS", 10.0)
    )
    # 0 means poll until the remote operation reports done
    max_attempts: int = field(default_factory=lambda: _env_int("POLL_MAX_ATTEMPTS", 90))
    max_elapsed_seconds: Optional[float] = field(
        default_factory=lambda: _env_float("POLL_MAX_ELAPSED_SECONDS", None)
    )


@dataclass
class DownloadConfig:
    """Asset download configuration."""
    credential_policy: CredentialPolicy = field(
        default_factory=lambda: CredentialPolicy(
            os.getenv("ASSET_CREDENTIAL_POLICY", CredentialPolicy.APPEND_KEY.value)
        )
    )
    timeout_seconds: float = field(
        default_factory=lambda: _env_float("DOWNLOAD_TIMEOUT_SECONDS", 300.0)
    )
    output_dir: str = field(
        default_factory=lambda: os.getenv("VIDEO_OUTPUT_DIR", tempfile.gettempdir())
    )


@dataclass
class Config:
    """Main configuration class."""

    api: APIConfig = field(default_factory=APIConfig)
    models: ModelConfig = field(default_factory=ModelConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls()

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.api.api_key:
            issues.append("API_KEY not configured (GEMINI_API_KEY / GOOGLE_API_KEY also accepted)")

        if self.polling.interval_seconds is None or self.polling.interval_seconds < 0:
            issues.append("POLL_INTERVAL_SECONDS must be zero or positive")

        if self.polling.max_attempts < 0:
            issues.append("POLL_MAX_ATTEMPTS must be zero (unbounded) or positive")

        if self.polling.max_attempts == 0 and self.polling.max_elapsed_seconds is None:
            issues.append("Polling is unbounded; a stuck operation will wait forever")

        try:
            CredentialPolicy(self.download.credential_policy)
        except ValueError:
            allowed = ", ".join(p.value for p in CredentialPolicy)
            issues.append(
                f"ASSET_CREDENTIAL_POLICY must be one of: {allowed} "
                f"(got {self.download.credential_policy!r})"
            )

        if not os.path.isdir(self.download.output_dir):
            issues.append(f"VIDEO_OUTPUT_DIR does not exist: {self.download.output_dir}")

        return issues


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reload_config():
    """Reload configuration from environment."""
    global _config
    _config = Config.from_env()
