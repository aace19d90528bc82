"""
Core Components

Provides foundational infrastructure for the image-to-video service:
- Environment-driven configuration
- Asset credential policy
"""

from .config import Config, CredentialPolicy, get_config, reload_config

__all__ = ["Config", "CredentialPolicy", "get_config", "reload_config"]
