"""
Settings
Configuration management for the Storage MCP server.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_BACKEND = "dropbox"
DEFAULT_DRAIN_TIMEOUT = 5.0
DEFAULT_REQUEST_TIMEOUT = 30.0

# Paths used by the container image
DEFAULT_GOOGLE_CREDENTIALS_PATH = "/app/data/mcp/google-drive-credentials.json"
DEFAULT_GOOGLE_TOKEN_PATH = "/app/data/mcp/google-drive-token.json"


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


@dataclass
class Config:
    """Server configuration."""
    environment: str = "development"
    log_level: str = "DEBUG"
    backend: str = DEFAULT_BACKEND
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    dropbox_token_var: str = "DROPBOX_ACCESS_TOKEN"
    google_credentials_path: str = DEFAULT_GOOGLE_CREDENTIALS_PATH
    google_token_path: str = DEFAULT_GOOGLE_TOKEN_PATH
    google_token_var: str = "GOOGLE_DRIVE_ACCESS_TOKEN"


class ConfigManager:
    """Configuration manager - loads and provides config."""

    _instance: Optional["ConfigManager"] = None

    def __init__(self):
        self._config: Optional[Config] = None

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def load(self) -> Config:
        """Load configuration from environment (and a .env file if present)."""
        load_dotenv()
        env = os.getenv("ENVIRONMENT", "development")
        self._config = Config(
            environment=env,
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if env == "development" else "INFO"),
            backend=os.getenv("STORAGE_MCP_BACKEND", DEFAULT_BACKEND),
            drain_timeout=_get_float("STORAGE_MCP_DRAIN_TIMEOUT", DEFAULT_DRAIN_TIMEOUT),
            request_timeout=_get_float("STORAGE_MCP_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            google_credentials_path=os.getenv("GOOGLE_DRIVE_CREDENTIALS_PATH", DEFAULT_GOOGLE_CREDENTIALS_PATH),
            google_token_path=os.getenv("GOOGLE_DRIVE_TOKEN_PATH", DEFAULT_GOOGLE_TOKEN_PATH),
        )
        return self._config

    def get(self) -> Config:
        """Get current configuration."""
        if self._config is None:
            # Create default config if not loaded
            self._config = Config()
        return self._config
