"""Configuration management with pydantic-settings for the Twosense connector.

Loads from (in order of precedence):
1. Environment variables with the TWOSENSE_ prefix (highest priority)
2. .env file in the working directory
3. Default values (lowest priority)

The client secret is held as SecretStr so it never shows up in reprs or logs.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Credentials

logger = logging.getLogger("twosense.config")

__all__ = [
    "DEFAULT_BASE_URL",
    "TwosenseConfig",
    "get_config",
    "reset_config",
]

DEFAULT_BASE_URL = "https://webapi.twosense.ai"


class TwosenseConfig(BaseSettings):
    """Configuration for the Twosense connector.

    Attributes:
        base_url: Twosense Web API base URL (trailing slashes removed)
        client_id: OAuth2 client id
        client_secret: OAuth2 client secret (SecretStr)
        state_dir: Directory holding poll cursor files
        poll_instance: Key of the poll cursor (one per configured poller)
        max_pages: Optional upper bound on pages per fetch (unset = unbounded)
        connect_timeout: Connection timeout for API calls, seconds
        read_timeout: Read timeout for API calls, seconds
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json for production, text for development)
        pushgateway_url: Prometheus Pushgateway for CLI runs (unset = no push)
    """

    model_config = SettingsConfigDict(
        env_prefix="TWOSENSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL for the Twosense Web API (no trailing slash).",
    )

    client_id: str = Field(default="", description="OAuth2 client id.")

    client_secret: SecretStr = Field(
        default=SecretStr(""), description="OAuth2 client secret."
    )

    state_dir: Path = Field(
        default=Path("~/.twosense/state"),
        description="Directory for persisted poll cursors.",
    )

    poll_instance: str = Field(
        default="default",
        min_length=1,
        description="Cursor key for this poller. Use one per configured poll target.",
    )

    max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Abort a fetch after this many pages. Unset follows Link headers until exhausted.",
    )

    connect_timeout: float = Field(default=5.0, gt=0.0, le=60.0)

    read_timeout: float = Field(default=30.0, gt=0.0, le=300.0)

    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )

    log_format: str = Field(default="json", pattern="^(json|text)$")

    pushgateway_url: str | None = Field(
        default=None,
        description="Pushgateway host:port for short-lived CLI runs.",
    )

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("state_dir", mode="before")
    @classmethod
    def expand_user_paths(cls, v):
        """Expand ~ and environment variables in paths."""
        if isinstance(v, (str, Path)):
            return Path(os.path.expanduser(os.path.expandvars(str(v))))
        return v

    def credentials(self) -> Credentials:
        """Build the immutable Credentials record for one invocation."""
        return Credentials(
            base_url=self.base_url,
            client_id=self.client_id,
            client_secret=self.client_secret.get_secret_value(),
        )


@lru_cache(maxsize=1)
def get_config() -> TwosenseConfig:
    """Get global configuration singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Raises:
        ValidationError: If configuration values are invalid.
    """
    return TwosenseConfig()


def reset_config() -> None:
    """Reset configuration singleton. Intended for tests."""
    get_config.cache_clear()
