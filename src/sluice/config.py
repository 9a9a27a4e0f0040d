"""Configuration: Frozen Config with environment-resolved credentials."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from sluice._http import DEFAULT_BASE_URL
from sluice.errors import ConfigurationError

load_dotenv()

_API_KEY_ENV_VAR = "OPENAI_API_KEY"
_BASE_URL_ENV_VAR = "OPENAI_BASE_URL"


@dataclass(frozen=True)
class Config:
    """Immutable connection settings for a Responses provider.

    API key and base URL are auto-resolved from standard environment
    variables when not passed explicitly.

    Example:
        config = Config()
        # api_key from OPENAI_API_KEY, base_url from OPENAI_BASE_URL
    """

    #: Auto-resolved from ``OPENAI_API_KEY`` when *None*.
    api_key: str | None = None
    #: Auto-resolved from ``OPENAI_BASE_URL``, then the public endpoint.
    base_url: str | None = None
    #: Applied to the httpx client used by the SSE fallback.
    timeout_s: float = 600.0

    def __post_init__(self) -> None:
        """Auto-resolve environment values and validate configuration."""
        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(_API_KEY_ENV_VAR))

        if not self.api_key:
            raise ConfigurationError(
                "API key required for the Responses API",
                hint=f"Set {_API_KEY_ENV_VAR} environment variable or pass api_key=...",
            )

        if self.base_url is None:
            resolved = os.environ.get(_BASE_URL_ENV_VAR) or DEFAULT_BASE_URL
            object.__setattr__(self, "base_url", resolved)

        if not isinstance(self.base_url, str) or not self.base_url.strip():
            raise ConfigurationError(
                "base_url must be a non-empty string",
                hint="Pass base_url='https://api.openai.com/v1' or unset it.",
            )

        if self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="This bounds each HTTP request made by the SSE fallback.",
            )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(base_url={self.base_url!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"timeout_s={self.timeout_s})"
        )

    __repr__ = __str__
