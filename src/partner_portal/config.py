"""Client configuration via environment variables.

Uses pydantic-settings to load config from env vars with PARTNER_PORTAL_ prefix.
No config files — the backend URL and token location come from the
environment, the same way the dashboard had its API URL baked in at build time.

Learn: ApiClient never reads these settings itself. The CLI and example
scripts build a client from them; tests construct clients directly.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_API_URL = "http://localhost:8000"


class Settings(BaseSettings):
    """All client configuration. Set via PARTNER_PORTAL_* env vars."""

    # Backend
    api_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0  # seconds, enforced by httpx

    # Token persistence (FileTokenStore)
    token_file: str = "~/.config/partner-portal/tokens.json"

    # Logging
    log_level: str = "WARNING"

    model_config = {"env_prefix": "PARTNER_PORTAL_"}

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Paths always start with '/', so the base URL must not end with one."""
        return value.rstrip("/") or DEFAULT_API_URL

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level


# Singleton — import this from the CLI and scripts
settings = Settings()
