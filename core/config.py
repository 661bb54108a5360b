"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SessionGuard happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_refresh_threshold_ms -> SESSION_REFRESH_THRESHOLD_MS).

  @model_validator(mode="after"): DEBUG-conditional SECRET_KEY policy. Dev
      mode generates a key with a warning, production mode refuses to start
      without one.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, session/, or client/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sessionguard.config")

_DEFAULT_CLIENT_STORAGE = Path.home() / ".sessionguard" / "local_storage.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured".
    secret_key: str = ""
    # JSON list in the environment, e.g. ALLOWED_HOSTS='["api.example.com"]'
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    token_expire_seconds: int = 3600
    login_rate_limit: str = "10/minute"
    self_registration_enabled: bool = True

    # ------------------------------------------------------------------
    # Session keeper
    # ------------------------------------------------------------------

    session_cookie_name: str = "sid"
    session_max_age_seconds: int = 30 * 24 * 60 * 60  # 30 days
    session_refresh_threshold_ms: int = Field(default=60_000, gt=0)
    keep_alive_timeout: int = Field(default=5, gt=0)
    keep_alive_max: int = Field(default=1000, gt=0)

    # ------------------------------------------------------------------
    # Resilience responder
    # ------------------------------------------------------------------

    retry_after_seconds: int = Field(default=5, ge=0)
    storage_failure_marker: str = Field(default="database", min_length=1)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued bearer tokens will not survive a restart.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Bearer tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


class ClientSettings(BaseSettings):
    """Settings for the HTTP client and CLI.

    Kept apart from Settings so the client never needs the server's
    SECRET_KEY. Variables are prefixed: SESSIONGUARD_API_BASE_URL, etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="SESSIONGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_base_url: str = "http://localhost:8000"
    auth_entry_path: str = "/auth"
    storage_path: Path = _DEFAULT_CLIENT_STORAGE
    request_timeout: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()


@lru_cache
def get_client_settings() -> ClientSettings:
    """Return the ClientSettings singleton."""
    return ClientSettings()
