"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Inkwell happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. api_token -> API_TOKEN). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Dev mode generates a SECRET_KEY with a warning, production mode
      refuses to start without one.

Security notes:
  SECRET_KEY signs the session cookie. A forged cookie would let anyone claim
  any persona id, so a short key (< 32 chars) is rejected outright and a
  missing key is a hard startup failure outside DEBUG.

  API_TOKEN is the server-side credential for the identity service. It is
  never sent to the browser. SITE_TOKEN is public and is rendered into the
  widget script tag.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or notes/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("inkwell.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'notes' / 'inkwell_notes.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Identity service
    # ------------------------------------------------------------------

    site_token: str = ""
    api_token: str = ""
    verify_url: str = "https://api.passwordless.example/v1/verify"
    verify_timeout_seconds: float = 10.0
    widget_script_url: str = "https://cdn.passwordless.example/widget.js"

    # ------------------------------------------------------------------
    # Session cookie
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_max_age: int = 14 * 24 * 3600

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    signin_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_identity_service(self) -> "Settings":
        """Check the identity service settings.

        A missing API_TOKEN is not fatal (the site still serves pages) but
        every sign-in will be rejected by the remote service, so say so once.
        """
        if self.verify_timeout_seconds <= 0:
            raise ValueError("VERIFY_TIMEOUT_SECONDS must be greater than zero.")
        if not self.verify_url.startswith(("https://", "http://")):
            raise ValueError("VERIFY_URL must be an http(s) URL.")
        if not self.api_token:
            logger.warning("API_TOKEN is not set -- sign-in attempts will fail verification.")
        if not self.site_token:
            logger.warning("SITE_TOKEN is not set -- the sign-in widget will not load.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
