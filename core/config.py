"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthGate happen here. No module should
call os.getenv() or os.environ.get() directly -- build a Settings object (or
call get_settings()) and pass it to the component that needs it.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Entry
      points (asgi.py, main.py) call it; everything below them receives the
      instance through its constructor.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  frozen=True: the object is immutable after construction. The signing secret
      and store URL are loaded once at startup and never rotated at runtime.

Security notes:
  JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
    relies on key entropy -- a short key weakens every issued token.

  JWT_SECRET and DATABASE_URL are mandatory in every environment. A
    missing value is a hard startup failure.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import re
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """Convert a duration string like "2h", "15m", "7d" or "3600" to seconds.

    A bare number is read as seconds. Raises ValueError on anything else,
    including a zero duration.
    """
    match = _DURATION_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid duration {value!r}. Use <number>[s|m|h|d], e.g. '2h'.")
    seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"Duration {value!r} must be greater than zero.")
    return seconds


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Only jwt_secret and database_url lack usable defaults. Empty string is the
    sentinel for "not configured"; the model_validator turns it into a
    startup failure, so callers never see "".
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    environment: str = "development"
    port: int = 3001
    database_url: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    jwt_secret: str = ""
    jwt_expires_in: str = "2h"
    bcrypt_salt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origin: str = "http://localhost:3000"
    rate_limit_window_ms: int = Field(default=900_000, gt=0)
    rate_limit_max_requests: int = Field(default=100, gt=0)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Refuse to start without a signing secret or a store URL.

        Also rejects short secrets and unparseable JWT_EXPIRES_IN values,
        so a bad deployment fails at boot rather than on the first login.
        """
        missing = [name for name in ("jwt_secret", "database_url") if not getattr(self, name)]
        if missing:
            names = ", ".join(name.upper() for name in missing)
            raise ValueError(f"Missing required environment variable(s): {names}")
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        parse_duration(self.jwt_expires_in)
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def secure_cookies(self) -> bool:
        """Cookies carry the Secure flag only in production (HTTPS)."""
        return self.is_production

    @property
    def token_ttl_seconds(self) -> int:
        return parse_duration(self.jwt_expires_in)

    @property
    def rate_limit_window_seconds(self) -> int:
        return max(1, self.rate_limit_window_ms // 1000)

    @property
    def rate_limit(self) -> str:
        """The request budget as a slowapi/limits expression, e.g. '100 per 900 seconds'."""
        return f"{self.rate_limit_max_requests} per {self.rate_limit_window_seconds} seconds"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Raises pydantic.ValidationError when required configuration is missing;
    entry points turn that into a non-zero exit.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
