"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for ExamBank happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field checks after all fields are
      resolved from the environment. Rejects bcrypt costs the library refuses
      and cookie lifetimes that would expire on issue.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("exambank.config")


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
    log_level: str = "INFO"
    database_url: str = "sqlite:///exambank.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    session_cookie_name: str = "authToken"
    # 7 days. Sessions themselves live only in process memory, so a restart
    # invalidates them long before the cookie expires.
    session_max_age_seconds: int = 7 * 86400
    secure_cookies: bool = False
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_auth_settings(self) -> "Settings":
        """Reject values that would break hashing or session cookies.

        bcrypt accepts cost factors 4..31 only; anything else makes gensalt()
        raise on the first registration instead of at startup.
        """
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.session_max_age_seconds <= 0:
            raise ValueError("SESSION_MAX_AGE_SECONDS must be positive.")
        if self.bcrypt_rounds < 10 and not self.debug:
            logger.warning("BCRYPT_ROUNDS=%d is below the recommended minimum of 10", self.bcrypt_rounds)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
