"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - Settings is frozen: built once at startup, then passed to every component
    - get_settings() is cached (lru_cache) and only called by the shell (main.py)
    - ensure_configured() raises ConfigurationError naming every missing field

Design Decisions:
    - Components receive Settings (or values taken from it) explicitly; nothing in
      core/ or services/ reads os.environ
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from echo_journal.core.errors import ConfigurationError
from echo_journal.core.retry_state import RetryPolicy


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, frozen=True,
    )

    # Store
    database_url: str = "sqlite+aiosqlite:///./echo_journal.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs come as postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 5
    database_max_overflow: int = 10
    app_id: str = "default-app-id"

    # Identity provider
    identity_api_key: str = ""
    identity_base_url: str = "https://identitytoolkit.googleapis.com/v1"
    bootstrap_credential: str | None = None

    # Generative service
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.5-flash-preview-05-20"
    gemini_timeout_seconds: float = 60.0
    gemini_max_retries: int = 5
    gemini_initial_delay_ms: int = 1000
    gemini_backoff_multiplier: float = 2

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.gemini_max_retries,
            initial_delay_ms=self.gemini_initial_delay_ms,
            backoff_multiplier=self.gemini_backoff_multiplier,
        )


_REQUIRED_FIELDS = ("database_url", "app_id", "identity_api_key", "gemini_api_key")


def ensure_configured(settings: Settings) -> Settings:
    """Fail fast on incomplete startup configuration."""
    missing = [
        name for name in _REQUIRED_FIELDS
        if not str(getattr(settings, name) or "").strip()
    ]
    if settings.gemini_max_retries < 0:
        missing.append("gemini_max_retries")
    if settings.gemini_initial_delay_ms < 0:
        missing.append("gemini_initial_delay_ms")
    if settings.gemini_backoff_multiplier < 1:
        missing.append("gemini_backoff_multiplier")
    if missing:
        raise ConfigurationError(missing)
    return settings


@lru_cache
def get_settings() -> Settings:
    return Settings()
