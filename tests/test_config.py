"""Settings - environment parsing, startup validation, retry policy."""

import pytest
from pydantic import ValidationError

from echo_journal.config import Settings, ensure_configured
from echo_journal.core.errors import ConfigurationError
from echo_journal.core.retry_state import RetryPolicy


def test_defaults_are_complete_with_test_keys():
    settings = ensure_configured(Settings(_env_file=None))
    assert settings.gemini_model == "gemini-2.5-flash-preview-05-20"
    assert settings.retry_policy == RetryPolicy()


def test_missing_keys_are_all_reported():
    settings = Settings(_env_file=None, gemini_api_key="", identity_api_key="  ")
    with pytest.raises(ConfigurationError) as exc_info:
        ensure_configured(settings)
    assert exc_info.value.missing == ["identity_api_key", "gemini_api_key"]


def test_invalid_retry_settings_reported():
    settings = Settings(
        _env_file=None,
        gemini_max_retries=-1,
        gemini_initial_delay_ms=-1,
        gemini_backoff_multiplier=0.5,
    )
    with pytest.raises(ConfigurationError) as exc_info:
        ensure_configured(settings)
    assert exc_info.value.missing == [
        "gemini_max_retries", "gemini_initial_delay_ms", "gemini_backoff_multiplier",
    ]


def test_negative_initial_delay_alone_is_reported():
    settings = Settings(_env_file=None, gemini_initial_delay_ms=-1)
    with pytest.raises(ConfigurationError) as exc_info:
        ensure_configured(settings)
    assert exc_info.value.missing == ["gemini_initial_delay_ms"]


def test_postgres_url_uses_asyncpg_driver():
    settings = Settings(_env_file=None, database_url="postgresql://u:p@db/journal")
    assert settings.database_url == "postgresql+asyncpg://u:p@db/journal"


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("APP_ID", "journal-prod")
    monkeypatch.setenv("GEMINI_MAX_RETRIES", "2")
    settings = Settings(_env_file=None)
    assert settings.app_id == "journal-prod"
    assert settings.retry_policy.max_retries == 2


def test_settings_are_frozen():
    settings = Settings(_env_file=None)
    with pytest.raises(ValidationError):
        settings.app_id = "other"
