"""Tests for configuration validation."""

import pytest

from src.core.config import Constants, Settings


def test_require_credential_with_valid_value() -> None:
    """Test require_credential returns value when credential is set."""
    settings = Settings(cron_secret="s3cret")

    result = settings.require_credential("cron_secret", "Cron trigger secret")

    assert result == "s3cret"


def test_require_credential_with_none_raises_error() -> None:
    """Test require_credential raises ValueError when credential is None."""
    settings = Settings(cron_secret=None)

    with pytest.raises(ValueError, match="Cron trigger secret credential not configured"):
        settings.require_credential("cron_secret", "Cron trigger secret")


def test_require_credential_with_empty_string_raises_error() -> None:
    """Test require_credential raises ValueError when credential is empty."""
    settings = Settings(cron_secret="")

    with pytest.raises(ValueError, match="CRON_SECRET"):
        settings.require_credential("cron_secret", "Cron trigger secret")


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test settings are loaded from environment variables."""
    monkeypatch.setenv("SQLITE_DB_PATH", "/tmp/custom.db")
    monkeypatch.setenv("ENABLE_SCHEDULER", "true")
    monkeypatch.setenv("BATCH_TIMEOUT_SECONDS", "5")

    settings = Settings()

    assert settings.sqlite_db_path == "/tmp/custom.db"
    assert settings.enable_scheduler is True
    assert settings.batch_timeout_seconds == 5.0


def test_is_production() -> None:
    """Test is_production reflects the environment name."""
    assert Settings(environment="Production").is_production is True
    assert Settings(environment="development").is_production is False


def test_validation_limits() -> None:
    """Test validation limits used by the API."""
    assert Constants.MAX_CUSTOM_FREQUENCY_DAYS == 365
    assert Constants.MAX_TITLE_LENGTH == 200
    assert Constants.MAX_DESCRIPTION_LENGTH == 2000
