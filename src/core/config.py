"""Configuration management for homekeep."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/homekeep.db", description="Path to the SQLite database file")

    # Cron Trigger Configuration
    cron_secret: str | None = Field(
        default=None, description="Shared secret expected as 'Authorization: Bearer <secret>' on cron endpoints"
    )

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # In-process Scheduler Configuration
    enable_scheduler: bool = Field(
        default=False, description="Run the maintenance sweeps in-process instead of via an external cron"
    )
    scheduler_hour: int = Field(default=0, description="Hour of day (UTC) the in-process sweeps run")

    # Batch Configuration
    batch_timeout_seconds: float = Field(
        default=30.0, description="Deadline for one materialize run or one template pack application"
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Task Defaults
    DEFAULT_TASK_PRIORITY: str = "MEDIUM"
    SCHEDULED_TASK_NOTE_PREFIX: str = "Scheduled maintenance"
    WHOLE_HOME_TASK_NOTE_PREFIX: str = "Whole-home maintenance"
    WHOLE_HOME_LABEL: str = "Whole Home"

    # Activity Log
    ACTIVITY_RETENTION_DAYS: int = 90

    # Validation Limits
    MAX_CUSTOM_FREQUENCY_DAYS: int = 365
    MAX_TITLE_LENGTH: int = 200
    MAX_DESCRIPTION_LENGTH: int = 2000

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100
    MAX_PER_PAGE_LIMIT: int = 500

    # Job Tracker Configuration
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100
    TRACKER_CONSECUTIVE_FAILURE_THRESHOLD: int = 3
    TRACKER_MAX_ERROR_LENGTH: int = 500


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
