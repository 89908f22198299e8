"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Event Attendance"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./event_attendance.db"

    # Registration policy
    institutional_email_domain: str = "@umich.edu"
    check_in_code_length: int = 8

    # Per-event serialization retries
    registration_max_attempts: int = 3
    registration_retry_backoff_seconds: float = 0.05

    # Admin routes are disabled while this is empty
    admin_token: str = ""

    # Waitlist sweep (0 disables the background job)
    waitlist_sweep_interval_minutes: int = 5


settings = Settings()
