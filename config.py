"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Sub-configs are plain BaseSettings classes composed by AppSettings through a
model_validator, so each group can also be instantiated on its own in tests.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "code-and-cash"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_secret: str = "super-secret-key"
    # Duration format: "<int><unit>" with unit s, m, h or d
    jwt_expires_in: str = "7d"
    jwt_issuer: str = "code-and-cash"
    jwt_audience: str = "code-and-cash.api"

    max_active_sessions: int = Field(default=5, ge=1)


class SessionJanitorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    session_cleanup_enabled: bool = True
    session_cleanup_interval_seconds: int = Field(default=1800, ge=1)
    session_full_cleanup_interval_seconds: int = Field(default=86400, ge=1)


class UploadSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    upload_root: str = "uploads"

    submission_max_file_size: int = 10 * 1024 * 1024
    submission_max_files: int = 5
    submission_allowed_mimetypes: list[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ]
    submission_allowed_extensions: list[str] = [".pdf", ".doc", ".docx"]

    profile_image_max_file_size: int = 5 * 1024 * 1024


class ApplicationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # When False a resubmission keeps an application in needs_revision
    application_resubmit_marks_submitted: bool = False


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "Code and Cash API"
    host: str = "0.0.0.0"
    port: int = 5000

    cors_origins: list[str] = ["*"]

    # Upper bound for the lifespan shutdown step and uvicorn's graceful timeout
    shutdown_timeout_seconds: float = 10.0

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    janitor: Optional[SessionJanitorSettings] = None
    uploads: Optional[UploadSettings] = None
    applications: Optional[ApplicationSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.janitor is None:
            self.janitor = SessionJanitorSettings()
        if self.uploads is None:
            self.uploads = UploadSettings()
        if self.applications is None:
            self.applications = ApplicationSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
