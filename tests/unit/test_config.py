"""Unit tests for AppSettings and sub-configs."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from config import (
    AppSettings,
    ApplicationSettings,
    DatabaseSettings,
    JWTSettings,
    SessionJanitorSettings,
    UploadSettings,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def with_mongo(monkeypatch):
    """Set the required MONGODB_URI so AppSettings can be instantiated."""
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
    return monkeypatch


# ---------------------------------------------------------------------------
# DatabaseSettings
# ---------------------------------------------------------------------------


class TestDatabaseSettings:
    def test_loads_mongodb_uri(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        assert DatabaseSettings().mongodb_uri == "mongodb://localhost:27017/"

    def test_default_db_name(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        monkeypatch.delenv("DB_NAME", raising=False)
        assert DatabaseSettings().db_name == "code-and-cash"

    def test_missing_mongodb_uri_raises(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URI", raising=False)
        with pytest.raises(PydanticValidationError):
            DatabaseSettings()


# ---------------------------------------------------------------------------
# JWTSettings
# ---------------------------------------------------------------------------


class TestJWTSettings:
    def test_defaults(self, monkeypatch):
        for var in (
            "JWT_SECRET",
            "JWT_EXPIRES_IN",
            "JWT_ISSUER",
            "JWT_AUDIENCE",
            "MAX_ACTIVE_SESSIONS",
        ):
            monkeypatch.delenv(var, raising=False)
        s = JWTSettings()
        assert s.jwt_expires_in == "7d"
        assert s.jwt_issuer == "code-and-cash"
        assert s.max_active_sessions == 5

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("JWT_EXPIRES_IN", "12h")
        monkeypatch.setenv("MAX_ACTIVE_SESSIONS", "3")
        s = JWTSettings()
        assert s.jwt_expires_in == "12h"
        assert s.max_active_sessions == 3

    def test_max_sessions_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("MAX_ACTIVE_SESSIONS", "0")
        with pytest.raises(PydanticValidationError):
            JWTSettings()


# ---------------------------------------------------------------------------
# Janitor / uploads / applications
# ---------------------------------------------------------------------------


def test_janitor_defaults(monkeypatch):
    monkeypatch.delenv("SESSION_CLEANUP_INTERVAL_SECONDS", raising=False)
    s = SessionJanitorSettings()
    assert s.session_cleanup_enabled is True
    assert s.session_cleanup_interval_seconds == 1800
    assert s.session_full_cleanup_interval_seconds == 86400


def test_upload_limits():
    s = UploadSettings()
    assert s.submission_max_files == 5
    assert s.submission_max_file_size == 10 * 1024 * 1024
    assert s.profile_image_max_file_size == 5 * 1024 * 1024
    assert ".docx" in s.submission_allowed_extensions


@pytest.mark.parametrize(
    "raw, expected",
    [(None, False), ("true", True), ("false", False)],
    ids=["default", "enabled", "disabled"],
)
def test_resubmit_flag(monkeypatch, raw, expected):
    if raw is None:
        monkeypatch.delenv("APPLICATION_RESUBMIT_MARKS_SUBMITTED", raising=False)
    else:
        monkeypatch.setenv("APPLICATION_RESUBMIT_MARKS_SUBMITTED", raw)
    assert ApplicationSettings().application_resubmit_marks_submitted is expected


# ---------------------------------------------------------------------------
# AppSettings
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "env, expected",
    [("production", True), ("development", False)],
    ids=["production", "development"],
)
def test_is_production(with_mongo, env, expected):
    with_mongo.setenv("ENV", env)
    assert AppSettings().is_production is expected


class TestAppSettings:
    def test_sub_configs_populated(self, with_mongo):
        s = AppSettings()
        for attr in (
            "db",
            "jwt",
            "janitor",
            "uploads",
            "applications",
            "logging",
            "sentry",
        ):
            assert getattr(s, attr) is not None, f"sub-config '{attr}' is None"

    def test_cors_origins_default(self, with_mongo):
        assert AppSettings().cors_origins == ["*"]

    def test_shutdown_timeout_default(self, with_mongo):
        with_mongo.delenv("SHUTDOWN_TIMEOUT_SECONDS", raising=False)
        assert AppSettings().shutdown_timeout_seconds == 10.0

    def test_explicit_sub_config_kept(self, with_mongo):
        jwt = JWTSettings(jwt_secret="explicit")
        assert AppSettings(jwt=jwt).jwt.jwt_secret == "explicit"
