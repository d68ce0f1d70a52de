"""
Shared fixtures: settings, in-memory repositories, services and a route-level
app whose repository providers point at the fakes. No database is needed.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from config import (
    AppSettings,
    DatabaseSettings,
    JWTSettings,
    SessionJanitorSettings,
    UploadSettings,
)
from infrastructure.storage import LocalStorage
from schemas.models.task import TaskCategory, TaskDifficulty, TaskDoc, TaskStatus
from schemas.models.user import ROLE_ADMIN, ROLE_USER, UserDoc
from services.application_service import ApplicationService
from services.auth_gate import AuthGate
from services.session_service import SessionService
from services.token_service import TokenService
from shared.crypto import hash_password
from shared.datetime_utils import utc_now
from tests.fakes import (
    FakeApplicationRepository,
    FakeBlacklistRepository,
    FakeCompletedTaskRepository,
    FakeTaskRepository,
    FakeUserRepository,
)
from tests.helpers import TEST_PASSWORD


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading the project's .env in tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        env="test",
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=JWTSettings(jwt_secret="test-secret", max_active_sessions=5),
        janitor=SessionJanitorSettings(session_cleanup_enabled=False),
        uploads=UploadSettings(upload_root=str(tmp_path / "uploads")),
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


@pytest.fixture
def users() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def blacklist() -> FakeBlacklistRepository:
    return FakeBlacklistRepository()


@pytest.fixture
def tasks() -> FakeTaskRepository:
    return FakeTaskRepository()


@pytest.fixture
def applications() -> FakeApplicationRepository:
    return FakeApplicationRepository()


@pytest.fixture
def completed() -> FakeCompletedTaskRepository:
    return FakeCompletedTaskRepository()


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService(settings.jwt)


@pytest.fixture
def storage(settings) -> LocalStorage:
    store = LocalStorage(settings.uploads)
    store.ensure_directories()
    return store


@pytest.fixture
def session_service(users, blacklist, token_service, settings) -> SessionService:
    return SessionService(
        users,
        blacklist,
        token_service,
        max_sessions=settings.jwt.max_active_sessions,
        ttl=settings.jwt.jwt_expires_in,
    )


@pytest.fixture
def auth_gate(users, blacklist, token_service, session_service) -> AuthGate:
    return AuthGate(users, blacklist, token_service, session_service)


@pytest.fixture
def application_service(applications, tasks, users, completed, storage):
    return ApplicationService(applications, tasks, users, completed, storage)


# ---------------------------------------------------------------------------
# Document factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(users):
    counter = iter(range(1, 10_000))

    def _make(
        role: str = ROLE_USER,
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        name: str = "Test User",
    ) -> UserDoc:
        n = next(counter)
        now = utc_now()
        user = UserDoc(
            name=name,
            email=email or f"user{n}@example.com",
            username=f"user{n}",
            password_hash=hash_password(password),
            role=role,
            created_at=now,
            updated_at=now,
        )
        return users.add(user)

    return _make


@pytest.fixture
def admin_user(make_user) -> UserDoc:
    return make_user(role=ROLE_ADMIN, email="admin@example.com", name="Admin")


@pytest.fixture
def make_task(tasks, admin_user):
    def _make(**overrides) -> TaskDoc:
        now = utc_now()
        data = {
            "title": "Build a landing page",
            "description": "Responsive landing page in React",
            "category": TaskCategory.FRONTEND,
            "difficulty": TaskDifficulty.EASY,
            "payout": 250,
            "duration": 7,
            "status": TaskStatus.OPEN,
            "client_id": admin_user.id,
            "deadline": now + timedelta(days=7),
            "created_at": now,
            "updated_at": now,
        }
        data.update(overrides)
        return tasks.add(TaskDoc(**data))

    return _make


# ---------------------------------------------------------------------------
# Route-level app
# ---------------------------------------------------------------------------


@pytest.fixture
def app(settings, users, blacklist, tasks, applications, completed):
    """create_app() with every repository provider swapped for a fake.

    The lifespan is never entered, so no Mongo client is created.
    """
    import dependencies
    from app import create_app

    application = create_app(settings)
    overrides = {
        dependencies.get_user_repository: lambda: users,
        dependencies.get_blacklist_repository: lambda: blacklist,
        dependencies.get_task_repository: lambda: tasks,
        dependencies.get_application_repository: lambda: applications,
        dependencies.get_completed_task_repository: lambda: completed,
    }
    application.dependency_overrides.update(overrides)
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def login(client):
    """Log in through the API and return the bearer token."""

    def _login(
        email: str, password: str = TEST_PASSWORD, headers: Optional[dict] = None
    ) -> str:
        resp = client.post(
            "/api/auth/login",
            json={"email": email, "password": password},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]["token"]

    return _login
