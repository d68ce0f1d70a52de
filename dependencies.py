"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Process-wide objects (settings, token service,
upload storage) live on app.state; repositories and services are cheap
wrappers built per request on top of them.

Tests swap the repository providers through app.dependency_overrides.
"""

from __future__ import annotations

from fastapi import Depends, Request

from config import AppSettings
from errors import AuthorizationError
from infrastructure.storage import LocalStorage
from repositories.application_repository import ApplicationRepository
from repositories.blacklist_repository import BlacklistRepository
from repositories.completed_task_repository import CompletedTaskRepository
from repositories.indexes import (
    BLACKLISTED_TOKENS,
    COMPLETED_TASKS,
    TASK_APPLICATIONS,
    TASKS,
    USERS,
)
from repositories.task_repository import TaskRepository
from repositories.user_repository import UserRepository
from services.admin_service import AdminService
from services.application_service import ApplicationService
from services.auth_gate import AuthContext, AuthGate
from services.auth_service import AuthService
from services.profile_service import ProfileService
from services.session_service import SessionService
from services.task_service import TaskService
from services.token_service import TokenService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_storage(request: Request) -> LocalStorage:
    return request.app.state.storage


# ── Repositories ─────────────────────────────────────────────────────────────


async def get_user_repository(db=Depends(get_db)) -> UserRepository:
    return UserRepository(db[USERS])


async def get_blacklist_repository(db=Depends(get_db)) -> BlacklistRepository:
    return BlacklistRepository(db[BLACKLISTED_TOKENS])


async def get_task_repository(db=Depends(get_db)) -> TaskRepository:
    return TaskRepository(db[TASKS])


async def get_application_repository(db=Depends(get_db)) -> ApplicationRepository:
    return ApplicationRepository(db[TASK_APPLICATIONS])


async def get_completed_task_repository(
    db=Depends(get_db),
) -> CompletedTaskRepository:
    return CompletedTaskRepository(db[COMPLETED_TASKS])


# ── Services ─────────────────────────────────────────────────────────────────


def get_session_service(
    users: UserRepository = Depends(get_user_repository),
    blacklist: BlacklistRepository = Depends(get_blacklist_repository),
    tokens: TokenService = Depends(get_token_service),
    settings: AppSettings = Depends(get_settings),
) -> SessionService:
    return SessionService(
        users,
        blacklist,
        tokens,
        max_sessions=settings.jwt.max_active_sessions,
        ttl=settings.jwt.jwt_expires_in,
    )


def get_auth_gate(
    users: UserRepository = Depends(get_user_repository),
    blacklist: BlacklistRepository = Depends(get_blacklist_repository),
    tokens: TokenService = Depends(get_token_service),
    sessions: SessionService = Depends(get_session_service),
) -> AuthGate:
    return AuthGate(users, blacklist, tokens, sessions)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionService = Depends(get_session_service),
) -> AuthService:
    return AuthService(users, sessions)


def get_task_service(
    tasks: TaskRepository = Depends(get_task_repository),
    applications: ApplicationRepository = Depends(get_application_repository),
) -> TaskService:
    return TaskService(tasks, applications)


def get_application_service(
    applications: ApplicationRepository = Depends(get_application_repository),
    tasks: TaskRepository = Depends(get_task_repository),
    users: UserRepository = Depends(get_user_repository),
    completed: CompletedTaskRepository = Depends(get_completed_task_repository),
    storage: LocalStorage = Depends(get_storage),
    settings: AppSettings = Depends(get_settings),
) -> ApplicationService:
    return ApplicationService(
        applications,
        tasks,
        users,
        completed,
        storage,
        resubmit_marks_submitted=settings.applications.application_resubmit_marks_submitted,
    )


def get_admin_service(
    users: UserRepository = Depends(get_user_repository),
    tasks: TaskRepository = Depends(get_task_repository),
    applications: ApplicationRepository = Depends(get_application_repository),
    completed: CompletedTaskRepository = Depends(get_completed_task_repository),
) -> AdminService:
    return AdminService(users, tasks, applications, completed)


def get_profile_service(
    users: UserRepository = Depends(get_user_repository),
    storage: LocalStorage = Depends(get_storage),
) -> ProfileService:
    return ProfileService(users, storage)


# ── Auth ─────────────────────────────────────────────────────────────────────


async def require_auth(
    request: Request, gate: AuthGate = Depends(get_auth_gate)
) -> AuthContext:
    """Authenticate the bearer token on the request or raise a 401."""
    return await gate.authenticate(request.headers.get("Authorization"))


async def require_admin(ctx: AuthContext = Depends(require_auth)) -> AuthContext:
    """require_auth plus role == admin, else 403."""
    if not ctx.user.is_admin:
        raise AuthorizationError("Admin access required")
    return ctx
