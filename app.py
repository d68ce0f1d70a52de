"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.storage import PUBLIC_PREFIX, LocalStorage
from repositories.blacklist_repository import BlacklistRepository
from repositories.indexes import BLACKLISTED_TOKENS, USERS, ensure_indexes
from repositories.user_repository import UserRepository
from routes.admin_routes import router as admin_router
from routes.application_routes import router as application_router
from routes.auth_routes import router as auth_router
from routes.completed_task_routes import router as completed_task_router
from routes.health_routes import router as health_router
from routes.profile_routes import router as profile_router
from routes.task_routes import router as task_router
from services.session_janitor import SessionJanitor
from services.token_service import TokenService
from shared.log_context import setup_logging_middleware
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(
        settings.logging.log_level,
        settings.logging.log_format,
        settings.env,
    )

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    storage = LocalStorage(settings.uploads)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]

        await ensure_indexes(app.state.db)
        storage.ensure_directories()

        janitor = SessionJanitor(
            UserRepository(app.state.db[USERS]),
            BlacklistRepository(app.state.db[BLACKLISTED_TOKENS]),
            interval_seconds=settings.janitor.session_cleanup_interval_seconds,
            full_interval_seconds=settings.janitor.session_full_cleanup_interval_seconds,
        )
        app.state.janitor = janitor
        if settings.janitor.session_cleanup_enabled:
            await janitor.start()

        log.info("app_started", env=settings.env, db=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        log.info("app_shutting_down")
        await janitor.stop()
        try:
            await asyncio.wait_for(
                janitor.audit_active_sessions("server_shutdown"),
                timeout=settings.shutdown_timeout_seconds,
            )
        except asyncio.TimeoutError:
            log.error(
                "shutdown_session_audit_timeout",
                timeout_seconds=settings.shutdown_timeout_seconds,
            )
        mongo_client.close()
        log.info("mongodb_connection_closed")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Process-wide objects the dependency providers read; set outside the
    # lifespan so tests can drive routes without a database connection.
    app.state.settings = settings
    app.state.storage = storage
    app.state.token_service = TokenService(settings.jwt)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    setup_logging_middleware(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(task_router)
    app.include_router(application_router)
    app.include_router(profile_router)
    app.include_router(admin_router)
    app.include_router(completed_task_router)

    app.mount(
        PUBLIC_PREFIX,
        StaticFiles(directory=settings.uploads.upload_root, check_dir=False),
        name="uploads",
    )

    return app
