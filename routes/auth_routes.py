"""
Authentication routes.

POST   /api/auth/register              — create account, start a session (201)
POST   /api/auth/login                 — start a session
POST   /api/auth/logout                — end the current session
GET    /api/auth/me                    — current user
GET    /api/auth/sessions              — list active sessions
DELETE /api/auth/sessions              — end every session
DELETE /api/auth/sessions/{session_id} — end one session
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dependencies import get_auth_service, get_session_service, require_auth
from errors import NotFoundError
from schemas.dto.requests.auth import LoginRequest, RegisterRequest
from schemas.dto.responses.auth import AuthResponse, SessionResponse, UserSummary
from schemas.dto.responses.common import success
from schemas.models.base import parse_object_id
from services.auth_gate import AuthContext
from services.auth_service import AuthService
from services.session_service import SessionService
from shared.ip_utils import get_client_ip, get_device

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    token, _, user = await auth.register(
        body.name,
        body.email,
        body.password,
        device=get_device(request),
        ip_address=get_client_ip(request),
    )
    return success(AuthResponse(token=token, user=UserSummary.from_doc(user)))


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    token, _, user = await auth.login(
        body.email,
        body.password,
        device=get_device(request),
        ip_address=get_client_ip(request),
    )
    return success(AuthResponse(token=token, user=UserSummary.from_doc(user)))


@router.post("/logout")
async def logout(
    ctx: AuthContext = Depends(require_auth),
    sessions: SessionService = Depends(get_session_service),
) -> dict:
    await sessions.logout(ctx.user, ctx.token)
    return success(message="Logged out successfully")


@router.get("/me")
async def me(ctx: AuthContext = Depends(require_auth)) -> dict:
    return success({"user": UserSummary.from_doc(ctx.user)})


@router.get("/sessions")
async def list_sessions(ctx: AuthContext = Depends(require_auth)) -> dict:
    entries = SessionService.list_sessions(ctx.user)
    items = [SessionResponse.from_entry(entry, ctx.token) for entry in entries]
    return success({"sessions": items, "count": len(items)})


@router.delete("/sessions")
async def logout_all(
    ctx: AuthContext = Depends(require_auth),
    sessions: SessionService = Depends(get_session_service),
) -> dict:
    await sessions.logout_all(ctx.user)
    return success(message="Logged out from all sessions")


@router.delete("/sessions/{session_id}")
async def logout_session(
    session_id: str,
    ctx: AuthContext = Depends(require_auth),
    sessions: SessionService = Depends(get_session_service),
) -> dict:
    sid = parse_object_id(session_id)
    if sid is None:
        raise NotFoundError("Session not found")
    was_current = await sessions.logout_session(ctx.user, sid, ctx.token)
    if was_current:
        return success(message="You have been logged out")
    return success(message="Session ended successfully")
