"""
Auth gate: decides whether a bearer token may act for a user.

Checks run in a fixed order and the first failure wins:

    1. Authorization header carries "Bearer <token>"     → NotAuthenticatedError
    2. token is not blacklisted                          → SessionRevokedError
    3. signature / audience / exp verify                 → InvalidSessionTokenError
                                                           SessionExpiredError
    4. the token's user still exists                     → UserNotFoundError
    5. the token is one of the user's active sessions    → SessionInvalidError
    6. the session itself has not expired                → SessionExpiredError

A token that fails on expiry (3 or 6) also has its session pulled from the
user document, so stale entries do not wait for the janitor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from errors import (
    InvalidSessionTokenError,
    NotAuthenticatedError,
    SessionExpiredError,
    SessionInvalidError,
    SessionRevokedError,
    UserNotFoundError,
)
from repositories.blacklist_repository import BlacklistRepository
from repositories.user_repository import UserRepository
from schemas.models.base import parse_object_id
from schemas.models.user import SessionEntry, UserDoc
from services.session_service import SessionService
from services.token_service import ExpiredTokenError, InvalidTokenError, TokenService
from shared.datetime_utils import utc_now
from shared.logging import get_logger, token_prefix

log = get_logger(__name__)

BEARER_PREFIX = "Bearer "

NOT_LOGGED_IN = "You are not logged in. Please log in to get access."
SESSION_EXPIRED = "Your session has expired. Please log in again."
INVALID_TOKEN = "Invalid token. Please log in again."
USER_GONE = "The user belonging to this token no longer exists."
SESSION_INVALID = "Your session is no longer valid. Please log in again."


@dataclass(frozen=True)
class AuthContext:
    """The authenticated principal for one request."""

    user: UserDoc
    token: str
    session: SessionEntry

    @property
    def user_id(self) -> str:
        return str(self.user.id)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AuthGate:
    def __init__(
        self,
        users: UserRepository,
        blacklist: BlacklistRepository,
        tokens: TokenService,
        sessions: SessionService,
    ) -> None:
        self._users = users
        self._blacklist = blacklist
        self._tokens = tokens
        self._sessions = sessions

    async def authenticate(self, authorization: Optional[str]) -> AuthContext:
        token = extract_bearer_token(authorization)
        if token is None:
            raise NotAuthenticatedError(NOT_LOGGED_IN)

        if await self._blacklist.is_blacklisted(token):
            log.info("blacklisted_token_rejected", token_prefix=token_prefix(token))
            raise SessionRevokedError(SESSION_EXPIRED)

        try:
            claims = self._tokens.verify(token)
        except ExpiredTokenError:
            await self._drop_expired_token(token)
            raise SessionExpiredError(SESSION_EXPIRED)
        except InvalidTokenError:
            log.info("invalid_token_rejected", token_prefix=token_prefix(token))
            raise InvalidSessionTokenError(INVALID_TOKEN)

        user_id = parse_object_id(claims.get("sub"))
        user = await self._users.find_by_id(user_id) if user_id else None
        if user is None:
            raise UserNotFoundError(USER_GONE)

        session = user.find_session(token)
        if session is None:
            log.info(
                "unknown_session_rejected",
                user_id=str(user.id),
                token_prefix=token_prefix(token),
            )
            raise SessionInvalidError(SESSION_INVALID)

        if session.is_expired(utc_now()):
            await self._sessions.drop_session(user.id, token, reason="session_expired")
            raise SessionExpiredError(SESSION_EXPIRED)

        structlog.contextvars.bind_contextvars(user_id=str(user.id))
        return AuthContext(user=user, token=token, session=session)

    async def _drop_expired_token(self, token: str) -> None:
        claims = self._tokens.decode_unverified(token) or {}
        user_id = parse_object_id(claims.get("sub"))
        if user_id is None:
            return
        await self._sessions.drop_session(user_id, token, reason="token_expired")
