"""
Session lifecycle: create, logout, logout-by-id, logout-all, list.

Sessions live embedded in the user document (UserDoc.active_sessions).
Explicit logouts blacklist the token until its own exp; evictions (cap
reached) and expiry sweeps only remove the session entry, which is enough
for the auth gate to reject the token.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId

from errors import NotFoundError, UserNotFoundError
from repositories.blacklist_repository import BlacklistRepository
from repositories.user_repository import UserRepository
from schemas.models.user import SessionEntry, UserDoc
from services.token_service import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenService,
    compute_expiration,
)
from shared.datetime_utils import ensure_utc, utc_now
from shared.ip_utils import UNKNOWN_DEVICE, UNKNOWN_IP
from shared.logging import get_logger, token_prefix

log = get_logger(__name__)


def _by_creation(session: SessionEntry) -> datetime:
    return ensure_utc(session.created_at)


def evicted_sessions(
    before: list[SessionEntry], added: SessionEntry, max_sessions: int
) -> list[SessionEntry]:
    """Entries that a capped $push of *added* onto *before* drops."""
    combined = sorted([*before, added], key=_by_creation)
    overflow = len(combined) - max_sessions
    return combined[:overflow] if overflow > 0 else []


class SessionService:
    def __init__(
        self,
        users: UserRepository,
        blacklist: BlacklistRepository,
        tokens: TokenService,
        *,
        max_sessions: int,
        ttl: str,
    ) -> None:
        self._users = users
        self._blacklist = blacklist
        self._tokens = tokens
        self.max_sessions = max_sessions
        self.ttl = ttl

    async def create_session(
        self,
        user: UserDoc,
        device: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[str, SessionEntry]:
        """Issue a token for *user* and record it as a new active session."""
        now = utc_now()
        token = self._tokens.issue(
            {"sub": str(user.id), "email": user.email}, self.ttl, now=now
        )
        entry = SessionEntry(
            token=token,
            created_at=now,
            expires_at=compute_expiration(self.ttl, now),
            device=device or UNKNOWN_DEVICE,
            ip_address=ip_address or UNKNOWN_IP,
        )

        before = await self._users.push_session(user.id, entry, self.max_sessions)
        if before is None:
            raise UserNotFoundError("The user belonging to this token no longer exists.")

        evicted = evicted_sessions(before.active_sessions, entry, self.max_sessions)
        for session in evicted:
            log.info(
                "session_evicted",
                user_id=str(user.id),
                session_id=str(session.id),
                device=session.device,
                duration_minutes=session.age_minutes(now),
                token_prefix=token_prefix(session.token),
                reason="max_sessions_reached",
            )

        log.info(
            "session_created",
            user_id=str(user.id),
            session_id=str(entry.id),
            device=entry.device,
            expires_at=entry.expires_at.isoformat(),
            active_sessions=min(len(before.active_sessions) + 1, self.max_sessions),
            token_prefix=token_prefix(token),
        )
        return token, entry

    async def _blacklist_session(self, user_id: ObjectId, session: SessionEntry) -> None:
        claims = self._tokens.decode_unverified(session.token) or {}
        exp = claims.get("exp")
        expires_at = (
            datetime.fromtimestamp(exp, tz=timezone.utc)
            if isinstance(exp, (int, float))
            else ensure_utc(session.expires_at)
        )
        await self._blacklist.add(session.token, user_id, expires_at)

    async def logout(self, user: UserDoc, token: str) -> None:
        """End the session bound to *token* and blacklist the token."""
        removed = await self._users.pull_session_by_token(user.id, token)
        session = removed or user.find_session(token)
        if session is not None:
            await self._blacklist_session(user.id, session)
        log.info(
            "session_revoked",
            user_id=str(user.id),
            token_prefix=token_prefix(token),
            reason="logout",
        )

    async def logout_session(
        self, user: UserDoc, session_id: ObjectId, current_token: str
    ) -> bool:
        """End one session by id. Returns True when it was the caller's own."""
        removed = await self._users.pull_session_by_id(user.id, session_id)
        if removed is None:
            raise NotFoundError("Session not found")
        await self._blacklist_session(user.id, removed)
        is_current = removed.token == current_token
        log.info(
            "session_revoked",
            user_id=str(user.id),
            session_id=str(session_id),
            token_prefix=token_prefix(removed.token),
            reason="logout_session",
            is_current_session=is_current,
        )
        return is_current

    async def logout_all(self, user: UserDoc) -> int:
        """End every session of *user*. Returns how many tokens were skipped.

        A token that no longer verifies (expired or corrupt) is not
        blacklisted: the gate already rejects it.
        """
        sessions = await self._users.clear_sessions(user.id)
        skipped = 0
        for session in sessions:
            try:
                self._tokens.verify(session.token)
            except (ExpiredTokenError, InvalidTokenError):
                skipped += 1
                continue
            await self._blacklist_session(user.id, session)

        log.info(
            "all_sessions_revoked",
            user_id=str(user.id),
            revoked=len(sessions) - skipped,
            skipped=skipped,
            reason="logout_all",
        )
        return skipped

    async def drop_session(self, user_id: ObjectId, token: str, reason: str) -> None:
        """Remove an expired session without blacklisting it."""
        removed = await self._users.pull_session_by_token(user_id, token)
        if removed is not None:
            log.info(
                "session_expired",
                user_id=str(user_id),
                session_id=str(removed.id),
                device=removed.device,
                duration_minutes=removed.age_minutes(),
                token_prefix=token_prefix(token),
                reason=reason,
            )

    @staticmethod
    def list_sessions(user: UserDoc) -> list[SessionEntry]:
        return sorted(user.active_sessions, key=_by_creation)
