"""Registration and password login."""

from __future__ import annotations

from typing import Optional

from errors import AuthenticationError, ConflictError
from repositories.user_repository import UserRepository
from schemas.models.user import ROLE_USER, SessionEntry, UserDoc
from services.session_service import SessionService
from shared.crypto import hash_password, verify_password
from shared.datetime_utils import utc_now
from shared.logging import get_logger

log = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def split_name(name: str) -> tuple[str, str]:
    parts = name.strip().split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def username_from_email(email: str) -> str:
    return email.split("@", 1)[0].lower()


class AuthService:
    def __init__(self, users: UserRepository, sessions: SessionService) -> None:
        self._users = users
        self._sessions = sessions

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        *,
        device: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[str, SessionEntry, UserDoc]:
        email = email.strip().lower()
        if await self._users.find_by_email(email) is not None:
            raise ConflictError("Email already in use", field="email")

        first_name, last_name = split_name(name)
        username = username_from_email(email)
        if await self._users.exists({"username": username}):
            # local part collides with another account; keep the address unique
            username = email

        now = utc_now()
        user = UserDoc(
            name=name.strip(),
            full_name=name.strip(),
            first_name=first_name,
            last_name=last_name,
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=ROLE_USER,
            active_sessions=[],
            created_at=now,
            updated_at=now,
        )
        user.id = await self._users.insert(user.to_mongo())
        log.info("user_registered", user_id=str(user.id))

        token, session = await self._sessions.create_session(user, device, ip_address)
        return token, session, user

    async def login(
        self,
        email: str,
        password: str,
        *,
        device: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[str, SessionEntry, UserDoc]:
        user = await self._users.find_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            log.info("login_failed", reason="invalid_credentials")
            raise AuthenticationError(INVALID_CREDENTIALS)

        token, session = await self._sessions.create_session(user, device, ip_address)
        log.info("user_logged_in", user_id=str(user.id))
        return token, session, user
