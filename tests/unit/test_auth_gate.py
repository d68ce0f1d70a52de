"""Unit tests for the request authentication gate."""

from datetime import timedelta

import pytest

from errors import (
    InvalidSessionTokenError,
    NotAuthenticatedError,
    SessionExpiredError,
    SessionInvalidError,
    SessionRevokedError,
    UserNotFoundError,
)
from services.auth_gate import extract_bearer_token
from shared.datetime_utils import utc_now


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc", "abc"),
        ("Bearer   abc  ", "abc"),
        ("Bearer ", None),
        ("Basic abc", None),
        ("", None),
        (None, None),
    ],
    ids=["plain", "padded", "empty_token", "wrong_scheme", "empty", "missing"],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


@pytest.fixture
async def logged_in(session_service, make_user, users):
    user = make_user()
    token, _ = await session_service.create_session(user)
    return await users.find_by_id(user.id), token


class TestAuthenticate:
    async def test_valid_session(self, auth_gate, logged_in):
        user, token = logged_in
        ctx = await auth_gate.authenticate(f"Bearer {token}")
        assert ctx.user.id == user.id
        assert ctx.token == token
        assert ctx.session.token == token
        assert ctx.user_id == str(user.id)

    async def test_missing_header(self, auth_gate):
        with pytest.raises(NotAuthenticatedError):
            await auth_gate.authenticate(None)

    async def test_blacklisted_token_rejected(self, auth_gate, logged_in, blacklist):
        user, token = logged_in
        await blacklist.add(token, user.id, utc_now() + timedelta(days=1))
        with pytest.raises(SessionRevokedError):
            await auth_gate.authenticate(f"Bearer {token}")

    async def test_logged_out_token_never_authenticates(
        self, auth_gate, session_service, logged_in
    ):
        user, token = logged_in
        await session_service.logout(user, token)
        with pytest.raises(SessionRevokedError):
            await auth_gate.authenticate(f"Bearer {token}")

    async def test_bad_signature(self, auth_gate):
        with pytest.raises(InvalidSessionTokenError):
            await auth_gate.authenticate("Bearer not.a.jwt")

    async def test_expired_token_drops_session(
        self, auth_gate, token_service, make_user, users
    ):
        user = make_user()
        token = token_service.issue(
            {"sub": str(user.id)}, "1s", now=utc_now() - timedelta(hours=1)
        )
        now = utc_now()
        users.store.docs[user.id]["active_sessions"] = [
            {
                "_id": user.id,
                "token": token,
                "created_at": now - timedelta(hours=1),
                "expires_at": now - timedelta(minutes=59),
                "device": "d",
                "ip_address": "i",
            }
        ]
        with pytest.raises(SessionExpiredError):
            await auth_gate.authenticate(f"Bearer {token}")
        assert (await users.find_by_id(user.id)).active_sessions == []

    async def test_deleted_user(self, auth_gate, logged_in, users):
        user, token = logged_in
        await users.delete(user.id)
        with pytest.raises(UserNotFoundError):
            await auth_gate.authenticate(f"Bearer {token}")

    async def test_token_without_session(self, auth_gate, token_service, make_user):
        user = make_user()
        token = token_service.issue({"sub": str(user.id)})
        with pytest.raises(SessionInvalidError):
            await auth_gate.authenticate(f"Bearer {token}")

    async def test_expired_session_record(self, auth_gate, logged_in, users):
        user, token = logged_in
        users.store.docs[user.id]["active_sessions"][0]["expires_at"] = (
            utc_now() - timedelta(seconds=1)
        )
        with pytest.raises(SessionExpiredError):
            await auth_gate.authenticate(f"Bearer {token}")
        assert (await users.find_by_id(user.id)).active_sessions == []

    async def test_evicted_session_rejected(
        self, auth_gate, session_service, logged_in
    ):
        user, first = logged_in
        for _ in range(5):
            await session_service.create_session(user)
        with pytest.raises(SessionInvalidError):
            await auth_gate.authenticate(f"Bearer {first}")
