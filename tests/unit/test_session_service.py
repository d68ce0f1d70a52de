"""Unit tests for SessionService against the in-memory repositories."""

from datetime import timedelta

import pytest
from bson import ObjectId

from errors import NotFoundError, UserNotFoundError
from schemas.models.user import SessionEntry, UserDoc
from services.session_service import evicted_sessions
from shared.datetime_utils import utc_now


def _entry(token: str, minutes_ago: int) -> SessionEntry:
    now = utc_now()
    return SessionEntry(
        token=token,
        created_at=now - timedelta(minutes=minutes_ago),
        expires_at=now + timedelta(days=1),
    )


class TestEvictedSessions:
    def test_under_cap_evicts_nothing(self):
        before = [_entry("a", 10)]
        assert evicted_sessions(before, _entry("b", 0), 5) == []

    def test_at_cap_evicts_oldest(self):
        before = [_entry(t, m) for t, m in (("b", 20), ("a", 30), ("c", 10))]
        evicted = evicted_sessions(before, _entry("d", 0), 3)
        assert [s.token for s in evicted] == ["a"]


class TestCreateSession:
    async def test_records_entry(self, session_service, make_user, users):
        user = make_user()
        token, entry = await session_service.create_session(
            user, device="curl/8.0", ip_address="1.2.3.4"
        )
        stored = await users.find_by_id(user.id)
        assert stored.find_session(token) is not None
        assert entry.device == "curl/8.0"
        assert entry.ip_address == "1.2.3.4"

    async def test_defaults_for_unknown_client(self, session_service, make_user):
        _, entry = await session_service.create_session(make_user())
        assert entry.device == "Unknown device"
        assert entry.ip_address == "Unknown IP"

    async def test_cap_keeps_newest(self, session_service, make_user, users):
        user = make_user()
        issued = [
            (await session_service.create_session(user))[0] for _ in range(6)
        ]
        stored = await users.find_by_id(user.id)
        tokens = [s.token for s in stored.active_sessions]
        assert len(tokens) == 5
        assert issued[0] not in tokens
        assert tokens == issued[1:]

    async def test_evicted_token_not_blacklisted(
        self, session_service, make_user, blacklist
    ):
        user = make_user()
        first, _ = await session_service.create_session(user)
        for _ in range(5):
            await session_service.create_session(user)
        assert not await blacklist.is_blacklisted(first)

    async def test_missing_user(self, session_service):
        ghost = UserDoc(_id=ObjectId(), name="x", email="x@example.com", password_hash="h")
        with pytest.raises(UserNotFoundError):
            await session_service.create_session(ghost)


class TestLogout:
    async def test_logout_blacklists_and_removes(
        self, session_service, make_user, users, blacklist
    ):
        user = make_user()
        token, _ = await session_service.create_session(user)
        user = await users.find_by_id(user.id)
        await session_service.logout(user, token)
        assert await blacklist.is_blacklisted(token)
        assert (await users.find_by_id(user.id)).active_sessions == []

    async def test_logout_session_by_id(
        self, session_service, make_user, users, blacklist
    ):
        user = make_user()
        t1, e1 = await session_service.create_session(user)
        t2, _ = await session_service.create_session(user)
        user = await users.find_by_id(user.id)

        is_current = await session_service.logout_session(user, e1.id, t2)
        assert is_current is False
        assert await blacklist.is_blacklisted(t1)
        remaining = (await users.find_by_id(user.id)).active_sessions
        assert [s.token for s in remaining] == [t2]

    async def test_logout_own_session_by_id(self, session_service, make_user, users):
        user = make_user()
        token, entry = await session_service.create_session(user)
        user = await users.find_by_id(user.id)
        assert await session_service.logout_session(user, entry.id, token) is True

    async def test_logout_unknown_session(self, session_service, make_user):
        user = make_user()
        with pytest.raises(NotFoundError, match="Session not found"):
            await session_service.logout_session(user, ObjectId(), "tok")

    async def test_logout_all(self, session_service, make_user, users, blacklist):
        user = make_user()
        tokens = [(await session_service.create_session(user))[0] for _ in range(3)]
        user = await users.find_by_id(user.id)

        skipped = await session_service.logout_all(user)
        assert skipped == 0
        assert all([await blacklist.is_blacklisted(t) for t in tokens])
        assert (await users.find_by_id(user.id)).active_sessions == []

    async def test_logout_all_skips_unverifiable(
        self, session_service, make_user, users, blacklist
    ):
        user = make_user()
        await session_service.create_session(user)
        now = utc_now()
        users.store.docs[user.id]["active_sessions"].append(
            SessionEntry(
                token="corrupt", created_at=now, expires_at=now + timedelta(days=1)
            ).model_dump(by_alias=True)
        )
        user = await users.find_by_id(user.id)

        assert await session_service.logout_all(user) == 1
        assert not await blacklist.is_blacklisted("corrupt")


async def test_list_sessions_oldest_first(session_service, make_user, users):
    user = make_user()
    users.store.docs[user.id]["active_sessions"] = [
        _entry("new", 1).model_dump(by_alias=True),
        _entry("old", 60).model_dump(by_alias=True),
    ]
    user = await users.find_by_id(user.id)
    assert [s.token for s in session_service.list_sessions(user)] == ["old", "new"]
