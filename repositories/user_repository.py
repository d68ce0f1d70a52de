"""
Async repository for the `users` collection.

Session-list writes use single-document atomic operators so concurrent
logins, logouts and janitor sweeps never lose each other's updates:

    push_session          $push {$each, $sort: {created_at: 1}, $slice: -max}
    pull_session_*        $pull by token / by session id
    clear_sessions        $set active_sessions: []
    pull_expired_sessions $pull {expires_at: {$lte: now}}

Methods that remove sessions return the document as it was BEFORE the write,
so callers can tell which entries were removed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from schemas.models.user import SessionEntry, UserDoc
from shared.datetime_utils import utc_now
from shared.logging import get_logger

log = get_logger(__name__)


def _duplicate_field(exc: DuplicateKeyError) -> str:
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    if "username" in key_pattern:
        return "username"
    return "email"


_DUPLICATE_MESSAGES = {
    "email": "Email already in use",
    "username": "Username is already taken",
}


class UserRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    # ── Lookups ──────────────────────────────────────────────────────────────

    async def find_by_id(self, user_id: ObjectId) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._col.find_one({"_id": user_id}))

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._col.find_one({"email": email.lower()}))

    async def exists(self, query: dict[str, Any]) -> bool:
        return await self._col.find_one(query, {"_id": 1}) is not None

    async def find_many(
        self,
        query: dict[str, Any],
        *,
        skip: int = 0,
        limit: int = 0,
        sort: Optional[list[tuple[str, int]]] = None,
    ) -> list[UserDoc]:
        cursor = self._col.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [UserDoc.from_mongo(doc) async for doc in cursor]

    async def count(self, query: Optional[dict[str, Any]] = None) -> int:
        return await self._col.count_documents(query or {})

    # ── Writes ───────────────────────────────────────────────────────────────

    async def insert(self, doc: dict[str, Any]) -> ObjectId:
        try:
            result = await self._col.insert_one(doc)
        except DuplicateKeyError as e:
            field = _duplicate_field(e)
            raise ConflictError(_DUPLICATE_MESSAGES[field], field=field) from e
        return result.inserted_id

    async def update_fields(
        self, user_id: ObjectId, fields: dict[str, Any]
    ) -> Optional[UserDoc]:
        update = {"$set": {**fields, "updated_at": utc_now()}}
        try:
            doc = await self._col.find_one_and_update(
                {"_id": user_id}, update, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            field = _duplicate_field(e)
            raise ConflictError(_DUPLICATE_MESSAGES[field], field=field) from e
        return UserDoc.from_mongo(doc)

    async def delete(self, user_id: ObjectId) -> bool:
        result = await self._col.delete_one({"_id": user_id})
        return result.deleted_count > 0

    # ── Sessions ─────────────────────────────────────────────────────────────

    async def push_session(
        self, user_id: ObjectId, entry: SessionEntry, max_sessions: int
    ) -> Optional[UserDoc]:
        """Append *entry*, keeping only the newest *max_sessions* entries."""
        doc = await self._col.find_one_and_update(
            {"_id": user_id},
            {
                "$push": {
                    "active_sessions": {
                        "$each": [entry.model_dump(by_alias=True)],
                        "$sort": {"created_at": 1},
                        "$slice": -max_sessions,
                    }
                }
            },
            return_document=ReturnDocument.BEFORE,
        )
        return UserDoc.from_mongo(doc)

    async def pull_session_by_token(
        self, user_id: ObjectId, token: str
    ) -> Optional[SessionEntry]:
        doc = await self._col.find_one_and_update(
            {"_id": user_id, "active_sessions.token": token},
            {"$pull": {"active_sessions": {"token": token}}},
            return_document=ReturnDocument.BEFORE,
        )
        user = UserDoc.from_mongo(doc)
        return user.find_session(token) if user else None

    async def pull_session_by_id(
        self, user_id: ObjectId, session_id: ObjectId
    ) -> Optional[SessionEntry]:
        doc = await self._col.find_one_and_update(
            {"_id": user_id, "active_sessions._id": session_id},
            {"$pull": {"active_sessions": {"_id": session_id}}},
            return_document=ReturnDocument.BEFORE,
        )
        user = UserDoc.from_mongo(doc)
        if user is None:
            return None
        for session in user.active_sessions:
            if session.id == session_id:
                return session
        return None

    async def clear_sessions(self, user_id: ObjectId) -> list[SessionEntry]:
        doc = await self._col.find_one_and_update(
            {"_id": user_id},
            {"$set": {"active_sessions": []}},
            return_document=ReturnDocument.BEFORE,
        )
        user = UserDoc.from_mongo(doc)
        return user.active_sessions if user else []

    async def pull_expired_sessions(self, user_id: ObjectId, now: datetime) -> int:
        result = await self._col.update_one(
            {"_id": user_id},
            {"$pull": {"active_sessions": {"expires_at": {"$lte": now}}}},
        )
        return result.modified_count

    async def find_with_expired_sessions(self, now: datetime) -> list[UserDoc]:
        return await self.find_many({"active_sessions.expires_at": {"$lte": now}})

    async def find_with_sessions(self) -> list[UserDoc]:
        return await self.find_many({"active_sessions.0": {"$exists": True}})
