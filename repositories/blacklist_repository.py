"""Async repository for the `blacklisted_tokens` collection."""

from __future__ import annotations

from datetime import datetime

from bson import ObjectId
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from schemas.models.blacklisted_token import BlacklistedTokenDoc
from shared.datetime_utils import utc_now
from shared.logging import get_logger, token_prefix

log = get_logger(__name__)


class BlacklistRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def add(self, token: str, user_id: ObjectId, expires_at: datetime) -> None:
        """Blacklist *token* until *expires_at*. Re-adding is a no-op."""
        doc = BlacklistedTokenDoc(
            token=token,
            user_id=user_id,
            expires_at=expires_at,
            created_at=utc_now(),
        )
        try:
            await self._col.insert_one(doc.to_mongo())
        except DuplicateKeyError:
            log.debug("token_already_blacklisted", token_prefix=token_prefix(token))

    async def is_blacklisted(self, token: str) -> bool:
        return await self._col.find_one({"token": token}, {"_id": 1}) is not None

    async def delete_expired(self, now: datetime) -> int:
        result = await self._col.delete_many({"expires_at": {"$lte": now}})
        return result.deleted_count
