"""Async repository for the `completed_tasks` archive collection."""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.completed_task import CompletedTaskDoc


class CompletedTaskRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def insert_many(self, docs: list[dict[str, Any]]) -> list[ObjectId]:
        if not docs:
            return []
        result = await self._col.insert_many(docs)
        return list(result.inserted_ids)

    async def find_by_id(self, completed_id: ObjectId) -> Optional[CompletedTaskDoc]:
        return CompletedTaskDoc.from_mongo(await self._col.find_one({"_id": completed_id}))

    async def find_page(self, *, skip: int, limit: int) -> list[CompletedTaskDoc]:
        cursor = self._col.find({}).sort([("submitted_at", -1)]).skip(skip).limit(limit)
        return [CompletedTaskDoc.from_mongo(doc) async for doc in cursor]

    async def count(self) -> int:
        return await self._col.count_documents({})
