"""Async repository for the `tasks` collection."""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.task import TaskDoc
from shared.datetime_utils import utc_now


class TaskRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def find_by_id(self, task_id: ObjectId) -> Optional[TaskDoc]:
        return TaskDoc.from_mongo(await self._col.find_one({"_id": task_id}))

    async def find_by_ids(self, task_ids: list[ObjectId]) -> dict[ObjectId, TaskDoc]:
        if not task_ids:
            return {}
        cursor = self._col.find({"_id": {"$in": list(set(task_ids))}})
        tasks = [TaskDoc.from_mongo(doc) async for doc in cursor]
        return {task.id: task for task in tasks}

    async def find_many(
        self,
        query: dict[str, Any],
        *,
        skip: int = 0,
        limit: int = 0,
        sort: Optional[list[tuple[str, int]]] = None,
    ) -> list[TaskDoc]:
        cursor = self._col.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [TaskDoc.from_mongo(doc) async for doc in cursor]

    async def count(self, query: Optional[dict[str, Any]] = None) -> int:
        return await self._col.count_documents(query or {})

    async def insert(self, doc: dict[str, Any]) -> ObjectId:
        result = await self._col.insert_one(doc)
        return result.inserted_id

    async def update_fields(
        self, task_id: ObjectId, fields: dict[str, Any]
    ) -> Optional[TaskDoc]:
        doc = await self._col.find_one_and_update(
            {"_id": task_id},
            {"$set": {**fields, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        return TaskDoc.from_mongo(doc)

    async def delete(self, task_id: ObjectId) -> bool:
        result = await self._col.delete_one({"_id": task_id})
        return result.deleted_count > 0

    # ── Applicant set ────────────────────────────────────────────────────────

    async def add_applicant(self, task_id: ObjectId, user_id: ObjectId) -> None:
        await self._col.update_one(
            {"_id": task_id}, {"$addToSet": {"applicants": user_id}}
        )

    async def remove_applicant(self, task_id: ObjectId, user_id: ObjectId) -> None:
        await self._col.update_one({"_id": task_id}, {"$pull": {"applicants": user_id}})

    async def remove_applicant_everywhere(self, user_id: ObjectId) -> int:
        result = await self._col.update_many(
            {"applicants": user_id}, {"$pull": {"applicants": user_id}}
        )
        return result.modified_count

    # ── Catalogue statistics ─────────────────────────────────────────────────

    async def payout_stats_by(
        self, field: Optional[str], match: dict[str, Any]
    ) -> dict[str, dict[str, Any]]:
        """count / avg / min / max payout grouped by *field* over *match*."""
        pipeline = [
            {"$match": match},
            {
                "$group": {
                    "_id": f"${field}" if field else None,
                    "count": {"$sum": 1},
                    "average_payout": {"$avg": "$payout"},
                    "min_payout": {"$min": "$payout"},
                    "max_payout": {"$max": "$payout"},
                }
            },
        ]
        cursor = await self._col.aggregate(pipeline)
        return {row["_id"]: row async for row in cursor}

    async def payout_summary(self, match: dict[str, Any]) -> Optional[dict[str, Any]]:
        rows = await self.payout_stats_by(None, match)
        return rows.get(None)

    async def status_summary(self) -> dict[str, Any]:
        pipeline = [
            {
                "$group": {
                    "_id": None,
                    "total_tasks": {"$sum": 1},
                    "open_tasks": {"$sum": {"$cond": [{"$eq": ["$status", "open"]}, 1, 0]}},
                    "in_progress_tasks": {
                        "$sum": {"$cond": [{"$eq": ["$status", "in_progress"]}, 1, 0]}
                    },
                    "completed_tasks": {
                        "$sum": {"$cond": [{"$eq": ["$status", "completed"]}, 1, 0]}
                    },
                    "featured_tasks": {"$sum": {"$cond": ["$featured", 1, 0]}},
                    "average_payout": {"$avg": "$payout"},
                    "total_payout": {"$sum": "$payout"},
                    "highest_payout": {"$max": "$payout"},
                    "lowest_payout": {"$min": "$payout"},
                }
            }
        ]
        cursor = await self._col.aggregate(pipeline)
        rows = [row async for row in cursor]
        return rows[0] if rows else {}
