"""
Async repository for the `task_applications` collection.

The unique (user_id, task_id) index is the authoritative guard against
duplicate applications; insert() turns its DuplicateKeyError into a
ConflictError. Status writes are conditional on the status the caller read
(compare-and-set), so two concurrent transitions cannot both succeed.
"""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from schemas.models.application import Submission, TaskApplicationDoc
from shared.datetime_utils import utc_now

DUPLICATE_APPLICATION_MESSAGE = "You have already applied to this task"


class ApplicationRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def find_by_id(self, application_id: ObjectId) -> Optional[TaskApplicationDoc]:
        doc = await self._col.find_one({"_id": application_id})
        return TaskApplicationDoc.from_mongo(doc)

    async def find_for_user(
        self, application_id: ObjectId, user_id: ObjectId
    ) -> Optional[TaskApplicationDoc]:
        doc = await self._col.find_one({"_id": application_id, "user_id": user_id})
        return TaskApplicationDoc.from_mongo(doc)

    async def find_by_user_and_task(
        self, user_id: ObjectId, task_id: ObjectId
    ) -> Optional[TaskApplicationDoc]:
        doc = await self._col.find_one({"user_id": user_id, "task_id": task_id})
        return TaskApplicationDoc.from_mongo(doc)

    async def find_by_submission(
        self, submission_id: ObjectId
    ) -> Optional[TaskApplicationDoc]:
        doc = await self._col.find_one({"submissions._id": submission_id})
        return TaskApplicationDoc.from_mongo(doc)

    async def find_many(
        self,
        query: dict[str, Any],
        *,
        skip: int = 0,
        limit: int = 0,
        sort: Optional[list[tuple[str, int]]] = None,
    ) -> list[TaskApplicationDoc]:
        cursor = self._col.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [TaskApplicationDoc.from_mongo(doc) async for doc in cursor]

    async def count(self, query: Optional[dict[str, Any]] = None) -> int:
        return await self._col.count_documents(query or {})

    async def insert(self, doc: dict[str, Any]) -> ObjectId:
        try:
            result = await self._col.insert_one(doc)
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_APPLICATION_MESSAGE) from e
        return result.inserted_id

    async def update_fields(
        self,
        application_id: ObjectId,
        fields: dict[str, Any],
        *,
        expected_status: Optional[str] = None,
    ) -> Optional[TaskApplicationDoc]:
        """$set *fields*; when *expected_status* is given only if it still holds."""
        query: dict[str, Any] = {"_id": application_id}
        if expected_status is not None:
            query["status"] = expected_status
        doc = await self._col.find_one_and_update(
            query,
            {"$set": {**fields, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        return TaskApplicationDoc.from_mongo(doc)

    async def push_submissions(
        self,
        application_id: ObjectId,
        submissions: list[Submission],
        fields: dict[str, Any],
        *,
        expected_status: str,
    ) -> Optional[TaskApplicationDoc]:
        doc = await self._col.find_one_and_update(
            {"_id": application_id, "status": expected_status},
            {
                "$push": {
                    "submissions": {
                        "$each": [s.model_dump(by_alias=True) for s in submissions]
                    }
                },
                "$set": {**fields, "updated_at": utc_now()},
            },
            return_document=ReturnDocument.AFTER,
        )
        return TaskApplicationDoc.from_mongo(doc)

    async def pull_submission(
        self, application_id: ObjectId, submission_id: ObjectId
    ) -> Optional[TaskApplicationDoc]:
        doc = await self._col.find_one_and_update(
            {"_id": application_id},
            {
                "$pull": {"submissions": {"_id": submission_id}},
                "$set": {"updated_at": utc_now()},
            },
            return_document=ReturnDocument.AFTER,
        )
        return TaskApplicationDoc.from_mongo(doc)

    async def delete_for_user(self, user_id: ObjectId) -> int:
        result = await self._col.delete_many({"user_id": user_id})
        return result.deleted_count

    async def delete_for_task(self, task_id: ObjectId) -> int:
        result = await self._col.delete_many({"task_id": task_id})
        return result.deleted_count

    async def status_counts(self, query: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Count by status, total submissions and average progress over *query*."""
        pipeline = [
            {"$match": query or {}},
            {
                "$group": {
                    "_id": "$status",
                    "count": {"$sum": 1},
                    "submissions": {"$sum": {"$size": {"$ifNull": ["$submissions", []]}}},
                    "progress_sum": {"$sum": "$progress"},
                }
            },
        ]
        cursor = await self._col.aggregate(pipeline)
        by_status: dict[str, int] = {}
        total_submissions = 0
        progress_sum = 0
        async for row in cursor:
            by_status[row["_id"]] = row["count"]
            total_submissions += row["submissions"]
            progress_sum += row["progress_sum"]
        return {
            "by_status": by_status,
            "total_submissions": total_submissions,
            "progress_sum": progress_sum,
        }
