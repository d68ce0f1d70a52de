"""
Public task catalogue: filtered listing, search, lookups and simple stats.

Also owns task creation and updates so the admin surface and the catalogue
apply the same deadline rules.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError

from errors import NotFoundError, ValidationError
from repositories.application_repository import ApplicationRepository
from repositories.task_repository import TaskRepository
from schemas.models.base import parse_object_id
from schemas.models.task import (
    TaskCategory,
    TaskDifficulty,
    TaskDoc,
    TaskStatus,
    default_deadline,
)
from schemas.models.user import UserDoc
from shared.datetime_utils import ensure_utc, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

TASK_NOT_FOUND = "Task not found"

CATEGORY_INFO: dict[str, dict[str, str]] = {
    TaskCategory.FRONTEND.value: {
        "label": "Frontend Development",
        "description": "UI/UX, React, Vue, Angular, HTML/CSS",
    },
    TaskCategory.BACKEND.value: {
        "label": "Backend Development",
        "description": "APIs, databases, server-side logic",
    },
    TaskCategory.FULLSTACK.value: {
        "label": "Full Stack Development",
        "description": "End-to-end application development",
    },
    TaskCategory.MOBILE.value: {
        "label": "Mobile Development",
        "description": "iOS, Android, React Native, Flutter",
    },
    TaskCategory.DESIGN.value: {
        "label": "Design",
        "description": "UI/UX design, graphics, branding",
    },
    TaskCategory.DEVOPS.value: {
        "label": "DevOps",
        "description": "CI/CD, cloud infrastructure, deployment",
    },
}

DIFFICULTY_INFO: dict[str, dict[str, str]] = {
    TaskDifficulty.EASY.value: {
        "label": "Easy",
        "description": "Beginner-friendly tasks",
        "estimated_hours": "5-20 hours",
    },
    TaskDifficulty.MEDIUM.value: {
        "label": "Medium",
        "description": "Intermediate level tasks",
        "estimated_hours": "20-50 hours",
    },
    TaskDifficulty.HARD.value: {
        "label": "Hard",
        "description": "Advanced and complex tasks",
        "estimated_hours": "50+ hours",
    },
}

SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "payout": "payout",
    "deadline": "deadline",
    "difficulty": "difficulty",
    "title": "title",
}

DEFAULT_PRICE_RANGE = {"min": 0, "max": 5000, "average": 0}

EMPTY_STATS: dict[str, Any] = {
    "total_tasks": 0,
    "open_tasks": 0,
    "in_progress_tasks": 0,
    "completed_tasks": 0,
    "featured_tasks": 0,
    "average_payout": 0,
    "total_payout": 0,
    "highest_payout": 0,
    "lowest_payout": 0,
}

OPEN_CATALOGUE = {"status": TaskStatus.OPEN.value, "is_active": True}


@dataclass
class TaskFilters:
    category: Optional[str] = None
    difficulty: Optional[str] = None
    search: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    featured: Optional[bool] = None
    status: str = TaskStatus.OPEN.value
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 10


def build_task_query(filters: TaskFilters) -> dict[str, Any]:
    query: dict[str, Any] = {"is_active": True}
    if filters.status == "all":
        query["status"] = {"$ne": TaskStatus.CANCELLED.value}
    else:
        query["status"] = filters.status

    if filters.category and filters.category != "all":
        query["category"] = filters.category
    if filters.difficulty and filters.difficulty != "all":
        query["difficulty"] = filters.difficulty

    payout: dict[str, float] = {}
    if filters.min_price is not None:
        payout["$gte"] = filters.min_price
    if filters.max_price is not None:
        payout["$lte"] = filters.max_price
    if payout:
        query["payout"] = payout

    if filters.search:
        pattern = re.compile(re.escape(filters.search), re.IGNORECASE)
        query["$or"] = [
            {"title": pattern},
            {"description": pattern},
            {"company": pattern},
            {"skills": pattern},
            {"tags": pattern},
        ]

    if filters.featured:
        query["featured"] = True
    return query


def build_task_sort(filters: TaskFilters) -> list[tuple[str, int]]:
    direction = 1 if filters.sort_order == "asc" else -1
    sort: list[tuple[str, int]] = []
    if not filters.featured:
        # featured tasks first unless the listing is featured-only already
        sort.append(("featured", -1))
    sort.append((SORT_FIELDS.get(filters.sort_by, "created_at"), direction))
    return sort


def _stat_row(row: Optional[dict[str, Any]]) -> dict[str, Any]:
    row = row or {}
    return {
        "count": row.get("count", 0),
        "average_payout": round(row.get("average_payout") or 0),
        "min_payout": row.get("min_payout") or 0,
        "max_payout": row.get("max_payout") or 0,
    }


def _resolve_deadline(
    deadline: Optional[datetime], created_at: datetime, duration: int
) -> datetime:
    if deadline is None:
        return default_deadline(created_at, duration)
    deadline = ensure_utc(deadline)
    if deadline <= created_at:
        raise ValidationError("Deadline must be in the future", field="deadline")
    return deadline


def _build_task(data: dict[str, Any]) -> TaskDoc:
    try:
        return TaskDoc.model_validate(data)
    except PydanticValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Invalid task data", details=details) from None


class TaskService:
    def __init__(
        self, tasks: TaskRepository, applications: ApplicationRepository
    ) -> None:
        self._tasks = tasks
        self._applications = applications

    async def list_tasks(self, filters: TaskFilters) -> tuple[list[TaskDoc], int]:
        query = build_task_query(filters)
        tasks = await self._tasks.find_many(
            query,
            skip=(filters.page - 1) * filters.limit,
            limit=filters.limit,
            sort=build_task_sort(filters),
        )
        return tasks, await self._tasks.count(query)

    async def get_task(self, task_id: str) -> TaskDoc:
        tid = parse_object_id(task_id)
        if tid is None:
            raise ValidationError("Invalid task ID format", field="taskId")
        task = await self._tasks.find_by_id(tid)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    async def categories(self) -> list[dict[str, Any]]:
        stats = await self._tasks.payout_stats_by("category", OPEN_CATALOGUE)
        return [
            {"id": category, **info, **_stat_row(stats.get(category))}
            for category, info in CATEGORY_INFO.items()
        ]

    async def difficulties(self) -> list[dict[str, Any]]:
        stats = await self._tasks.payout_stats_by("difficulty", OPEN_CATALOGUE)
        return [
            {"id": difficulty, **info, **_stat_row(stats.get(difficulty))}
            for difficulty, info in DIFFICULTY_INFO.items()
        ]

    async def stats(self) -> dict[str, Any]:
        summary = {**EMPTY_STATS, **await self._tasks.status_summary()}
        summary.pop("_id", None)
        summary["average_payout"] = round(summary["average_payout"] or 0)
        return summary

    async def price_range(self) -> dict[str, Any]:
        summary = await self._tasks.payout_summary(OPEN_CATALOGUE)
        if not summary:
            return dict(DEFAULT_PRICE_RANGE)
        return {
            "min": summary["min_payout"],
            "max": summary["max_payout"],
            "average": round(summary["average_payout"] or 0),
        }

    # ── Admin-side writes ────────────────────────────────────────────────────

    async def create_task(self, admin: UserDoc, data: dict[str, Any]) -> TaskDoc:
        now = utc_now()
        fields = {k: v for k, v in data.items() if v is not None}
        fields.setdefault("duration", 7)
        fields["deadline"] = _resolve_deadline(
            fields.get("deadline"), now, fields["duration"]
        )
        task = _build_task(
            {**fields, "client_id": admin.id, "created_at": now, "updated_at": now}
        )
        task.id = await self._tasks.insert(task.to_mongo())
        log.info("task_created", task_id=str(task.id), admin_id=str(admin.id))
        return task

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> TaskDoc:
        task = await self.get_task(task_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            return task
        if "deadline" in changes:
            changes["deadline"] = _resolve_deadline(
                changes["deadline"], utc_now(), task.duration
            )
        merged = _build_task({**task.model_dump(), **changes})
        fields = merged.model_dump(include=set(changes))
        updated = await self._tasks.update_fields(task.id, fields)
        if updated is None:
            raise NotFoundError(TASK_NOT_FOUND)
        log.info("task_updated", task_id=task_id, fields=sorted(fields))
        return updated

    async def delete_task(self, task_id: str) -> TaskDoc:
        task = await self.get_task(task_id)
        removed_applications = await self._applications.delete_for_task(task.id)
        await self._tasks.delete(task.id)
        log.info(
            "task_deleted",
            task_id=task_id,
            applications_removed=removed_applications,
        )
        return task

    async def list_all(self, *, page: int, limit: int) -> tuple[list[TaskDoc], int]:
        tasks = await self._tasks.find_many(
            {}, skip=(page - 1) * limit, limit=limit, sort=[("created_at", -1)]
        )
        return tasks, await self._tasks.count({})

    async def find_by_ids(self, task_ids: list[ObjectId]) -> dict[ObjectId, TaskDoc]:
        return await self._tasks.find_by_ids(task_ids)
