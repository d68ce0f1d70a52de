"""
Administrator surface: platform counts, user management and the
completed-task archive. Task and application management for admins goes
through TaskService and ApplicationService.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from bson import ObjectId

from errors import AuthorizationError, ConflictError, NotFoundError
from repositories.application_repository import ApplicationRepository
from repositories.completed_task_repository import CompletedTaskRepository
from repositories.task_repository import TaskRepository
from repositories.user_repository import UserRepository
from schemas.models.application import ApplicationStatus, TaskApplicationDoc
from schemas.models.base import parse_object_id
from schemas.models.completed_task import CompletedTaskDoc
from schemas.models.task import TaskStatus
from schemas.models.user import UserDoc
from shared.datetime_utils import utc_now
from shared.logging import get_logger

log = get_logger(__name__)

RECENT_WINDOW = timedelta(days=30)
USER_NOT_FOUND = "User not found"


class AdminService:
    def __init__(
        self,
        users: UserRepository,
        tasks: TaskRepository,
        applications: ApplicationRepository,
        completed: CompletedTaskRepository,
    ) -> None:
        self._users = users
        self._tasks = tasks
        self._applications = applications
        self._completed = completed

    async def stats(self) -> dict[str, Any]:
        since = utc_now() - RECENT_WINDOW
        summary = await self._applications.status_counts()
        counts = summary["by_status"]
        return {
            "total_users": await self._users.count(),
            "total_tasks": await self._tasks.count(),
            "open_tasks": await self._tasks.count({"status": TaskStatus.OPEN.value}),
            "completed_tasks": await self._tasks.count(
                {"status": TaskStatus.COMPLETED.value}
            ),
            "recent_users": await self._users.count({"created_at": {"$gte": since}}),
            "recent_tasks": await self._tasks.count({"created_at": {"$gte": since}}),
            "total_applications": sum(counts.values()),
            "total_submissions": summary["total_submissions"],
            "pending_reviews": counts.get(ApplicationStatus.SUBMITTED.value, 0),
            "approved_submissions": counts.get(ApplicationStatus.COMPLETED.value, 0),
            "revision_requests": counts.get(ApplicationStatus.NEEDS_REVISION.value, 0),
            "rejected_applications": counts.get(ApplicationStatus.REJECTED.value, 0),
            "last_updated": utc_now(),
        }

    # ── Users ────────────────────────────────────────────────────────────────

    async def list_users(self, *, page: int, limit: int) -> tuple[list[UserDoc], int]:
        users = await self._users.find_many(
            {}, skip=(page - 1) * limit, limit=limit, sort=[("created_at", -1)]
        )
        return users, await self._users.count()

    async def get_user(self, user_id: str) -> UserDoc:
        uid = parse_object_id(user_id)
        user = await self._users.find_by_id(uid) if uid else None
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    async def update_user(self, user_id: str, changes: dict[str, Any]) -> UserDoc:
        user = await self.get_user(user_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
            if await self._users.exists(
                {"email": changes["email"], "_id": {"$ne": user.id}}
            ):
                raise ConflictError("Email already in use", field="email")
        if not changes:
            return user
        updated = await self._users.update_fields(user.id, changes)
        if updated is None:
            raise NotFoundError(USER_NOT_FOUND)
        log.info("admin_user_updated", user_id=user_id, fields=sorted(changes))
        return updated

    async def delete_user(self, admin: UserDoc, user_id: str) -> UserDoc:
        user = await self.get_user(user_id)
        if user.is_admin and user.id != admin.id:
            raise AuthorizationError("Cannot delete other admin users")

        await self._tasks.remove_applicant_everywhere(user.id)
        removed_applications = await self._applications.delete_for_user(user.id)
        await self._users.delete(user.id)
        log.info(
            "admin_user_deleted",
            user_id=user_id,
            admin_id=str(admin.id),
            applications_removed=removed_applications,
        )
        return user

    async def user_applications(
        self, user_id: str
    ) -> tuple[UserDoc, list[TaskApplicationDoc]]:
        user = await self.get_user(user_id)
        applications = await self._applications.find_many(
            {"user_id": user.id}, sort=[("applied_at", -1)]
        )
        return user, applications

    async def task_applications(self) -> list[dict[str, Any]]:
        """Who applied to what, newest first, one flat row per application."""
        applications = await self._applications.find_many(
            {}, sort=[("applied_at", -1)]
        )
        tasks = await self._tasks.find_by_ids([a.task_id for a in applications])
        users = await self.users_by_ids([a.user_id for a in applications])
        rows = []
        for application in applications:
            task = tasks.get(application.task_id)
            user = users.get(application.user_id)
            if task is None or user is None:
                continue
            rows.append(
                {
                    "task_id": str(task.id),
                    "task_title": task.title,
                    "task_category": task.category,
                    "task_payout": task.payout,
                    "user_id": str(user.id),
                    "user_name": user.name,
                    "user_email": user.email,
                    "application_date": application.applied_at,
                    "application_status": application.status,
                }
            )
        return rows

    async def users_by_ids(self, user_ids: list[ObjectId]) -> dict[ObjectId, UserDoc]:
        if not user_ids:
            return {}
        users = await self._users.find_many({"_id": {"$in": list(set(user_ids))}})
        return {user.id: user for user in users}

    # ── Completed-task archive ───────────────────────────────────────────────

    async def list_completed(
        self, *, page: int, limit: int
    ) -> tuple[list[CompletedTaskDoc], int]:
        items = await self._completed.find_page(skip=(page - 1) * limit, limit=limit)
        return items, await self._completed.count()

    async def get_completed(self, completed_id: str) -> CompletedTaskDoc:
        cid = parse_object_id(completed_id)
        item: Optional[CompletedTaskDoc] = (
            await self._completed.find_by_id(cid) if cid else None
        )
        if item is None:
            raise NotFoundError("Completed task not found")
        return item
