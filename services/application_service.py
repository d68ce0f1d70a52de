"""
Task application workflow.

Every status change is validated against ALLOWED_TRANSITIONS and written
with a compare-and-set on the status that was read, so a request that lost
a race sees the move rejected instead of overwriting the winner.
"""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from fastapi import UploadFile
from pymongo.errors import PyMongoError

from errors import ConflictError, NotFoundError, StorageError, ValidationError
from infrastructure.storage import LocalStorage
from repositories.application_repository import (
    DUPLICATE_APPLICATION_MESSAGE,
    ApplicationRepository,
)
from repositories.completed_task_repository import CompletedTaskRepository
from repositories.task_repository import TaskRepository
from repositories.user_repository import UserRepository
from schemas.models.application import (
    REVIEW_TO_STATUS,
    AdminReview,
    ApplicationStatus,
    ReviewOutcome,
    Submission,
    TaskApplicationDoc,
    ensure_transition,
)
from schemas.models.base import parse_object_id
from schemas.models.completed_task import CompletedFile, CompletedTaskDoc
from schemas.models.task import TaskDoc, TaskStatus
from schemas.models.user import UserDoc
from shared.datetime_utils import utc_now
from shared.logging import get_logger

log = get_logger(__name__)

APPLICATION_NOT_FOUND = "Application not found"
CANNOT_SUBMIT = "You cannot submit files for this application"
CANNOT_WITHDRAW = "You cannot withdraw this application"
PROGRESS_RANGE = "Progress must be between 0 and 100"
FIRST_SUBMISSION_PROGRESS = 25

# Targets an admin may set directly; the rest follow from submit/review
ADMIN_STATUS_TARGETS = frozenset(
    {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED}
)

MY_APPLICATION_SORT_FIELDS = {
    "appliedAt": "applied_at",
    "updatedAt": "updated_at",
    "progress": "progress",
    "status": "status",
}


def _parse_status(value: str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status: {value}",
            field="status",
            details={"allowed": [s.value for s in ApplicationStatus]},
        ) from None


def _require_id(value: str, message: str) -> ObjectId:
    object_id = parse_object_id(value)
    if object_id is None:
        raise NotFoundError(message)
    return object_id


def success_rate(counts: dict[str, int], total: int) -> float:
    """Share of applications accepted or completed, as a percentage."""
    if total <= 0:
        return 0.0
    successful = counts.get(ApplicationStatus.ACCEPTED.value, 0) + counts.get(
        ApplicationStatus.COMPLETED.value, 0
    )
    return round(successful / total * 100, 1)


class ApplicationService:
    def __init__(
        self,
        applications: ApplicationRepository,
        tasks: TaskRepository,
        users: UserRepository,
        completed: CompletedTaskRepository,
        storage: LocalStorage,
        *,
        resubmit_marks_submitted: bool = False,
    ) -> None:
        self._applications = applications
        self._tasks = tasks
        self._users = users
        self._completed = completed
        self._storage = storage
        self.resubmit_marks_submitted = resubmit_marks_submitted

    # ── Lookups ──────────────────────────────────────────────────────────────

    async def _get_own(self, user: UserDoc, application_id: str) -> TaskApplicationDoc:
        app_id = _require_id(application_id, APPLICATION_NOT_FOUND)
        application = await self._applications.find_for_user(app_id, user.id)
        if application is None:
            raise NotFoundError(APPLICATION_NOT_FOUND)
        return application

    async def get(self, application_id: str) -> TaskApplicationDoc:
        app_id = _require_id(application_id, APPLICATION_NOT_FOUND)
        application = await self._applications.find_by_id(app_id)
        if application is None:
            raise NotFoundError(APPLICATION_NOT_FOUND)
        return application

    async def _transition(
        self,
        application: TaskApplicationDoc,
        target: ApplicationStatus,
        fields: Optional[dict[str, Any]] = None,
        *,
        conflict_message: str = "Application status changed, please retry",
    ) -> TaskApplicationDoc:
        ensure_transition(application.status, target)
        updated = await self._applications.update_fields(
            application.id,
            {**(fields or {}), "status": target.value},
            expected_status=application.status,
        )
        if updated is None:
            raise ConflictError(conflict_message)
        log.info(
            "application_status_changed",
            application_id=str(application.id),
            from_status=application.status,
            to_status=target.value,
        )
        return updated

    # ── Applicant operations ─────────────────────────────────────────────────

    async def apply(
        self, user: UserDoc, task_id: str, message: Optional[str] = None
    ) -> TaskApplicationDoc:
        tid = parse_object_id(task_id)
        if tid is None:
            raise ValidationError(
                "Invalid task ID format. Please use a valid task identifier.",
                field="taskId",
            )
        task = await self._tasks.find_by_id(tid)
        if task is None:
            raise NotFoundError("Task not found")
        if task.status != TaskStatus.OPEN.value:
            raise ValidationError("This task is no longer available for applications")
        if task.client_id == user.id:
            raise ValidationError("You cannot apply to your own task")
        if await self._applications.find_by_user_and_task(user.id, tid) is not None:
            raise ConflictError(DUPLICATE_APPLICATION_MESSAGE)

        now = utc_now()
        application = TaskApplicationDoc(
            user_id=user.id,
            task_id=tid,
            status=ApplicationStatus.PENDING,
            applied_at=now,
            message=message,
            expected_delivery=task.deadline,
            created_at=now,
            updated_at=now,
        )
        # the unique (user_id, task_id) index decides concurrent duplicates
        application.id = await self._applications.insert(application.to_mongo())
        await self._tasks.add_applicant(tid, user.id)

        log.info(
            "application_created",
            application_id=str(application.id),
            task_id=str(tid),
        )
        return application

    async def submit_files(
        self, user: UserDoc, application_id: str, uploads: list[UploadFile]
    ) -> tuple[TaskApplicationDoc, list[Submission]]:
        application = await self._get_own(user, application_id)
        if not application.can_submit_files():
            raise ValidationError(CANNOT_SUBMIT)

        target: Optional[ApplicationStatus] = None
        if application.status == ApplicationStatus.ACCEPTED.value:
            target = ApplicationStatus.SUBMITTED
        elif self.resubmit_marks_submitted:
            target = ApplicationStatus.SUBMITTED
        fields: dict[str, Any] = {}
        if target is not None:
            ensure_transition(application.status, target)
            fields["status"] = target.value
        if application.progress == 0:
            fields["progress"] = FIRST_SUBMISSION_PROGRESS

        stored = await self._storage.save_submissions(
            uploads, str(user.id), str(application.id)
        )
        now = utc_now()
        submissions = [
            Submission(
                filename=f.filename,
                original_name=f.original_name,
                path=f.path,
                size=f.size,
                mimetype=f.mimetype,
                uploaded_at=now,
            )
            for f in stored
        ]

        try:
            updated = await self._applications.push_submissions(
                application.id,
                submissions,
                fields,
                expected_status=application.status,
            )
        except PyMongoError as e:
            await self._storage.delete_many([f.path for f in stored])
            log.error(
                "submission_persist_failed",
                application_id=str(application.id),
                error=str(e),
            )
            raise StorageError("Failed to submit files") from e

        if updated is None:
            await self._storage.delete_many([f.path for f in stored])
            raise ValidationError(CANNOT_SUBMIT)

        log.info(
            "application_submitted",
            application_id=str(application.id),
            files=len(submissions),
            from_status=application.status,
            to_status=updated.status,
            total_submissions=updated.submission_count,
        )
        return updated, submissions

    async def update_progress(
        self, user: UserDoc, application_id: str, progress: Any
    ) -> TaskApplicationDoc:
        if (
            isinstance(progress, bool)
            or not isinstance(progress, int)
            or not 0 <= progress <= 100
        ):
            raise ValidationError(PROGRESS_RANGE, field="progress")
        application = await self._get_own(user, application_id)
        updated = await self._applications.update_fields(
            application.id, {"progress": progress}
        )
        if updated is None:
            raise NotFoundError(APPLICATION_NOT_FOUND)
        return updated

    async def withdraw(self, user: UserDoc, application_id: str) -> TaskApplicationDoc:
        application = await self._get_own(user, application_id)
        if not application.can_withdraw():
            raise ValidationError(CANNOT_WITHDRAW)
        updated = await self._applications.update_fields(
            application.id,
            {"status": ApplicationStatus.CANCELLED.value},
            expected_status=application.status,
        )
        if updated is None:
            raise ValidationError(CANNOT_WITHDRAW)
        await self._tasks.remove_applicant(application.task_id, user.id)
        log.info("application_withdrawn", application_id=str(application.id))
        return updated

    async def delete_submission(
        self, user: UserDoc, application_id: str, submission_id: str
    ) -> TaskApplicationDoc:
        application = await self._get_own(user, application_id)
        sid = parse_object_id(submission_id)
        submission = application.find_submission(sid) if sid else None
        if submission is None:
            raise NotFoundError("Submission file not found")
        if application.status == ApplicationStatus.COMPLETED.value:
            raise ValidationError(
                "Submissions of a completed application cannot be deleted"
            )

        updated = await self._applications.pull_submission(application.id, sid)
        if updated is None:
            raise NotFoundError(APPLICATION_NOT_FOUND)
        await self._storage.delete(submission.path)
        log.info(
            "submission_deleted",
            application_id=str(application.id),
            submission_id=submission_id,
            remaining=updated.submission_count,
        )
        return updated

    async def list_mine(
        self,
        user: UserDoc,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "appliedAt",
        sort_order: str = "desc",
    ) -> tuple[list[TaskApplicationDoc], dict[ObjectId, TaskDoc], int]:
        query: dict[str, Any] = {"user_id": user.id}
        if status and status != "all":
            query["status"] = _parse_status(status).value
        sort_field = MY_APPLICATION_SORT_FIELDS.get(sort_by, "applied_at")
        direction = 1 if sort_order == "asc" else -1

        applications = await self._applications.find_many(
            query,
            skip=(page - 1) * limit,
            limit=limit,
            sort=[(sort_field, direction)],
        )
        total = await self._applications.count(query)
        tasks = await self._tasks.find_by_ids([a.task_id for a in applications])
        return applications, tasks, total

    async def get_mine(
        self, user: UserDoc, application_id: str
    ) -> tuple[TaskApplicationDoc, Optional[TaskDoc]]:
        application = await self._get_own(user, application_id)
        return application, await self._tasks.find_by_id(application.task_id)

    async def stats_mine(self, user: UserDoc) -> dict[str, Any]:
        summary = await self._applications.status_counts({"user_id": user.id})
        counts = summary["by_status"]
        total = sum(counts.values())
        average_progress = round(summary["progress_sum"] / total) if total else 0
        return {
            "total_applications": total,
            "pending_applications": counts.get(ApplicationStatus.PENDING.value, 0),
            "accepted_applications": counts.get(ApplicationStatus.ACCEPTED.value, 0),
            "submitted_applications": counts.get(ApplicationStatus.SUBMITTED.value, 0),
            "needs_revision_applications": counts.get(
                ApplicationStatus.NEEDS_REVISION.value, 0
            ),
            "completed_applications": counts.get(ApplicationStatus.COMPLETED.value, 0),
            "rejected_applications": counts.get(ApplicationStatus.REJECTED.value, 0),
            "cancelled_applications": counts.get(ApplicationStatus.CANCELLED.value, 0),
            "total_submissions": summary["total_submissions"],
            "average_progress": average_progress,
            "success_rate": success_rate(counts, total),
        }

    # ── Admin operations ─────────────────────────────────────────────────────

    async def set_status(
        self,
        admin: UserDoc,
        application_id: str,
        status: str,
        feedback: Optional[str] = None,
    ) -> TaskApplicationDoc:
        target = _parse_status(status)
        if target not in ADMIN_STATUS_TARGETS:
            raise ValidationError(
                f"Status {target.value} is set through submission and review",
                field="status",
            )
        application = await self.get(application_id)

        fields: dict[str, Any] = {}
        if feedback:
            fields["feedback"] = {"comment": feedback, "provided_at": utc_now()}
        updated = await self._transition(application, target, fields)

        if target == ApplicationStatus.ACCEPTED:
            await self._tasks.update_fields(
                application.task_id,
                {
                    "assigned_to": application.user_id,
                    "status": TaskStatus.IN_PROGRESS.value,
                },
            )
        elif target == ApplicationStatus.CANCELLED:
            await self._tasks.remove_applicant(application.task_id, application.user_id)

        log.info(
            "application_status_set",
            application_id=str(application.id),
            admin_id=str(admin.id),
            status=target.value,
        )
        return updated

    async def bulk_set_status(
        self,
        admin: UserDoc,
        application_ids: list[str],
        status: str,
        feedback: Optional[str] = None,
    ) -> dict[str, list]:
        """Best effort per id; one failure does not stop the rest."""
        _parse_status(status)
        updated: list[str] = []
        failed: list[dict[str, str]] = []
        for application_id in application_ids:
            try:
                await self.set_status(admin, application_id, status, feedback)
            except (ValidationError, NotFoundError, ConflictError) as e:
                failed.append({"id": application_id, "message": e.message})
            else:
                updated.append(application_id)

        log.info(
            "application_bulk_status_set",
            admin_id=str(admin.id),
            status=status,
            updated=len(updated),
            failed=len(failed),
        )
        return {"updated": updated, "failed": failed}

    async def review(
        self,
        admin: UserDoc,
        application_id: str,
        outcome: str,
        comments: Optional[str] = None,
    ) -> TaskApplicationDoc:
        try:
            verdict = ReviewOutcome(outcome)
        except ValueError:
            verdict = None
        if verdict not in REVIEW_TO_STATUS:
            raise ValidationError(
                "Review status must be accepted or needs_revision", field="status"
            )

        application = await self.get(application_id)
        if application.has_unreviewed_resubmission():
            application = await self._transition(
                application, ApplicationStatus.SUBMITTED
            )
        if application.status != ApplicationStatus.SUBMITTED.value:
            raise ValidationError("Only submitted applications can be reviewed")

        now = utc_now()
        review = AdminReview(
            reviewed_by=admin.id,
            reviewed_at=now,
            status=verdict,
            comments=comments,
            reviewed_submissions=[s.id for s in application.submissions],
        )
        fields: dict[str, Any] = {"admin_review": review.model_dump()}
        if verdict == ReviewOutcome.ACCEPTED:
            fields["actual_delivery"] = now
        updated = await self._transition(application, REVIEW_TO_STATUS[verdict], fields)

        if verdict == ReviewOutcome.ACCEPTED:
            task = await self._tasks.update_fields(
                application.task_id, {"status": TaskStatus.COMPLETED.value}
            )
            await self._archive(updated, task)

        log.info(
            "application_reviewed",
            application_id=str(application.id),
            admin_id=str(admin.id),
            outcome=verdict.value,
        )
        return updated

    async def _archive(
        self, application: TaskApplicationDoc, task: Optional[TaskDoc]
    ) -> None:
        user = await self._users.find_by_id(application.user_id)
        username = ""
        if user is not None:
            username = user.name or user.username or ""
        docs = [
            CompletedTaskDoc(
                user_id=application.user_id,
                username=username,
                task_id=application.task_id,
                task_name=task.title if task else "",
                file=CompletedFile(
                    filename=s.filename,
                    original_name=s.original_name,
                    path=s.path,
                    size=s.size,
                    mimetype=s.mimetype,
                    uploaded_at=s.uploaded_at,
                ),
                submitted_at=s.uploaded_at,
            ).to_mongo()
            for s in application.submissions
        ]
        await self._completed.insert_many(docs)
        log.info(
            "completed_task_archived",
            application_id=str(application.id),
            files=len(docs),
        )

    async def list_all(
        self,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[TaskApplicationDoc], int]:
        query: dict[str, Any] = {}
        if status and status != "all":
            query["status"] = _parse_status(status).value
        applications = await self._applications.find_many(
            query, skip=(page - 1) * limit, limit=limit, sort=[("applied_at", -1)]
        )
        return applications, await self._applications.count(query)

    async def get_submission_file(
        self, application_id: str, submission_id: str
    ) -> Submission:
        application = await self.get(application_id)
        sid = parse_object_id(submission_id)
        submission = application.find_submission(sid) if sid else None
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    async def find_submission_anywhere(self, submission_id: str) -> Submission:
        sid = _require_id(submission_id, "Submission not found")
        application = await self._applications.find_by_submission(sid)
        submission = application.find_submission(sid) if application else None
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission
