"""
Administrator API. Every route requires an authenticated admin.

GET    /api/admin/check-access
GET    /api/admin/stats
GET    /api/admin/users                       PUT/DELETE /api/admin/users/{id}
GET    /api/admin/users/{id}/submissions     (also /api/admin/user-submissions/{id})
GET    /api/admin/task-applications
GET    /api/admin/tasks                       POST /api/admin/tasks
GET    /api/admin/tasks/{id}                  PUT/DELETE /api/admin/tasks/{id}
GET    /api/admin/applications                GET /api/admin/applications/{id}
PATCH  /api/admin/applications/bulk-update
PATCH  /api/admin/applications/{id}/status
PATCH  /api/admin/applications/{id}/review
GET    /api/admin/applications/{id}/submissions/{sid}/download
GET    /api/admin/submissions
GET    /api/admin/submissions/{sid}/download
GET    /api/admin/completed-tasks
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from dependencies import (
    get_admin_service,
    get_application_service,
    get_storage,
    get_task_service,
    require_admin,
)
from errors import NotFoundError
from infrastructure.storage import LocalStorage
from schemas.dto.requests.admin import TaskCreateRequest, TaskUpdateRequest, UserUpdateRequest
from schemas.dto.requests.application import (
    BulkStatusRequest,
    ReviewRequest,
    StatusUpdateRequest,
)
from schemas.dto.responses.application import ApplicationResponse
from schemas.dto.responses.auth import AdminUserResponse, UserSummary
from schemas.dto.responses.common import PaginationMeta, camelize, success
from schemas.dto.responses.task import CompletedTaskResponse, TaskResponse
from schemas.models.application import ApplicationStatus, TaskApplicationDoc
from services.admin_service import AdminService
from services.application_service import ApplicationService
from services.auth_gate import AuthContext
from services.task_service import TaskService

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


def file_download(storage: LocalStorage, relative_path: str, filename: str, mimetype: str):
    """Stream a stored upload back as an attachment."""
    path = storage.resolve(relative_path)
    if not path.is_file():
        raise NotFoundError("File not found")
    return FileResponse(path, media_type=mimetype or None, filename=filename)


async def _application_page(
    applications: list[TaskApplicationDoc],
    tasks: TaskService,
    admin: AdminService,
) -> list[ApplicationResponse]:
    task_map = await tasks.find_by_ids([a.task_id for a in applications])
    user_map = await admin.users_by_ids([a.user_id for a in applications])
    return [
        ApplicationResponse.from_doc(a, task_map.get(a.task_id), user_map.get(a.user_id))
        for a in applications
    ]


@router.get("/check-access")
async def check_access(ctx: AuthContext = Depends(require_admin)) -> dict:
    return success(
        {"isAdmin": True, "user": UserSummary.from_doc(ctx.user)},
        message="Admin access granted",
    )


@router.get("/stats")
async def stats(admin: AdminService = Depends(get_admin_service)) -> dict:
    return success({"stats": camelize(await admin.stats())})


# ── Users ────────────────────────────────────────────────────────────────────


@router.get("/users")
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminService = Depends(get_admin_service),
) -> dict:
    users, total = await admin.list_users(page=page, limit=limit)
    return success(
        {
            "users": [AdminUserResponse.from_doc(u) for u in users],
            "pagination": PaginationMeta.build(page=page, limit=limit, total=total),
        }
    )


@router.get("/users/{user_id}")
async def get_user(user_id: str, admin: AdminService = Depends(get_admin_service)) -> dict:
    return success({"user": AdminUserResponse.from_doc(await admin.get_user(user_id))})


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    admin: AdminService = Depends(get_admin_service),
) -> dict:
    user = await admin.update_user(user_id, body.model_dump(exclude_unset=True))
    return success(
        {"user": AdminUserResponse.from_doc(user)}, message="User updated successfully"
    )


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    ctx: AuthContext = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
) -> dict:
    await admin.delete_user(ctx.user, user_id)
    return success(message="User deleted successfully")


@router.get("/users/{user_id}/submissions")
@router.get("/user-submissions/{user_id}")
async def user_submissions(
    user_id: str,
    admin: AdminService = Depends(get_admin_service),
    tasks: TaskService = Depends(get_task_service),
) -> dict:
    user, applications = await admin.user_applications(user_id)
    task_map = await tasks.find_by_ids([a.task_id for a in applications])
    return success(
        {
            "user": AdminUserResponse.from_doc(user),
            "applications": [
                ApplicationResponse.from_doc(a, task_map.get(a.task_id))
                for a in applications
            ],
        }
    )


@router.get("/task-applications")
async def task_applications(admin: AdminService = Depends(get_admin_service)) -> dict:
    rows = await admin.task_applications()
    return success({"applications": camelize(rows), "total": len(rows)})


# ── Tasks ────────────────────────────────────────────────────────────────────


@router.get("/tasks")
async def list_tasks(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    tasks: TaskService = Depends(get_task_service),
) -> dict:
    items, total = await tasks.list_all(page=page, limit=limit)
    return success(
        {
            "tasks": [TaskResponse.from_doc(t) for t in items],
            "pagination": PaginationMeta.build(page=page, limit=limit, total=total),
        }
    )


@router.post("/tasks", status_code=201)
async def create_task(
    body: TaskCreateRequest,
    ctx: AuthContext = Depends(require_admin),
    tasks: TaskService = Depends(get_task_service),
) -> dict:
    task = await tasks.create_task(ctx.user, body.model_dump(exclude_unset=True))
    return success(
        {"task": TaskResponse.from_doc(task)}, message="Task created successfully"
    )


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, tasks: TaskService = Depends(get_task_service)) -> dict:
    return success({"task": TaskResponse.from_doc(await tasks.get_task(task_id))})


@router.put("/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdateRequest,
    tasks: TaskService = Depends(get_task_service),
) -> dict:
    task = await tasks.update_task(task_id, body.model_dump(exclude_unset=True))
    return success(
        {"task": TaskResponse.from_doc(task)}, message="Task updated successfully"
    )


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, tasks: TaskService = Depends(get_task_service)) -> dict:
    await tasks.delete_task(task_id)
    return success(message="Task deleted successfully")


# ── Applications ─────────────────────────────────────────────────────────────


@router.get("/applications")
async def list_applications(
    status: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    applications: ApplicationService = Depends(get_application_service),
    tasks: TaskService = Depends(get_task_service),
    admin: AdminService = Depends(get_admin_service),
) -> dict:
    items, total = await applications.list_all(status=status, page=page, limit=limit)
    return success(
        {
            "applications": await _application_page(items, tasks, admin),
            "pagination": PaginationMeta.build(page=page, limit=limit, total=total),
        }
    )


@router.patch("/applications/bulk-update")
async def bulk_update(
    body: BulkStatusRequest,
    ctx: AuthContext = Depends(require_admin),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    result = await applications.bulk_set_status(
        ctx.user, body.application_ids, body.status, body.feedback
    )
    return success(
        {
            "updatedCount": len(result["updated"]),
            "updated": result["updated"],
            "failed": result["failed"],
        },
        message=f"{len(result['updated'])} applications updated",
    )


@router.get("/applications/{application_id}")
async def get_application(
    application_id: str,
    applications: ApplicationService = Depends(get_application_service),
    tasks: TaskService = Depends(get_task_service),
    admin: AdminService = Depends(get_admin_service),
) -> dict:
    application = await applications.get(application_id)
    [item] = await _application_page([application], tasks, admin)
    return success({"application": item})


@router.patch("/applications/{application_id}/status")
async def set_application_status(
    application_id: str,
    body: StatusUpdateRequest,
    ctx: AuthContext = Depends(require_admin),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    application = await applications.set_status(
        ctx.user, application_id, body.status, body.feedback
    )
    return success(
        {"application": ApplicationResponse.from_doc(application)},
        message=f"Application {application.status} successfully",
    )


@router.patch("/applications/{application_id}/review")
async def review_application(
    application_id: str,
    body: ReviewRequest,
    ctx: AuthContext = Depends(require_admin),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    application = await applications.review(
        ctx.user, application_id, body.status, body.comments
    )
    return success(
        {"application": ApplicationResponse.from_doc(application)},
        message="Submission reviewed successfully",
    )


@router.get("/applications/{application_id}/submissions/{submission_id}/download")
async def download_application_submission(
    application_id: str,
    submission_id: str,
    applications: ApplicationService = Depends(get_application_service),
    storage: LocalStorage = Depends(get_storage),
):
    submission = await applications.get_submission_file(application_id, submission_id)
    return file_download(
        storage, submission.path, submission.original_name, submission.mimetype
    )


# ── Submissions & archive ────────────────────────────────────────────────────


@router.get("/submissions")
async def list_submissions(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    applications: ApplicationService = Depends(get_application_service),
    tasks: TaskService = Depends(get_task_service),
    admin: AdminService = Depends(get_admin_service),
) -> dict:
    items, total = await applications.list_all(
        status=ApplicationStatus.SUBMITTED.value, page=page, limit=limit
    )
    return success(
        {
            "submissions": await _application_page(items, tasks, admin),
            "pagination": PaginationMeta.build(page=page, limit=limit, total=total),
        }
    )


@router.get("/submissions/{submission_id}/download")
async def download_submission(
    submission_id: str,
    applications: ApplicationService = Depends(get_application_service),
    storage: LocalStorage = Depends(get_storage),
):
    submission = await applications.find_submission_anywhere(submission_id)
    return file_download(
        storage, submission.path, submission.original_name, submission.mimetype
    )


@router.get("/completed-tasks")
async def list_completed_tasks(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminService = Depends(get_admin_service),
) -> dict:
    items, total = await admin.list_completed(page=page, limit=limit)
    return success(
        {
            "completedTasks": [CompletedTaskResponse.from_doc(c) for c in items],
            "pagination": PaginationMeta.build(page=page, limit=limit, total=total),
        }
    )
