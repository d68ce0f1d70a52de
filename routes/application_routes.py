"""
Applicant side of the application workflow.

POST   /api/applications/apply/{task_id}
GET    /api/applications/my
GET    /api/applications/my/stats
GET    /api/applications/{application_id}
PUT    /api/applications/{application_id}/progress
DELETE /api/applications/{application_id}/withdraw
POST   /api/applications/{application_id}/submit        (multipart "files")
DELETE /api/applications/{application_id}/submissions/{submission_id}
"""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from dependencies import get_application_service, require_auth
from schemas.dto.requests.application import ApplyRequest, ProgressUpdateRequest
from schemas.dto.responses.application import (
    ApplicationResponse,
    ApplicationStatsResponse,
    SubmissionResponse,
)
from schemas.dto.responses.common import PaginationMeta, success
from services.application_service import ApplicationService
from services.auth_gate import AuthContext

router = APIRouter(prefix="/api/applications", tags=["applications"])


@router.post("/apply/{task_id}", status_code=201)
async def apply(
    task_id: str,
    body: Optional[ApplyRequest] = None,
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    message = body.message if body else None
    application = await applications.apply(ctx.user, task_id, message)
    return success(
        {"application": ApplicationResponse.from_doc(application)},
        message="Application submitted successfully",
    )


@router.get("/my")
async def my_applications(
    status: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="appliedAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    items, tasks, total = await applications.list_mine(
        ctx.user,
        status=status,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success(
        {
            "applications": [
                ApplicationResponse.from_doc(a, tasks.get(a.task_id)) for a in items
            ],
            "pagination": PaginationMeta.build(page=page, limit=limit, total=total),
        }
    )


@router.get("/my/stats")
async def my_stats(
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    stats = await applications.stats_mine(ctx.user)
    return success({"stats": ApplicationStatsResponse(**stats)})


@router.get("/{application_id}")
async def get_application(
    application_id: str,
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    application, task = await applications.get_mine(ctx.user, application_id)
    return success({"application": ApplicationResponse.from_doc(application, task)})


@router.put("/{application_id}/progress")
async def update_progress(
    application_id: str,
    body: ProgressUpdateRequest,
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    application = await applications.update_progress(
        ctx.user, application_id, body.progress
    )
    return success(
        {"application": ApplicationResponse.from_doc(application)},
        message="Progress updated successfully",
    )


@router.delete("/{application_id}/withdraw")
async def withdraw(
    application_id: str,
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    application = await applications.withdraw(ctx.user, application_id)
    return success(
        {"application": ApplicationResponse.from_doc(application)},
        message="Application withdrawn successfully",
    )


@router.post("/{application_id}/submit")
async def submit_files(
    application_id: str,
    files: Optional[list[UploadFile]] = File(default=None),
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    application, submissions = await applications.submit_files(
        ctx.user, application_id, files or []
    )
    return success(
        {
            "application": ApplicationResponse.from_doc(application),
            "submissions": [SubmissionResponse.from_model(s) for s in submissions],
        },
        message="Files submitted successfully",
    )


@router.delete("/{application_id}/submissions/{submission_id}")
async def delete_submission(
    application_id: str,
    submission_id: str,
    ctx: AuthContext = Depends(require_auth),
    applications: ApplicationService = Depends(get_application_service),
) -> dict:
    application = await applications.delete_submission(
        ctx.user, application_id, submission_id
    )
    return success(
        {"application": ApplicationResponse.from_doc(application)},
        message="Submission deleted successfully",
    )
