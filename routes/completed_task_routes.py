"""
Archive of accepted deliverables (admin only).

GET /api/completed-tasks
GET /api/completed-tasks/{completed_id}
GET /api/completed-tasks/{completed_id}/download
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dependencies import get_admin_service, get_storage, require_admin
from infrastructure.storage import LocalStorage
from routes.admin_routes import file_download
from schemas.dto.responses.common import PaginationMeta, success
from schemas.dto.responses.task import CompletedTaskResponse
from services.admin_service import AdminService

router = APIRouter(
    prefix="/api/completed-tasks",
    tags=["completed-tasks"],
    dependencies=[Depends(require_admin)],
)


@router.get("")
async def list_completed(
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


@router.get("/{completed_id}")
async def get_completed(
    completed_id: str, admin: AdminService = Depends(get_admin_service)
) -> dict:
    item = await admin.get_completed(completed_id)
    return success({"completedTask": CompletedTaskResponse.from_doc(item)})


@router.get("/{completed_id}/download")
async def download_completed(
    completed_id: str,
    admin: AdminService = Depends(get_admin_service),
    storage: LocalStorage = Depends(get_storage),
):
    item = await admin.get_completed(completed_id)
    return file_download(
        storage, item.file.path, item.file.original_name, item.file.mimetype
    )
