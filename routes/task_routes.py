"""
Public task catalogue.

GET /api/tasks               — filtered, sorted, paginated listing
GET /api/tasks/search        — same listing driven by ?q=
GET /api/tasks/categories    — categories with open-task payout stats
GET /api/tasks/difficulties  — difficulty levels with payout stats
GET /api/tasks/stats         — platform-wide task counts and payouts
GET /api/tasks/price-range   — min/max/average payout of open tasks
GET /api/tasks/{task_id}     — one task
"""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_task_service
from schemas.dto.responses.common import PaginationMeta, camelize, success
from schemas.dto.responses.task import TaskResponse
from services.task_service import TaskFilters, TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

CategoryFilter = Literal[
    "all", "frontend", "backend", "fullstack", "mobile", "design", "devops"
]
DifficultyFilter = Literal["all", "easy", "medium", "hard"]
StatusFilter = Literal["all", "open", "in_progress", "completed", "cancelled"]
SortField = Literal["createdAt", "updatedAt", "payout", "deadline", "difficulty", "title"]


def task_filters(
    category: Optional[CategoryFilter] = None,
    difficulty: Optional[DifficultyFilter] = None,
    search: Optional[str] = Query(default=None, min_length=1, max_length=100),
    min_price: Optional[float] = Query(default=None, alias="minPrice", ge=0, le=50000),
    max_price: Optional[float] = Query(default=None, alias="maxPrice", ge=0, le=50000),
    featured: Optional[bool] = None,
    status: StatusFilter = "open",
    sort_by: SortField = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1, le=1000),
    limit: int = Query(default=10, ge=1, le=100),
) -> TaskFilters:
    return TaskFilters(
        category=category,
        difficulty=difficulty,
        search=search.strip() if search else None,
        min_price=min_price,
        max_price=max_price,
        featured=featured,
        status=status,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


async def _listing(tasks: TaskService, filters: TaskFilters, message: str) -> dict:
    items, total = await tasks.list_tasks(filters)
    return success(
        {
            "tasks": [TaskResponse.from_doc(t) for t in items],
            "pagination": PaginationMeta.build(
                page=filters.page, limit=filters.limit, total=total
            ),
        },
        message=message,
    )


@router.get("")
async def list_tasks(
    filters: TaskFilters = Depends(task_filters),
    tasks: TaskService = Depends(get_task_service),
) -> dict:
    return await _listing(tasks, filters, "Tasks retrieved successfully")


@router.get("/search")
async def search_tasks(
    q: str = Query(min_length=1, max_length=100),
    filters: TaskFilters = Depends(task_filters),
    tasks: TaskService = Depends(get_task_service),
) -> dict:
    filters.search = q.strip()
    return await _listing(tasks, filters, "Search completed successfully")


@router.get("/categories")
async def categories(tasks: TaskService = Depends(get_task_service)) -> dict:
    return success({"categories": camelize(await tasks.categories())})


@router.get("/difficulties")
async def difficulties(tasks: TaskService = Depends(get_task_service)) -> dict:
    return success({"difficulties": camelize(await tasks.difficulties())})


@router.get("/stats")
async def stats(tasks: TaskService = Depends(get_task_service)) -> dict:
    return success(camelize(await tasks.stats()))


@router.get("/price-range")
async def price_range(tasks: TaskService = Depends(get_task_service)) -> dict:
    return success(await tasks.price_range())


@router.get("/{task_id}")
async def get_task(task_id: str, tasks: TaskService = Depends(get_task_service)) -> dict:
    task = await tasks.get_task(task_id)
    return success({"task": TaskResponse.from_doc(task)})
