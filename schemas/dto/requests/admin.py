"""
Request DTOs for admin task and user management.

TaskCreateRequest — POST /admin/tasks
TaskUpdateRequest — PUT /admin/tasks/{id}
UserUpdateRequest — PUT /admin/users/{id}
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from schemas.dto.responses.common import CamelModel
from schemas.models.task import (
    PAYOUT_MAX,
    PAYOUT_MIN,
    TaskCategory,
    TaskDifficulty,
    TaskStatus,
)


class TaskCreateRequest(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=1000)
    category: TaskCategory
    difficulty: TaskDifficulty
    payout: float = Field(ge=PAYOUT_MIN, le=PAYOUT_MAX)
    company: Optional[str] = Field(default=None, max_length=50)
    duration: Optional[int] = Field(default=None, ge=1, le=365)
    status: Optional[TaskStatus] = None
    deadline: Optional[datetime] = None
    requirements: Optional[list[str]] = None
    skills: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    featured: Optional[bool] = None


class TaskUpdateRequest(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    category: Optional[TaskCategory] = None
    difficulty: Optional[TaskDifficulty] = None
    payout: Optional[float] = Field(default=None, ge=PAYOUT_MIN, le=PAYOUT_MAX)
    company: Optional[str] = Field(default=None, max_length=50)
    duration: Optional[int] = Field(default=None, ge=1, le=365)
    status: Optional[TaskStatus] = None
    deadline: Optional[datetime] = None
    requirements: Optional[list[str]] = None
    skills: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    featured: Optional[bool] = None
    is_active: Optional[bool] = None


class UserUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    role: Optional[Literal["user", "admin"]] = None
    skill: Optional[str] = None
    phone: Optional[str] = None
