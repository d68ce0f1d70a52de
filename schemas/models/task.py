"""
Task document model.

Maps to the `tasks` MongoDB collection.

applicants is a set of user ids (maintained with $addToSet / $pull).
deadline defaults to created_at + duration days when not supplied.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, PyObjectId
from shared.datetime_utils import days_until


class TaskCategory(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    FULLSTACK = "fullstack"
    MOBILE = "mobile"
    DESIGN = "design"
    DEVOPS = "devops"


class TaskDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


PAYOUT_MIN = 0
PAYOUT_MAX = 10_000


class TaskDoc(MongoBaseModel):
    """Document model for the `tasks` collection."""

    title: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    company: str = Field(default="Code and Cash", max_length=50)
    category: TaskCategory
    difficulty: TaskDifficulty
    payout: float = Field(ge=PAYOUT_MIN, le=PAYOUT_MAX)
    duration: int = Field(default=7, ge=1, le=365)
    status: TaskStatus = TaskStatus.OPEN
    requirements: list[str] = []
    skills: list[str] = []
    tags: list[str] = []

    client_id: PyObjectId
    applicants: list[PyObjectId] = []
    assigned_to: Optional[PyObjectId] = None

    deadline: Optional[datetime] = None
    featured: bool = False
    is_active: bool = True

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def applicant_count(self) -> int:
        return len(self.applicants)

    @property
    def days_until_deadline(self) -> Optional[int]:
        if self.deadline is None:
            return None
        return days_until(self.deadline)


def default_deadline(created_at: datetime, duration_days: int) -> datetime:
    return created_at + timedelta(days=duration_days)
