"""
Response DTOs for tasks and the completed-task archive.

TaskResponse          — one task in listings and GET /tasks/{id}
CompletedTaskResponse — one archive record
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.dto.responses.common import CamelModel
from schemas.models.completed_task import CompletedTaskDoc
from schemas.models.task import TaskDoc


class TaskResponse(CamelModel):
    id: str
    title: str
    description: str
    company: str
    category: str
    difficulty: str
    payout: float
    duration: int
    status: str
    requirements: list[str] = []
    skills: list[str] = []
    tags: list[str] = []
    client_id: str
    applicant_count: int
    assigned_to: Optional[str] = None
    deadline: Optional[datetime] = None
    days_until_deadline: Optional[int] = None
    featured: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, task: TaskDoc) -> "TaskResponse":
        return cls(
            id=str(task.id),
            title=task.title,
            description=task.description,
            company=task.company,
            category=task.category,
            difficulty=task.difficulty,
            payout=task.payout,
            duration=task.duration,
            status=task.status,
            requirements=task.requirements,
            skills=task.skills,
            tags=task.tags,
            client_id=str(task.client_id),
            applicant_count=task.applicant_count,
            assigned_to=str(task.assigned_to) if task.assigned_to else None,
            deadline=task.deadline,
            days_until_deadline=task.days_until_deadline,
            featured=task.featured,
            is_active=task.is_active,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class CompletedFileResponse(CamelModel):
    filename: str
    original_name: str
    size: int
    mimetype: str
    uploaded_at: Optional[datetime] = None


class CompletedTaskResponse(CamelModel):
    id: str
    user_id: str
    username: str
    task_id: str
    task_name: str
    file: CompletedFileResponse
    submitted_at: datetime

    @classmethod
    def from_doc(cls, doc: CompletedTaskDoc) -> "CompletedTaskResponse":
        return cls(
            id=str(doc.id),
            user_id=str(doc.user_id),
            username=doc.username,
            task_id=str(doc.task_id),
            task_name=doc.task_name,
            file=CompletedFileResponse(
                filename=doc.file.filename,
                original_name=doc.file.original_name,
                size=doc.file.size,
                mimetype=doc.file.mimetype,
                uploaded_at=doc.file.uploaded_at,
            ),
            submitted_at=doc.submitted_at,
        )
