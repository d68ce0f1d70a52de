"""
Completed task document model.

Maps to the `completed_tasks` MongoDB collection: a denormalized archive
record written per submitted file once an application is completed, kept for
admin reporting and downloads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from schemas.models.base import MongoBaseModel, PyObjectId


class CompletedFile(BaseModel):
    filename: str
    original_name: str
    path: str
    size: int
    mimetype: str
    uploaded_at: Optional[datetime] = None


class CompletedTaskDoc(MongoBaseModel):
    """Document model for the `completed_tasks` collection."""

    user_id: PyObjectId
    username: str
    task_id: PyObjectId
    task_name: str
    file: CompletedFile
    submitted_at: datetime
