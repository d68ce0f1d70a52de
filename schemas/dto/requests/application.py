"""
Request DTOs for application endpoints (applicant and admin sides).

ApplyRequest          — POST /applications/apply/{task_id}
ProgressUpdateRequest — PUT /applications/{id}/progress
StatusUpdateRequest   — PATCH /admin/applications/{id}/status
BulkStatusRequest     — PATCH /admin/applications/bulk-update
ReviewRequest         — PATCH /admin/applications/{id}/review
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from schemas.dto.responses.common import CamelModel


class ApplyRequest(CamelModel):
    message: Optional[str] = Field(default=None, max_length=500)


class ProgressUpdateRequest(CamelModel):
    # range is checked by the service so the error message matches the contract
    progress: Any = None


class StatusUpdateRequest(CamelModel):
    status: str
    feedback: Optional[str] = Field(default=None, max_length=1000)


class BulkStatusRequest(CamelModel):
    application_ids: list[str] = Field(min_length=1, max_length=100)
    status: str
    feedback: Optional[str] = Field(default=None, max_length=1000)


class ReviewRequest(CamelModel):
    status: str
    comments: Optional[str] = Field(default=None, max_length=1000)
