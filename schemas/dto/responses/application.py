"""
Response DTOs for task applications.

SubmissionResponse   — one uploaded deliverable
ApplicationResponse  — application with derived fields and an optional task
ApplicationStatsResponse — GET /applications/my/stats
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.dto.responses.auth import UserSummary
from schemas.dto.responses.common import CamelModel
from schemas.dto.responses.task import TaskResponse
from schemas.models.application import Submission, TaskApplicationDoc
from schemas.models.task import TaskDoc
from schemas.models.user import UserDoc


class SubmissionResponse(CamelModel):
    id: str
    filename: str
    original_name: str
    size: int
    mimetype: str
    uploaded_at: datetime

    @classmethod
    def from_model(cls, submission: Submission) -> "SubmissionResponse":
        return cls(
            id=str(submission.id),
            filename=submission.filename,
            original_name=submission.original_name,
            size=submission.size,
            mimetype=submission.mimetype,
            uploaded_at=submission.uploaded_at,
        )


class AdminReviewResponse(CamelModel):
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    status: str
    comments: Optional[str] = None


class FeedbackResponse(CamelModel):
    rating: Optional[int] = None
    comment: Optional[str] = None
    provided_at: Optional[datetime] = None


class ApplicationResponse(CamelModel):
    id: str
    user_id: str
    task_id: str
    status: str
    applied_at: datetime
    message: Optional[str] = None
    progress: int
    submission_count: int
    submissions: list[SubmissionResponse] = []
    payment_status: str
    expected_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    days_since_application: int
    days_until_deadline: Optional[int] = None
    can_submit_files: bool
    admin_review: Optional[AdminReviewResponse] = None
    feedback: Optional[FeedbackResponse] = None
    task: Optional[TaskResponse] = None
    user: Optional[UserSummary] = None

    @classmethod
    def from_doc(
        cls,
        application: TaskApplicationDoc,
        task: Optional[TaskDoc] = None,
        user: Optional[UserDoc] = None,
    ) -> "ApplicationResponse":
        review = application.admin_review
        feedback = application.feedback
        return cls(
            id=str(application.id),
            user_id=str(application.user_id),
            task_id=str(application.task_id),
            status=application.status,
            applied_at=application.applied_at,
            message=application.message,
            progress=application.progress,
            submission_count=application.submission_count,
            submissions=[SubmissionResponse.from_model(s) for s in application.submissions],
            payment_status=application.payment_status,
            expected_delivery=application.expected_delivery,
            actual_delivery=application.actual_delivery,
            days_since_application=application.days_since_application,
            days_until_deadline=application.days_until_deadline,
            can_submit_files=application.can_submit_files(),
            admin_review=AdminReviewResponse(
                reviewed_by=str(review.reviewed_by) if review.reviewed_by else None,
                reviewed_at=review.reviewed_at,
                status=review.status,
                comments=review.comments,
            )
            if review
            else None,
            feedback=FeedbackResponse(**feedback.model_dump()) if feedback else None,
            task=TaskResponse.from_doc(task) if task else None,
            user=UserSummary.from_doc(user) if user else None,
        )


class ApplicationStatsResponse(CamelModel):
    total_applications: int
    pending_applications: int
    accepted_applications: int
    submitted_applications: int
    needs_revision_applications: int
    completed_applications: int
    rejected_applications: int
    cancelled_applications: int
    total_submissions: int
    average_progress: int
    success_rate: float
