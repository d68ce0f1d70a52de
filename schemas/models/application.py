"""
Task application document model and its status state machine.

Maps to the `task_applications` MongoDB collection, unique on
(user_id, task_id).

Lifecycle:

    pending        → accepted | rejected | cancelled
    accepted       → submitted | cancelled
    submitted      → completed | needs_revision
    needs_revision → submitted
    completed, rejected, cancelled are terminal

Every status change in the service layer goes through ensure_transition(), so
an illegal move is rejected in one place instead of by scattered checks.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from errors import ValidationError
from schemas.models.base import MongoBaseModel, PyObjectId
from shared.datetime_utils import days_since, days_until


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    NEEDS_REVISION = "needs_revision"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset(
        {
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.CANCELLED,
        }
    ),
    ApplicationStatus.ACCEPTED: frozenset(
        {ApplicationStatus.SUBMITTED, ApplicationStatus.CANCELLED}
    ),
    ApplicationStatus.SUBMITTED: frozenset(
        {ApplicationStatus.COMPLETED, ApplicationStatus.NEEDS_REVISION}
    ),
    ApplicationStatus.NEEDS_REVISION: frozenset({ApplicationStatus.SUBMITTED}),
    ApplicationStatus.COMPLETED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)
SUBMITTABLE_STATUSES = frozenset(
    {ApplicationStatus.ACCEPTED, ApplicationStatus.NEEDS_REVISION}
)
WITHDRAWABLE_STATUSES = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.ACCEPTED}
)


def can_transition(current: str, target: str) -> bool:
    return ApplicationStatus(target) in ALLOWED_TRANSITIONS[ApplicationStatus(current)]


def ensure_transition(current: str, target: str) -> None:
    """Raise ValidationError unless current → target is a legal move."""
    if not can_transition(current, target):
        source = ApplicationStatus(current).value
        dest = ApplicationStatus(target).value
        raise ValidationError(
            f"Cannot change application status from {source} to {dest}",
            details={"from": source, "to": dest},
        )


class ReviewOutcome(str, Enum):
    """Admin verdict on a submission (distinct from ApplicationStatus)."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    NEEDS_REVISION = "needs_revision"


REVIEW_TO_STATUS = {
    ReviewOutcome.ACCEPTED: ApplicationStatus.COMPLETED,
    ReviewOutcome.NEEDS_REVISION: ApplicationStatus.NEEDS_REVISION,
}


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    DISPUTED = "disputed"


class Submission(BaseModel):
    """One uploaded deliverable file."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    filename: str
    original_name: str
    path: str
    size: int
    mimetype: str
    uploaded_at: datetime


class AdminReview(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_default=True,
    )

    reviewed_by: Optional[PyObjectId] = None
    reviewed_at: Optional[datetime] = None
    status: ReviewOutcome = ReviewOutcome.PENDING
    comments: Optional[str] = Field(default=None, max_length=1000)
    # submissions the reviewer saw; later uploads make a resubmission
    reviewed_submissions: list[PyObjectId] = []


class Feedback(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=500)
    provided_at: Optional[datetime] = None


class TaskApplicationDoc(MongoBaseModel):
    """Document model for the `task_applications` collection."""

    user_id: PyObjectId
    task_id: PyObjectId
    status: ApplicationStatus = ApplicationStatus.PENDING
    applied_at: datetime
    message: Optional[str] = Field(default=None, max_length=500)
    submissions: list[Submission] = []
    progress: int = Field(default=0, ge=0, le=100)
    admin_review: Optional[AdminReview] = None
    feedback: Optional[Feedback] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_date: Optional[datetime] = None
    expected_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def submission_count(self) -> int:
        return len(self.submissions)

    @property
    def days_since_application(self) -> int:
        return days_since(self.applied_at)

    @property
    def days_until_deadline(self) -> Optional[int]:
        if self.expected_delivery is None:
            return None
        return days_until(self.expected_delivery)

    def can_submit_files(self) -> bool:
        return ApplicationStatus(self.status) in SUBMITTABLE_STATUSES

    def can_withdraw(self) -> bool:
        return ApplicationStatus(self.status) in WITHDRAWABLE_STATUSES

    def find_submission(self, submission_id: ObjectId) -> Optional[Submission]:
        for submission in self.submissions:
            if submission.id == submission_id:
                return submission
        return None

    def has_unreviewed_resubmission(self) -> bool:
        """True when files arrived after the last needs_revision review."""
        if self.status != ApplicationStatus.NEEDS_REVISION.value:
            return False
        seen = set()
        if self.admin_review is not None:
            seen = set(self.admin_review.reviewed_submissions)
        return any(s.id not in seen for s in self.submissions)
