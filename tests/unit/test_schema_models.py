"""Unit tests for MongoDB document models."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from errors import ValidationError
from schemas.models.application import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    AdminReview,
    ApplicationStatus,
    Submission,
    TaskApplicationDoc,
    can_transition,
    ensure_transition,
)
from schemas.models.base import MongoBaseModel, PyObjectId, parse_object_id
from schemas.models.task import TaskDoc, default_deadline
from schemas.models.user import SessionEntry, UserDoc


# ── Helpers ───────────────────────────────────────────────────────────────────

def now():
    return datetime.now(timezone.utc)


def oid():
    return ObjectId()


def _application(**overrides) -> TaskApplicationDoc:
    data = {"user_id": oid(), "task_id": oid(), "applied_at": now()}
    data.update(overrides)
    return TaskApplicationDoc(**data)


# ── PyObjectId ────────────────────────────────────────────────────────────────

class TestPyObjectId:
    def test_accepts_objectid_instance(self):
        o = oid()
        assert PyObjectId._validate(o) == o

    def test_accepts_valid_string(self):
        s = str(oid())
        result = PyObjectId._validate(s)
        assert isinstance(result, ObjectId)
        assert str(result) == s

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            PyObjectId._validate("not-an-objectid")


@pytest.mark.parametrize(
    "value, valid",
    [(str(ObjectId()), True), ("123", False), (None, False)],
    ids=["hex24", "short", "none"],
)
def test_parse_object_id(value, valid):
    assert (parse_object_id(value) is not None) is valid


# ── MongoBaseModel ─────────────────────────────────────────────────────────────

class TestMongoBaseModel:
    def test_from_mongo_returns_none_for_none(self):
        assert MongoBaseModel.from_mongo(None) is None

    def test_to_mongo_drops_none_id(self):
        assert "_id" not in MongoBaseModel().to_mongo()

    def test_to_mongo_keeps_set_id(self):
        o = oid()
        assert MongoBaseModel.model_validate({"_id": o}).to_mongo()["_id"] == o


# ── UserDoc / SessionEntry ────────────────────────────────────────────────────

class TestSessionEntry:
    def test_expired_at_boundary(self):
        t = now()
        entry = SessionEntry(token="t", created_at=t, expires_at=t)
        assert entry.is_expired(t) is True

    def test_not_expired_before(self):
        t = now()
        entry = SessionEntry(token="t", created_at=t, expires_at=t + timedelta(hours=1))
        assert entry.is_expired(t) is False

    def test_age_minutes(self):
        t = now()
        entry = SessionEntry(
            token="t", created_at=t - timedelta(minutes=90), expires_at=t
        )
        assert entry.age_minutes(t) == 90

    def test_session_ids_are_unique(self):
        t = now()
        a = SessionEntry(token="a", created_at=t, expires_at=t)
        b = SessionEntry(token="b", created_at=t, expires_at=t)
        assert a.id != b.id


class TestUserDoc:
    def test_find_session(self):
        t = now()
        entry = SessionEntry(token="abc", created_at=t, expires_at=t)
        user = UserDoc(
            name="A", email="a@example.com", password_hash="x", active_sessions=[entry]
        )
        assert user.find_session("abc") == entry
        assert user.find_session("nope") is None

    def test_is_admin(self):
        user = UserDoc(name="A", email="a@example.com", password_hash="x", role="admin")
        assert user.is_admin is True


# ── TaskDoc ───────────────────────────────────────────────────────────────────

class TestTaskDoc:
    def _make(self, **overrides):
        data = {
            "title": "API",
            "description": "Build an API",
            "category": "backend",
            "difficulty": "medium",
            "payout": 500,
            "client_id": oid(),
        }
        data.update(overrides)
        return TaskDoc(**data)

    def test_defaults(self):
        task = self._make()
        assert task.status == "open"
        assert task.duration == 7
        assert task.company == "Code and Cash"
        assert task.applicant_count == 0

    def test_enum_stored_as_value(self):
        assert self._make().to_mongo()["category"] == "backend"

    def test_payout_upper_bound(self):
        with pytest.raises(Exception):
            self._make(payout=10_001)

    def test_default_deadline(self):
        created = now()
        assert default_deadline(created, 3) == created + timedelta(days=3)

    def test_days_until_deadline_none_without_deadline(self):
        assert self._make().days_until_deadline is None


# ── Application state machine ─────────────────────────────────────────────────

class TestTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending", "accepted"),
            ("pending", "rejected"),
            ("pending", "cancelled"),
            ("accepted", "submitted"),
            ("accepted", "cancelled"),
            ("submitted", "completed"),
            ("submitted", "needs_revision"),
            ("needs_revision", "submitted"),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending", "completed"),
            ("pending", "submitted"),
            ("accepted", "completed"),
            ("needs_revision", "completed"),
        ],
    )
    def test_not_allowed(self, current, target):
        assert can_transition(current, target) is False

    def test_terminal_states_have_no_exits(self):
        assert TERMINAL_STATUSES == {
            ApplicationStatus.COMPLETED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.CANCELLED,
        }
        for status in TERMINAL_STATUSES:
            for target in ApplicationStatus:
                assert can_transition(status.value, target.value) is False

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(ApplicationStatus)

    def test_ensure_transition_error_message(self):
        with pytest.raises(ValidationError) as exc:
            ensure_transition("pending", "completed")
        assert exc.value.message == (
            "Cannot change application status from pending to completed"
        )
        assert exc.value.details == {"from": "pending", "to": "completed"}


class TestTaskApplicationDoc:
    def test_status_stored_as_plain_string(self):
        app = _application()
        assert app.status == "pending"
        assert app.to_mongo()["status"] == "pending"

    @pytest.mark.parametrize(
        "status, expected",
        [
            ("pending", False),
            ("accepted", True),
            ("submitted", False),
            ("needs_revision", True),
            ("completed", False),
            ("rejected", False),
            ("cancelled", False),
        ],
    )
    def test_can_submit_files(self, status, expected):
        assert _application(status=status).can_submit_files() is expected

    @pytest.mark.parametrize(
        "status, expected",
        [("pending", True), ("accepted", True), ("submitted", False), ("cancelled", False)],
    )
    def test_can_withdraw(self, status, expected):
        assert _application(status=status).can_withdraw() is expected

    @pytest.mark.parametrize("progress", [-1, 101])
    def test_progress_bounds(self, progress):
        with pytest.raises(Exception):
            _application(progress=progress)

    def test_submission_helpers(self):
        sub = Submission(
            filename="f.pdf",
            original_name="report.pdf",
            path="submissions/f.pdf",
            size=10,
            mimetype="application/pdf",
            uploaded_at=now(),
        )
        app = _application(submissions=[sub])
        assert app.submission_count == 1
        assert app.find_submission(sub.id) == sub
        assert app.find_submission(oid()) is None

    def test_days_since_application(self):
        app = _application(applied_at=now() - timedelta(days=2, hours=1))
        assert app.days_since_application == 3

    def test_days_until_deadline_uses_expected_delivery(self):
        app = _application(expected_delivery=now() + timedelta(days=4, hours=1))
        assert app.days_until_deadline == 5

    def test_admin_review_default_pending(self):
        assert AdminReview().status == "pending"

    def test_unreviewed_resubmission(self):
        first = Submission(
            filename="a.pdf", original_name="a.pdf", path="submissions/a.pdf",
            size=1, mimetype="application/pdf", uploaded_at=now(),
        )
        second = first.model_copy(update={"id": oid(), "filename": "b.pdf"})
        review = AdminReview(status="needs_revision", reviewed_submissions=[first.id])

        reviewed = _application(status="needs_revision", submissions=[first], admin_review=review)
        assert reviewed.has_unreviewed_resubmission() is False

        resubmitted = reviewed.model_copy(update={"submissions": [first, second]})
        assert resubmitted.has_unreviewed_resubmission() is True

        submitted = resubmitted.model_copy(update={"status": "submitted"})
        assert submitted.has_unreviewed_resubmission() is False
