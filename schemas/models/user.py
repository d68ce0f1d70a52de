"""
User document model.

Maps to the `users` MongoDB collection.

active_sessions is an embedded, insertion-ordered list of SessionEntry; the
oldest entry is first. It is only mutated through the atomic operators in
UserRepository ($push with $slice, $pull, $set) so concurrent logins, logouts
and janitor sweeps never overwrite each other's changes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from schemas.models.base import MongoBaseModel, PyObjectId
from shared.datetime_utils import ensure_utc, utc_now

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class SessionEntry(BaseModel):
    """One authenticated login bound to one issued token."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    token: str
    created_at: datetime
    expires_at: datetime
    device: str = "Unknown device"
    ip_address: str = "Unknown IP"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        return ensure_utc(self.expires_at) <= now

    def age_minutes(self, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        return round((now - ensure_utc(self.created_at)).total_seconds() / 60)


class UserDoc(MongoBaseModel):
    """
    Document model for the `users` collection.

    role values: "user", "admin"
    """

    name: str
    email: str
    password_hash: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    skill: Optional[str] = None
    work_experience: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = None
    uses_whatsapp: bool = False
    website: Optional[str] = None
    profile_image: Optional[str] = None

    role: str = ROLE_USER
    active_sessions: list[SessionEntry] = []

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def find_session(self, token: str) -> Optional[SessionEntry]:
        for session in self.active_sessions:
            if session.token == token:
                return session
        return None
