"""
Response DTOs for authentication and user views.

UserSummary       — {id, name, email, role} returned by register/login/me
AuthResponse      — POST /auth/register (201), POST /auth/login (200)
SessionResponse   — one entry of GET /auth/sessions
ProfileResponse   — GET/PUT /profile
AdminUserResponse — admin user listings; never includes sessions or hash
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.dto.responses.common import CamelModel
from schemas.models.user import SessionEntry, UserDoc
from shared.datetime_utils import whole_days_since


class UserSummary(CamelModel):
    id: str
    name: str
    email: str
    role: str
    username: Optional[str] = None

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserSummary":
        return cls(
            id=str(user.id),
            name=user.name,
            email=user.email,
            role=user.role,
            username=user.username,
        )


class AuthResponse(CamelModel):
    token: str
    user: UserSummary


class SessionResponse(CamelModel):
    id: str
    device: str
    ip_address: str
    created_at: datetime
    expires_at: datetime
    is_current_session: bool
    days_active: int

    @classmethod
    def from_entry(
        cls,
        entry: SessionEntry,
        current_token: str,
        now: Optional[datetime] = None,
    ) -> "SessionResponse":
        return cls(
            id=str(entry.id),
            device=entry.device,
            ip_address=entry.ip_address,
            created_at=entry.created_at,
            expires_at=entry.expires_at,
            is_current_session=entry.token == current_token,
            days_active=whole_days_since(entry.created_at, now),
        )


class ProfileResponse(CamelModel):
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    full_name: str = ""
    email: str
    skill: str = ""
    work_experience: str = ""
    phone: str = ""
    uses_whatsapp: bool = Field(default=False, alias="usesWhatsApp")
    website: str = ""
    bio: str = ""
    profile_image: Optional[str] = None
    profile_image_url: Optional[str] = None

    @classmethod
    def from_doc(cls, user: UserDoc, base_url: str = "") -> "ProfileResponse":
        image = user.profile_image
        if image and image.startswith(("http://", "https://")):
            image_url = image
        elif image:
            image_url = f"{base_url.rstrip('/')}{image}"
        else:
            image_url = None
        return cls(
            username=user.username or "",
            first_name=user.first_name or "",
            last_name=user.last_name or "",
            name=user.name or "",
            full_name=user.full_name or user.name or "",
            email=user.email,
            skill=user.skill or "",
            work_experience=user.work_experience or "",
            phone=user.phone or "",
            uses_whatsapp=user.uses_whatsapp,
            website=user.website or "",
            bio=user.bio or "",
            profile_image=image,
            profile_image_url=image_url,
        )


class AdminUserResponse(CamelModel):
    id: str
    name: str
    email: str
    username: Optional[str] = None
    role: str
    skill: Optional[str] = None
    phone: Optional[str] = None
    active_session_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, user: UserDoc) -> "AdminUserResponse":
        return cls(
            id=str(user.id),
            name=user.name,
            email=user.email,
            username=user.username,
            role=user.role,
            skill=user.skill,
            phone=user.phone,
            active_session_count=len(user.active_sessions),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
