"""
Request DTOs for authentication and profile endpoints.

RegisterRequest        — POST /auth/register
LoginRequest           — POST /auth/login
ProfileUpdateRequest   — PUT /profile
PasswordChangeRequest  — PUT /profile/password
"""

from __future__ import annotations

from typing import Optional

from pydantic import EmailStr, Field

from schemas.dto.responses.common import CamelModel


class RegisterRequest(CamelModel):
    """Request body for POST /auth/register."""

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(CamelModel):
    """Request body for POST /auth/login."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ProfileUpdateRequest(CamelModel):
    """Request body for PUT /profile. Omitted fields are left unchanged."""

    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    skill: Optional[str] = None
    work_experience: Optional[str] = None
    phone: Optional[str] = None
    uses_whatsapp: Optional[bool] = Field(default=None, alias="usesWhatsApp")
    website: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)


class PasswordChangeRequest(CamelModel):
    """Request body for PUT /profile/password."""

    old_password: str = ""
    new_password: str = ""
