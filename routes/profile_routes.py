"""
Profile of the logged-in user.

GET  /api/profile
PUT  /api/profile
PUT  /api/profile/password
POST /api/profile/image      (multipart "profileImage")
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from dependencies import get_profile_service, require_auth
from schemas.dto.requests.auth import PasswordChangeRequest, ProfileUpdateRequest
from schemas.dto.responses.auth import ProfileResponse
from schemas.dto.responses.common import success
from services.auth_gate import AuthContext
from services.profile_service import ProfileService

router = APIRouter(prefix="/api/profile", tags=["profile"])


def _base_url(request: Request) -> str:
    return str(request.base_url)


@router.get("")
async def get_profile(
    request: Request,
    ctx: AuthContext = Depends(require_auth),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict:
    user = await profiles.get_profile(ctx.user)
    return success({"profile": ProfileResponse.from_doc(user, _base_url(request))})


@router.put("")
async def update_profile(
    body: ProfileUpdateRequest,
    request: Request,
    ctx: AuthContext = Depends(require_auth),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict:
    user = await profiles.update_profile(ctx.user, body.model_dump(exclude_unset=True))
    return success(
        {"profile": ProfileResponse.from_doc(user, _base_url(request))},
        message="Profile updated successfully",
    )


@router.put("/password")
async def change_password(
    body: PasswordChangeRequest,
    ctx: AuthContext = Depends(require_auth),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict:
    await profiles.change_password(ctx.user, body.old_password, body.new_password)
    return success(message="Password updated successfully")


@router.post("/image")
async def upload_image(
    request: Request,
    image: Optional[UploadFile] = File(default=None, alias="profileImage"),
    ctx: AuthContext = Depends(require_auth),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict:
    user = await profiles.upload_image(ctx.user, image)
    return success(
        {"profile": ProfileResponse.from_doc(user, _base_url(request))},
        message="Profile image uploaded successfully",
    )
