"""Self-service profile reads and updates for the logged-in user."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import UploadFile

from errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from infrastructure.storage import PUBLIC_PREFIX, LocalStorage, public_url
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from shared.crypto import hash_password, verify_password
from shared.logging import get_logger

log = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def display_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    parts = [p for p in (first_name, last_name) if p]
    return " ".join(parts) if parts else None


class ProfileService:
    def __init__(self, users: UserRepository, storage: LocalStorage) -> None:
        self._users = users
        self._storage = storage

    async def _reload(self, user: UserDoc) -> UserDoc:
        fresh = await self._users.find_by_id(user.id)
        if fresh is None:
            raise NotFoundError("User not found")
        return fresh

    async def get_profile(self, user: UserDoc) -> UserDoc:
        return await self._reload(user)

    async def update_profile(self, user: UserDoc, changes: dict[str, Any]) -> UserDoc:
        changes = {k: v for k, v in changes.items() if v is not None}

        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
            if await self._users.exists(
                {"email": changes["email"], "_id": {"$ne": user.id}}
            ):
                raise ConflictError(
                    "Email is already in use by another account", field="email"
                )
        if "username" in changes:
            if await self._users.exists(
                {"username": changes["username"], "_id": {"$ne": user.id}}
            ):
                raise ConflictError("Username is already taken", field="username")

        name = display_name(changes.get("first_name"), changes.get("last_name"))
        if name:
            changes["name"] = name
            changes["full_name"] = name

        if not changes:
            return await self._reload(user)

        updated = await self._users.update_fields(user.id, changes)
        if updated is None:
            raise NotFoundError("User not found")
        log.info("profile_updated", user_id=str(user.id), fields=sorted(changes))
        return updated

    async def change_password(
        self, user: UserDoc, old_password: str, new_password: str
    ) -> None:
        if not old_password or not new_password:
            raise ValidationError("Please provide both old and new passwords")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="newPassword",
            )
        current = await self._reload(user)
        if not verify_password(old_password, current.password_hash):
            raise AuthenticationError("Current password is incorrect")

        await self._users.update_fields(
            user.id, {"password_hash": hash_password(new_password)}
        )
        log.info("password_changed", user_id=str(user.id))

    async def upload_image(
        self, user: UserDoc, upload: Optional[UploadFile]
    ) -> UserDoc:
        stored = await self._storage.save_profile_image(upload, str(user.id))
        current = await self._reload(user)

        updated = await self._users.update_fields(
            user.id, {"profile_image": public_url(stored.path)}
        )
        if updated is None:
            await self._storage.delete(stored.path)
            raise NotFoundError("User not found")

        old = current.profile_image
        if old and old.startswith(f"{PUBLIC_PREFIX}/"):
            await self._storage.delete(old[len(PUBLIC_PREFIX) + 1:])

        log.info("profile_image_updated", user_id=str(user.id), size=stored.size)
        return updated
