"""
Local-disk storage for uploaded files.

Layout under the upload root (served read-only at /uploads):

    submissions/<userId>-<applicationId>-<millis>-<n><ext>
    profile-images/<userId>-<millis><ext>

Stored paths are relative to the upload root. Every upload in a request is
validated and read into memory before the first byte is written, so a
rejected request leaves nothing on disk. If writing fails part-way, files
already written by that request are deleted again.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from fastapi import UploadFile

from config import UploadSettings
from errors import NotFoundError, StorageError, ValidationError
from shared.logging import get_logger

log = get_logger(__name__)

SUBMISSIONS_DIR = "submissions"
PROFILE_IMAGES_DIR = "profile-images"
PUBLIC_PREFIX = "/uploads"


@dataclass
class StoredFile:
    filename: str
    original_name: str
    path: str
    size: int
    mimetype: str


@dataclass
class _PendingFile:
    original_name: str
    extension: str
    mimetype: str
    data: bytes


def _megabytes(size: int) -> int:
    return size // (1024 * 1024)


def _millis() -> int:
    return int(time.time() * 1000)


def public_url(relative_path: str) -> str:
    return f"{PUBLIC_PREFIX}/{relative_path}"


class LocalStorage:
    def __init__(self, settings: UploadSettings) -> None:
        self.settings = settings
        self.root = Path(settings.upload_root)

    def ensure_directories(self) -> None:
        for name in (SUBMISSIONS_DIR, PROFILE_IMAGES_DIR):
            (self.root / name).mkdir(parents=True, exist_ok=True)

    def resolve(self, relative_path: str) -> Path:
        """Absolute path for a stored file, refusing anything outside the root."""
        root = self.root.resolve()
        candidate = (root / relative_path).resolve()
        if root not in candidate.parents:
            raise NotFoundError("File not found")
        return candidate

    # ── Validation ───────────────────────────────────────────────────────────

    async def _read_limited(
        self, upload: UploadFile, max_bytes: int, too_large: str
    ) -> bytes:
        data = await upload.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise ValidationError(too_large)
        return data

    def _check_submission_type(self, upload: UploadFile) -> str:
        original = upload.filename or ""
        extension = PurePosixPath(original).suffix.lower()
        if (
            upload.content_type not in self.settings.submission_allowed_mimetypes
            or extension not in self.settings.submission_allowed_extensions
        ):
            raise ValidationError(
                "Please upload only PDF or DOCX files",
                details={"filename": original},
            )
        return extension

    async def _collect_submissions(
        self, uploads: list[UploadFile]
    ) -> list[_PendingFile]:
        if not uploads:
            raise ValidationError("Please upload at least one file")
        max_files = self.settings.submission_max_files
        if len(uploads) > max_files:
            raise ValidationError(
                f"Too many files. Maximum {max_files} files allowed per submission"
            )

        max_size = self.settings.submission_max_file_size
        too_large = (
            f"File size too large. Maximum size is {_megabytes(max_size)}MB per file"
        )
        pending = []
        for upload in uploads:
            extension = self._check_submission_type(upload)
            data = await self._read_limited(upload, max_size, too_large)
            pending.append(
                _PendingFile(
                    original_name=upload.filename or "",
                    extension=extension,
                    mimetype=upload.content_type or "",
                    data=data,
                )
            )
        return pending

    # ── Writes ───────────────────────────────────────────────────────────────

    async def _write(self, relative_path: str, data: bytes) -> None:
        target = self.root / relative_path
        await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_bytes, data)

    async def save_submissions(
        self, uploads: list[UploadFile], user_id: str, application_id: str
    ) -> list[StoredFile]:
        pending = await self._collect_submissions(uploads)

        stamp = _millis()
        written: list[StoredFile] = []
        try:
            for index, item in enumerate(pending):
                filename = f"{user_id}-{application_id}-{stamp}-{index}{item.extension}"
                relative = f"{SUBMISSIONS_DIR}/{filename}"
                await self._write(relative, item.data)
                written.append(
                    StoredFile(
                        filename=filename,
                        original_name=item.original_name,
                        path=relative,
                        size=len(item.data),
                        mimetype=item.mimetype,
                    )
                )
        except OSError as e:
            await self.delete_many([f.path for f in written])
            log.error("submission_write_failed", error=str(e), files=len(pending))
            raise StorageError("Failed to submit files") from e

        log.info(
            "submission_files_stored",
            application_id=application_id,
            files=len(written),
            bytes=sum(f.size for f in written),
        )
        return written

    async def save_profile_image(
        self, upload: Optional[UploadFile], user_id: str
    ) -> StoredFile:
        if upload is None:
            raise ValidationError("No image file provided")
        if not (upload.content_type or "").startswith("image/"):
            raise ValidationError("Please upload only image files")

        max_size = self.settings.profile_image_max_file_size
        data = await self._read_limited(
            upload,
            max_size,
            f"File size too large. Maximum size is {_megabytes(max_size)}MB",
        )
        extension = PurePosixPath(upload.filename or "").suffix.lower()
        filename = f"{user_id}-{_millis()}{extension}"
        relative = f"{PROFILE_IMAGES_DIR}/{filename}"
        try:
            await self._write(relative, data)
        except OSError as e:
            log.error("profile_image_write_failed", error=str(e))
            raise StorageError("Failed to upload profile image") from e

        return StoredFile(
            filename=filename,
            original_name=upload.filename or "",
            path=relative,
            size=len(data),
            mimetype=upload.content_type or "",
        )

    async def delete(self, relative_path: str) -> bool:
        """Best-effort removal; a missing file is not an error."""
        try:
            target = self.resolve(relative_path)
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except (OSError, NotFoundError) as e:
            log.warning("stored_file_delete_failed", path=relative_path, error=str(e))
            return False
        return True

    async def delete_many(self, relative_paths: list[str]) -> None:
        for relative_path in relative_paths:
            await self.delete(relative_path)
