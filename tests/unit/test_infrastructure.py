"""Unit tests for the local upload storage."""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from config import UploadSettings
from errors import NotFoundError, StorageError, ValidationError
from infrastructure.storage import (
    PROFILE_IMAGES_DIR,
    SUBMISSIONS_DIR,
    LocalStorage,
    public_url,
)

PDF = "application/pdf"


# ── Helpers ───────────────────────────────────────────────────────────────────


def _upload(name: str, content_type: str, data: bytes = b"%PDF-1.4") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def store(tmp_path) -> LocalStorage:
    s = LocalStorage(
        UploadSettings(
            upload_root=str(tmp_path / "uploads"),
            submission_max_file_size=64,
            profile_image_max_file_size=32,
        )
    )
    s.ensure_directories()
    return s


# ── Submissions ───────────────────────────────────────────────────────────────


class TestSaveSubmissions:
    async def test_stores_files_with_naming_scheme(self, store):
        stored = await store.save_submissions(
            [_upload("Report.PDF", PDF), _upload("notes.pdf", PDF)], "u1", "a1"
        )
        assert len(stored) == 2
        first = stored[0]
        assert first.filename.startswith("u1-a1-")
        assert first.filename.endswith("-0.pdf")
        assert first.path == f"{SUBMISSIONS_DIR}/{first.filename}"
        assert first.original_name == "Report.PDF"
        assert first.size == len(b"%PDF-1.4")
        assert (store.root / first.path).read_bytes() == b"%PDF-1.4"

    async def test_no_files(self, store):
        with pytest.raises(ValidationError, match="at least one file"):
            await store.save_submissions([], "u1", "a1")

    async def test_too_many_files(self, store):
        uploads = [_upload(f"f{i}.pdf", PDF) for i in range(6)]
        with pytest.raises(ValidationError, match="Maximum 5 files"):
            await store.save_submissions(uploads, "u1", "a1")

    @pytest.mark.parametrize(
        "name, content_type",
        [("image.png", "image/png"), ("fake.pdf", "text/plain"), ("doc.txt", PDF)],
        ids=["wrong_both", "wrong_mimetype", "wrong_extension"],
    )
    async def test_wrong_type(self, store, name, content_type):
        with pytest.raises(ValidationError, match="PDF or DOCX"):
            await store.save_submissions([_upload(name, content_type)], "u1", "a1")

    async def test_too_large(self, store):
        with pytest.raises(ValidationError, match="File size too large"):
            await store.save_submissions(
                [_upload("big.pdf", PDF, b"x" * 65)], "u1", "a1"
            )

    async def test_rejected_batch_writes_nothing(self, store):
        uploads = [_upload("ok.pdf", PDF), _upload("bad.png", "image/png")]
        with pytest.raises(ValidationError):
            await store.save_submissions(uploads, "u1", "a1")
        assert list((store.root / SUBMISSIONS_DIR).iterdir()) == []

    async def test_write_failure_cleans_up(self, store, mocker):
        calls = {"n": 0}
        original = store._write

        async def flaky(relative, data):
            calls["n"] += 1
            if calls["n"] == 2:
                raise OSError("disk full")
            await original(relative, data)

        mocker.patch.object(store, "_write", side_effect=flaky)
        with pytest.raises(StorageError, match="Failed to submit files"):
            await store.save_submissions(
                [_upload("a.pdf", PDF), _upload("b.pdf", PDF)], "u1", "a1"
            )
        assert list((store.root / SUBMISSIONS_DIR).iterdir()) == []


# ── Profile images ────────────────────────────────────────────────────────────


class TestSaveProfileImage:
    async def test_stores_image(self, store):
        stored = await store.save_profile_image(
            _upload("me.PNG", "image/png", b"png"), "u1"
        )
        assert stored.path.startswith(f"{PROFILE_IMAGES_DIR}/u1-")
        assert stored.filename.endswith(".png")
        assert public_url(stored.path) == f"/uploads/{stored.path}"

    async def test_missing(self, store):
        with pytest.raises(ValidationError, match="No image file provided"):
            await store.save_profile_image(None, "u1")

    async def test_not_an_image(self, store):
        with pytest.raises(ValidationError, match="only image files"):
            await store.save_profile_image(_upload("cv.pdf", PDF), "u1")

    async def test_too_large(self, store):
        with pytest.raises(ValidationError, match="Maximum size"):
            await store.save_profile_image(
                _upload("me.png", "image/png", b"x" * 33), "u1"
            )


# ── Paths ─────────────────────────────────────────────────────────────────────


class TestResolve:
    def test_inside_root(self, store):
        path = store.resolve(f"{SUBMISSIONS_DIR}/x.pdf")
        assert path.name == "x.pdf"

    @pytest.mark.parametrize("relative", ["../secret.txt", "/etc/passwd"])
    def test_outside_root_rejected(self, store, relative):
        with pytest.raises(NotFoundError):
            store.resolve(relative)


async def test_delete_missing_file_is_ok(store):
    assert await store.delete(f"{SUBMISSIONS_DIR}/gone.pdf") is True


async def test_delete_outside_root_returns_false(store):
    assert await store.delete("../../etc/passwd") is False
