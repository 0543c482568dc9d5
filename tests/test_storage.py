import io
from pathlib import Path

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from taskapi.exceptions import ValidationError
from taskapi.storage import FileStorage


def _upload(name: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        io.BytesIO(content),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


@pytest.mark.parametrize(
    "name, mime_type, allowed",
    [
        ("photo.png", "image/png", True),
        ("photo.JPG", "image/jpeg", True),
        ("notes.txt", "text/plain", True),
        ("archive.zip", "application/zip", True),
        ("report.pdf", "application/pdf", True),
        ("run.exe", "application/x-msdownload", False),
        ("photo.png.exe", "image/png", False),
        ("noextension", "text/plain", False),
        ("notes.txt", None, False),
    ],
)
def test_is_allowed(file_storage, name, mime_type, allowed):
    assert file_storage.is_allowed(name, mime_type) is allowed


async def test_save_generates_unique_names(file_storage):
    first = await file_storage.save(_upload("notes.txt", b"one", "text/plain"))
    second = await file_storage.save(_upload("notes.txt", b"two", "text/plain"))

    assert first.filename != second.filename
    assert first.filename.endswith("-notes.txt")
    assert first.file_size == 3
    assert Path(first.file_path).read_bytes() == b"one"


async def test_save_strips_directories_from_name(file_storage):
    stored = await file_storage.save(_upload("../../etc/notes.txt", b"x", "text/plain"))

    assert stored.original_name == "notes.txt"
    assert file_storage.exists(stored.file_path)


async def test_oversized_upload_is_rejected_and_removed(tmp_path):
    storage = FileStorage(tmp_path / "small", max_bytes=4, allowed_types="txt")

    with pytest.raises(ValidationError):
        await storage.save(_upload("notes.txt", b"too large", "text/plain"))

    assert list((tmp_path / "small").iterdir()) == []


def test_remove_tolerates_missing_file(file_storage):
    assert file_storage.remove(str(file_storage.upload_dir / "gone.txt")) is False
