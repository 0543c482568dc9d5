import logging
import mimetypes
import os
import random
import re
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from taskapi.exceptions import ValidationError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass
class StoredFile:
    filename: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str | None


class FileStorage:
    """Attachment files on local disk, one flat directory."""

    def __init__(self, upload_dir: str | Path, max_bytes: int, allowed_types: str):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes
        self._allowed = re.compile(allowed_types)

    def ensure_directory(self):
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def is_allowed(self, original_name: str, mime_type: str | None) -> bool:
        """
        The extension must be one of the allowed types, and the declared mime
        type must either name an allowed type or be the standard type for
        that extension (text/plain for .txt).
        """
        extension = Path(original_name).suffix.lower().lstrip(".")
        if not extension or not self._allowed.fullmatch(extension) or not mime_type:
            return False
        guessed, _ = mimetypes.guess_type(original_name)
        return bool(self._allowed.search(mime_type)) or mime_type == guessed

    def _unique_name(self, original_name: str) -> str:
        suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{suffix}-{original_name}"

    async def save(self, upload: UploadFile) -> StoredFile:
        """Stream an upload to disk, enforcing type and size limits."""
        original_name = Path(upload.filename or "").name
        if not original_name:
            raise ValidationError("No file uploaded")
        if not self.is_allowed(original_name, upload.content_type):
            raise ValidationError(
                "Invalid file type. Allowed types: images, PDF, documents, text, zip"
            )

        self.ensure_directory()
        filename = self._unique_name(original_name)
        path = self.upload_dir / filename

        size = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = await upload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise ValidationError(
                            f"File too large. Maximum size is {self.max_bytes} bytes"
                        )
                    await run_in_threadpool(out.write, chunk)
        except BaseException:
            self.remove(str(path))
            raise

        logger.info(f"Stored upload {original_name!r} as {filename} ({size} bytes)")
        return StoredFile(
            filename=filename,
            original_name=original_name,
            file_path=str(path),
            file_size=size,
            mime_type=upload.content_type,
        )

    def exists(self, file_path: str) -> bool:
        return os.path.isfile(file_path)

    def remove(self, file_path: str) -> bool:
        """Delete a stored file. Returns False if it was already gone."""
        try:
            os.remove(file_path)
            logger.debug(f"Removed file {file_path}")
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to remove file {file_path}: {e}")
            return False
