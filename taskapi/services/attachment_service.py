import logging

from fastapi import UploadFile

from taskapi.exceptions import NotFoundError
from taskapi.models import AttachmentRead
from taskapi.repositories.attachments import AttachmentRepository
from taskapi.repositories.tasks import TaskRepository
from taskapi.storage import FileStorage

logger = logging.getLogger(__name__)


class AttachmentService:
    def __init__(
        self,
        tasks: TaskRepository,
        attachments: AttachmentRepository,
        files: FileStorage,
    ):
        self.tasks = tasks
        self.attachments = attachments
        self.files = files

    async def _require_task(self, task_id: int):
        if await self.tasks.get_by_id(task_id) is None:
            raise NotFoundError("Task not found")

    async def upload(self, task_id: int, upload: UploadFile) -> AttachmentRead:
        await self._require_task(task_id)

        stored = await self.files.save(upload)
        try:
            attachment_id = await self.attachments.create(
                task_id,
                stored.filename,
                stored.original_name,
                stored.file_path,
                stored.file_size,
                stored.mime_type,
            )
        except Exception:
            # Never leave an orphaned file behind a failed insert.
            self.files.remove(stored.file_path)
            raise

        return await self.get(attachment_id)

    async def list_for_task(self, task_id: int) -> list[AttachmentRead]:
        await self._require_task(task_id)
        return [
            AttachmentRead.model_validate(attachment)
            for attachment in await self.attachments.list_for_task(task_id)
        ]

    async def get(self, attachment_id: int) -> AttachmentRead:
        attachment = await self.attachments.get_by_id(attachment_id)
        if attachment is None:
            raise NotFoundError("Attachment not found")
        return AttachmentRead.model_validate(attachment)

    async def resolve_download(self, attachment_id: int) -> AttachmentRead:
        """Return the attachment only if its file is still on disk."""
        attachment = await self.get(attachment_id)
        if not self.files.exists(attachment.file_path):
            raise NotFoundError("File not found on disk")
        return attachment

    async def delete(self, attachment_id: int) -> bool:
        attachment = await self.get(attachment_id)
        self.files.remove(attachment.file_path)
        if not await self.attachments.delete(attachment_id):
            raise NotFoundError("Attachment not found")
        logger.info(f"Attachment {attachment_id} deleted from task {attachment.task_id}")
        return True
