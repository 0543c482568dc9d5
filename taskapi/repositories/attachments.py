import logging

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskapi.models import Attachment
from taskapi.repositories.base import store_errors

logger = logging.getLogger(__name__)


class AttachmentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        task_id: int,
        filename: str,
        original_name: str,
        file_path: str,
        file_size: int,
        mime_type: str | None,
    ) -> int:
        attachment = Attachment(
            task_id=task_id,
            filename=filename,
            original_name=original_name,
            file_path=file_path,
            file_size=file_size,
            mime_type=mime_type,
        )
        async with store_errors(self.db, f"create attachment for task {task_id}"):
            self.db.add(attachment)
            await self.db.commit()
            await self.db.refresh(attachment)
        return attachment.id

    async def get_by_id(self, attachment_id: int) -> Attachment | None:
        async with store_errors(self.db, f"load attachment {attachment_id}"):
            return await self.db.get(Attachment, attachment_id)

    async def list_for_task(self, task_id: int) -> list[Attachment]:
        query = (
            select(Attachment)
            .where(Attachment.task_id == task_id)
            .order_by(Attachment.created_at.desc(), Attachment.id.desc())
        )
        async with store_errors(self.db, f"list attachments for task {task_id}"):
            result = await self.db.exec(query)
            return list(result.all())

    async def delete(self, attachment_id: int) -> bool:
        async with store_errors(self.db, f"delete attachment {attachment_id}"):
            attachment = await self.db.get(Attachment, attachment_id)
            if attachment is None:
                return False
            await self.db.delete(attachment)
            await self.db.commit()
        return True
