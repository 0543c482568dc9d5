"""
Data access for tasks.

Every method commits its own unit of work. Failures surface as StoreError.
"""

import logging
from typing import Any

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskapi.models import Task, get_utc_now
from taskapi.repositories.base import store_errors

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "status")


class TaskRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(self) -> list[Task]:
        query = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
        async with store_errors(self.db, "list tasks"):
            result = await self.db.exec(query)
            return list(result.all())

    async def get_by_id(self, task_id: int) -> Task | None:
        async with store_errors(self.db, f"load task {task_id}"):
            return await self.db.get(Task, task_id)

    async def create(self, title: str, description: str | None) -> int:
        """Insert a task and return its generated id."""
        task = Task(title=title, description=description)
        async with store_errors(self.db, "create task"):
            self.db.add(task)
            await self.db.commit()
            await self.db.refresh(task)
        logger.debug(f"Created task {task.id}")
        return task.id

    async def update(self, task_id: int, fields: dict[str, Any]) -> bool:
        """Apply ``fields`` to a task. Returns False when the task does not exist."""
        async with store_errors(self.db, f"update task {task_id}"):
            task = await self.db.get(Task, task_id)
            if task is None:
                return False
            for name, value in fields.items():
                if name in _UPDATABLE_FIELDS:
                    setattr(task, name, value)
            task.updated_at = get_utc_now()
            await self.db.commit()
            await self.db.refresh(task)
        return True

    async def delete(self, task_id: int) -> bool:
        """Delete a task; attachment rows go with it through ON DELETE CASCADE."""
        async with store_errors(self.db, f"delete task {task_id}"):
            task = await self.db.get(Task, task_id)
            if task is None:
                return False
            await self.db.delete(task)
            await self.db.commit()
        return True
