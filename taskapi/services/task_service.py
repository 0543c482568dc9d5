"""
Task operations under a cache-aside policy.

The database is the only source of truth. Reads fill the cache on a miss;
writes go to the database first and then invalidate the affected keys.
Every cache failure behaves like an absent cache, so results are identical
with or without Redis; only ``CachedResult.from_cache`` differs.
"""

import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from taskapi.cache.layer import CacheLayer
from taskapi.exceptions import NotFoundError, ValidationError
from taskapi.models import TaskCreate, TaskRead, TaskStatus, TaskUpdate
from taskapi.repositories.attachments import AttachmentRepository
from taskapi.repositories.tasks import TaskRepository
from taskapi.storage import FileStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASK_KEY_PREFIX = "task:"
ALL_TASKS_KEY = f"{TASK_KEY_PREFIX}all"

_task_list = TypeAdapter(list[TaskRead])


def task_key(task_id: int) -> str:
    return f"{TASK_KEY_PREFIX}{task_id}"


@dataclass
class CachedResult(Generic[T]):
    data: T
    from_cache: bool


class TaskService:
    def __init__(
        self,
        tasks: TaskRepository,
        attachments: AttachmentRepository,
        cache: CacheLayer,
        files: FileStorage,
        ttl: int | None = None,
    ):
        self.tasks = tasks
        self.attachments = attachments
        self.cache = cache
        self.files = files
        self.ttl = ttl

    async def _invalidate(self, *keys: str):
        # Best effort: a key that survives here expires with its TTL.
        for key in keys:
            if not await self.cache.delete(key) and self.cache.is_available():
                logger.warning(f"Cache invalidation failed for {key!r}")

    async def get_task(self, task_id: int) -> CachedResult[TaskRead]:
        key = task_key(task_id)

        cached = await self.cache.get(key)
        if cached is not None:
            try:
                return CachedResult(TaskRead.model_validate(cached), from_cache=True)
            except SchemaError as e:
                logger.warning(f"Ignoring malformed cache entry {key!r}: {e}")

        task = await self.tasks.get_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")

        data = TaskRead.model_validate(task)
        await self.cache.set(key, data.model_dump(mode="json"), self.ttl)
        return CachedResult(data, from_cache=False)

    async def get_all_tasks(self) -> CachedResult[list[TaskRead]]:
        cached = await self.cache.get(ALL_TASKS_KEY)
        if cached is not None:
            try:
                return CachedResult(_task_list.validate_python(cached), from_cache=True)
            except SchemaError as e:
                logger.warning(f"Ignoring malformed cache entry {ALL_TASKS_KEY!r}: {e}")

        data = [TaskRead.model_validate(task) for task in await self.tasks.get_all()]
        await self.cache.set(ALL_TASKS_KEY, _task_list.dump_python(data, mode="json"), self.ttl)
        return CachedResult(data, from_cache=False)

    async def create_task(self, task_data: TaskCreate) -> TaskRead:
        if not task_data.title or not task_data.title.strip():
            raise ValidationError("Title is required")

        task_id = await self.tasks.create(task_data.title, task_data.description)
        await self._invalidate(ALL_TASKS_KEY, task_key(task_id))

        task = await self.tasks.get_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        logger.info(f"Task {task_id} created")
        return TaskRead.model_validate(task)

    async def update_task(self, task_id: int, task_data: TaskUpdate) -> TaskRead:
        """Merge-patch: fields the caller leaves out keep their current value."""
        existing = await self.tasks.get_by_id(task_id)
        if existing is None:
            raise NotFoundError("Task not found")

        changes = task_data.model_dump(exclude_unset=True)
        title = changes.get("title")
        if not title or not title.strip():
            title = existing.title
        fields = {
            "title": title,
            "description": changes["description"]
            if "description" in changes
            else existing.description,
            "status": TaskStatus(changes.get("status") or existing.status).value,
        }

        if not await self.tasks.update(task_id, fields):
            raise NotFoundError("Task not found")
        await self._invalidate(task_key(task_id), ALL_TASKS_KEY)

        task = await self.tasks.get_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        logger.info(f"Task {task_id} updated")
        return TaskRead.model_validate(task)

    async def delete_task(self, task_id: int) -> bool:
        # Collect file paths first; the cascade removes the rows with the task.
        attachments = await self.attachments.list_for_task(task_id)
        file_paths = [attachment.file_path for attachment in attachments]

        if not await self.tasks.delete(task_id):
            raise NotFoundError("Task not found")
        await self._invalidate(task_key(task_id), ALL_TASKS_KEY)

        removed = sum(1 for path in file_paths if self.files.remove(path))
        logger.info(f"Task {task_id} deleted ({removed} attachment files removed)")
        return True

    async def clear_cache(self) -> bool:
        """Drop every cached task entry, independent of any mutation."""
        cleared = await self.cache.delete_prefix(TASK_KEY_PREFIX)
        logger.info(f"Task cache clear requested (success={cleared})")
        return cleared
