from fastapi import APIRouter, Depends, status

from taskapi.dependencies import get_task_service
from taskapi.models import Envelope, MessageResponse, TaskCreate, TaskRead, TaskUpdate
from taskapi.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("", response_model=Envelope[list[TaskRead]], response_model_exclude_unset=True)
async def get_tasks(service: TaskService = Depends(get_task_service)):
    """List all tasks, newest first"""
    result = await service.get_all_tasks()
    return Envelope(data=result.data, cached=result.from_cache)


@router.get("/{task_id}", response_model=Envelope[TaskRead], response_model_exclude_unset=True)
async def get_task(task_id: int, service: TaskService = Depends(get_task_service)):
    """Get a specific task by ID"""
    result = await service.get_task(task_id)
    return Envelope(data=result.data, cached=result.from_cache)


@router.post(
    "",
    response_model=Envelope[TaskRead],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    task_data: TaskCreate, service: TaskService = Depends(get_task_service)
):
    """Create a new task"""
    return Envelope(data=await service.create_task(task_data))


@router.put("/{task_id}", response_model=Envelope[TaskRead], response_model_exclude_unset=True)
async def update_task(
    task_id: int, task_data: TaskUpdate, service: TaskService = Depends(get_task_service)
):
    return Envelope(data=await service.update_task(task_id, task_data))


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(task_id: int, service: TaskService = Depends(get_task_service)):
    """Delete a task and its attachments"""
    await service.delete_task(task_id)
    return MessageResponse(message="Task deleted successfully")
