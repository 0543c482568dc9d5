from fastapi import APIRouter, Depends

from taskapi.cache.layer import CacheLayer
from taskapi.dependencies import get_cache, get_task_service
from taskapi.models import Envelope, MessageResponse
from taskapi.services.task_service import TaskService

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.get("/status", response_model=Envelope[dict], response_model_exclude_unset=True)
async def cache_status(cache: CacheLayer = Depends(get_cache)):
    return Envelope(data=cache.status())


@router.api_route("/clear", methods=["POST", "DELETE"], response_model=MessageResponse)
async def clear_cache(service: TaskService = Depends(get_task_service)):
    if await service.clear_cache():
        return MessageResponse(message="Task cache cleared")
    return MessageResponse(success=False, message="Cache unavailable, nothing cleared")
