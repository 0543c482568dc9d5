from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse

from taskapi.dependencies import get_attachment_service
from taskapi.models import AttachmentRead, Envelope, MessageResponse
from taskapi.services.attachment_service import AttachmentService

router = APIRouter(prefix="/api", tags=["attachments"])


@router.post(
    "/tasks/{task_id}/attachments",
    response_model=Envelope[AttachmentRead],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def upload_attachment(
    task_id: int,
    file: UploadFile = File(...),
    service: AttachmentService = Depends(get_attachment_service),
):
    """Upload a file attachment for a task"""
    return Envelope(data=await service.upload(task_id, file))


@router.get(
    "/tasks/{task_id}/attachments",
    response_model=Envelope[list[AttachmentRead]],
    response_model_exclude_unset=True,
)
async def list_attachments(
    task_id: int, service: AttachmentService = Depends(get_attachment_service)
):
    return Envelope(data=await service.list_for_task(task_id))


@router.get("/attachments/{attachment_id}/download")
async def download_attachment(
    attachment_id: int, service: AttachmentService = Depends(get_attachment_service)
):
    attachment = await service.resolve_download(attachment_id)
    return FileResponse(
        attachment.file_path,
        media_type=attachment.mime_type or "application/octet-stream",
        filename=attachment.original_name,
    )


@router.delete("/attachments/{attachment_id}", response_model=MessageResponse)
async def delete_attachment(
    attachment_id: int, service: AttachmentService = Depends(get_attachment_service)
):
    await service.delete(attachment_id)
    return MessageResponse(message="Attachment deleted successfully")
