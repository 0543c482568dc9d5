from fastapi import APIRouter, Depends

from taskapi.dependencies import get_email_service, get_task_service
from taskapi.models import Envelope, MessageResponse, ReminderRequest
from taskapi.services.email_service import EmailService
from taskapi.services.task_service import TaskService

router = APIRouter(prefix="/api", tags=["notifications"])


@router.post("/tasks/{task_id}/remind", response_model=MessageResponse)
async def send_task_reminder(
    task_id: int,
    payload: ReminderRequest,
    tasks: TaskService = Depends(get_task_service),
    email: EmailService = Depends(get_email_service),
):
    """Email a reminder about a task"""
    task = (await tasks.get_task(task_id)).data
    await email.send_task_reminder(payload.email, task)
    return MessageResponse(message=f"Reminder sent to {payload.email}")


@router.post("/email/test", response_model=MessageResponse)
async def send_test_email(
    payload: ReminderRequest, email: EmailService = Depends(get_email_service)
):
    await email.send_test_email(payload.email)
    return MessageResponse(message=f"Test email sent to {payload.email}")


@router.get("/email/status", response_model=Envelope[dict])
async def email_status(email: EmailService = Depends(get_email_service)):
    return Envelope(data={"connected": await email.verify_connection()})
