import html
import logging
from email.message import EmailMessage
from email.utils import formataddr

import aiosmtplib

from taskapi.core.config import Settings
from taskapi.exceptions import EmailDeliveryError
from taskapi.models import TaskRead, TaskStatus

logger = logging.getLogger(__name__)

_REMINDER_TEXT = """\
Hello,

This is a reminder about your task:

Title: {title}
Description: {description}
Status: {status}

Please complete this task at your earliest convenience.

Best regards,
Task Manager System
"""

_REMINDER_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #667eea;">Task Reminder</h2>
  <p>Hello,</p>
  <p>This is a reminder about your task:</p>
  <div style="background: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">
    <p><strong>Title:</strong> {title}</p>
    <p><strong>Description:</strong> {description}</p>
    <p><strong>Status:</strong> <span style="color: {status_color};">{status}</span></p>
  </div>
  <p>Please complete this task at your earliest convenience.</p>
  <p style="color: #666; font-size: 12px; margin-top: 30px;">
    Best regards,<br>
    Task Manager System
  </p>
</div>
"""

_TEST_TEXT = "This is a test email to verify email service configuration."


class EmailService:
    """One-shot SMTP delivery for task reminders."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def sender(self) -> str:
        return formataddr((self.settings.email_sender_name, self.settings.smtp_username))

    def _message(self, to: str, subject: str, text: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        message.add_alternative(html_body, subtype="html")
        return message

    def build_task_reminder(self, to: str, task: TaskRead) -> EmailMessage:
        description = task.description or "No description"
        status = task.status.value
        text = _REMINDER_TEXT.format(
            title=task.title, description=description, status=status
        )
        html_body = _REMINDER_HTML.format(
            title=html.escape(task.title),
            description=html.escape(description),
            status=html.escape(status),
            status_color="#f59e0b" if task.status == TaskStatus.PENDING else "#10b981",
        )
        return self._message(to, f"Reminder: {task.title}", text, html_body)

    async def _send(self, message: EmailMessage):
        settings = self.settings
        try:
            await aiosmtplib.send(
                message,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                start_tls=settings.smtp_start_tls,
                timeout=settings.smtp_timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Email delivery to {message['To']} failed: {e}")
            raise EmailDeliveryError("Failed to send email") from e
        logger.info(f"Email sent to {message['To']}: {message['Subject']}")

    async def send_task_reminder(self, to: str, task: TaskRead):
        await self._send(self.build_task_reminder(to, task))

    async def send_test_email(self, to: str):
        message = self._message(
            to, "Test Email from Task Manager", _TEST_TEXT, f"<p>{_TEST_TEXT}</p>"
        )
        await self._send(message)

    async def verify_connection(self) -> bool:
        """Log in to the SMTP server and disconnect. Never raises."""
        settings = self.settings
        try:
            smtp = aiosmtplib.SMTP(
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                start_tls=settings.smtp_start_tls,
                timeout=settings.smtp_timeout,
            )
            async with smtp:
                await smtp.login(settings.smtp_username, settings.smtp_password)
            return True
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Email service verification failed: {e}")
            return False
