from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, StringConstraints, model_validator
from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlmodel import Column, Field, SQLModel
from typing_extensions import Annotated

T = TypeVar("T")


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


# Tasks


class TaskBase(SQLModel):
    """Base model with shared fields"""

    title: str = Field(min_length=1, max_length=200, index=True)
    description: str | None = Field(default=None)


class Task(TaskBase, table=True):
    """Database model"""

    __tablename__ = "tasks"

    id: int | None = Field(default=None, primary_key=True)
    status: str = Field(default=TaskStatus.PENDING.value, max_length=20)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class TaskCreate(TaskBase):
    """Schema for creating a task"""

    pass


class TaskUpdate(SQLModel):
    """Schema for updating a task - all fields optional"""

    title: str | None = Field(default=None, max_length=200)
    description: str | None = None
    status: TaskStatus | None = None


class TaskRead(TaskBase):
    """Schema for task responses"""

    id: int
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# Attachments


class Attachment(SQLModel, table=True):
    __tablename__ = "attachments"

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    filename: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str | None = None
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class AttachmentRead(SQLModel):
    id: int
    task_id: int
    filename: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# Users


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(
        sa_column=Column(String(100), unique=True, index=True, nullable=False)
    )
    password_hash: str
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class UserCredentials(SQLModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)


class UserRead(SQLModel):
    id: int
    username: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthPayload(SQLModel):
    user: UserRead
    token: str


class TokenClaims(SQLModel):
    user_id: int
    username: str
    iat: int | None = None
    exp: int


# Notifications


EmailAddress = Annotated[
    str, StringConstraints(strip_whitespace=True, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
]


class ReminderRequest(BaseModel):
    email: EmailAddress


# Responses


class Envelope(BaseModel, Generic[T]):
    """Uniform JSON body: ``{success, data, cached, message}``."""

    success: bool = True
    data: T | None = None
    cached: bool | None = None
    message: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _always_report_success(cls, data: Any) -> Any:
        # Routes render with exclude_unset; success must always count as set.
        if isinstance(data, dict):
            return {"success": True, **data}
        return data


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: Any | None = None
