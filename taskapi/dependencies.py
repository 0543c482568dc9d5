from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession
from typing_extensions import Annotated

from taskapi.auth.security import verify_token
from taskapi.cache.layer import CacheLayer
from taskapi.core.config import Settings
from taskapi.exceptions import AuthenticationError
from taskapi.models import TokenClaims
from taskapi.repositories.attachments import AttachmentRepository
from taskapi.repositories.tasks import TaskRepository
from taskapi.repositories.users import UserRepository
from taskapi.services.attachment_service import AttachmentService
from taskapi.services.auth_service import AuthService
from taskapi.services.email_service import EmailService
from taskapi.services.task_service import TaskService
from taskapi.services.weather_service import WeatherService
from taskapi.storage import FileStorage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# Dependency for getting DB session
async def get_db(request: Request):
    async with request.app.state.database.session() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_db)]


def get_cache(request: Request) -> CacheLayer:
    return request.app.state.cache


def get_file_storage(request: Request) -> FileStorage:
    return request.app.state.file_storage


def get_task_service(
    db: SessionDep,
    settings: SettingsDep,
    cache: CacheLayer = Depends(get_cache),
    files: FileStorage = Depends(get_file_storage),
) -> TaskService:
    return TaskService(
        TaskRepository(db),
        AttachmentRepository(db),
        cache,
        files,
        ttl=settings.l2_ttl_seconds,
    )


def get_attachment_service(
    db: SessionDep, files: FileStorage = Depends(get_file_storage)
) -> AttachmentService:
    return AttachmentService(TaskRepository(db), AttachmentRepository(db), files)


def get_auth_service(db: SessionDep, settings: SettingsDep) -> AuthService:
    return AuthService(UserRepository(db), settings)


def get_email_service(settings: SettingsDep) -> EmailService:
    return EmailService(settings)


def get_weather_service(request: Request, settings: SettingsDep) -> WeatherService:
    return WeatherService(settings, client=request.app.state.http_client)


bearer_scheme = HTTPBearer(auto_error=False)


def require_user(
    settings: SettingsDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenClaims:
    """
    Guard for protected routes.

    No bearer token is a 401 (AuthenticationError); a token that fails
    verification for any reason is a 403 (InvalidTokenError).
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")
    return verify_token(credentials.credentials, settings)


CurrentUser = Annotated[TokenClaims, Depends(require_user)]
