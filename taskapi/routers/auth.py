from fastapi import APIRouter, Depends, status

from taskapi.dependencies import CurrentUser, get_auth_service
from taskapi.models import AuthPayload, Envelope, TokenClaims, UserCredentials
from taskapi.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=Envelope[AuthPayload],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    credentials: UserCredentials, service: AuthService = Depends(get_auth_service)
):
    return Envelope(data=await service.register(credentials.username, credentials.password))


@router.post("/login", response_model=Envelope[AuthPayload], response_model_exclude_unset=True)
async def login(
    credentials: UserCredentials, service: AuthService = Depends(get_auth_service)
):
    return Envelope(data=await service.login(credentials.username, credentials.password))


@router.get("/me", response_model=Envelope[TokenClaims], response_model_exclude_unset=True)
async def me(user: CurrentUser):
    """Claims of the bearer token"""
    return Envelope(data=user)
