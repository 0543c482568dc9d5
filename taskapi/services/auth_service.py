import logging

from starlette.concurrency import run_in_threadpool

from taskapi.auth.security import (
    DUMMY_PASSWORD_HASH,
    hash_password,
    issue_token,
    verify_password,
)
from taskapi.core.config import Settings
from taskapi.exceptions import AuthenticationError, ConflictError, ValidationError
from taskapi.models import AuthPayload, UserRead
from taskapi.repositories.users import UserRepository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


class AuthService:
    def __init__(self, users: UserRepository, settings: Settings):
        self.users = users
        self.settings = settings

    async def register(self, username: str, password: str) -> AuthPayload:
        username = username.strip()
        if not username or not password:
            raise ValidationError("Username and password are required")

        if await self.users.get_by_username(username) is not None:
            raise ConflictError("Username already exists")

        # The unique index still decides when two registrations race.
        password_hash = await run_in_threadpool(hash_password, password)
        user_id = await self.users.create(username, password_hash)
        user = await self.users.get_by_id(user_id)
        logger.info(f"Registered user {user_id}")
        return AuthPayload(
            user=UserRead.model_validate(user),
            token=issue_token(user_id, username, self.settings),
        )

    async def login(self, username: str, password: str) -> AuthPayload:
        """Same error for an unknown user and a wrong password."""
        user = await self.users.get_by_username(username.strip())
        # Unknown users are checked against a dummy hash so both failures cost the same.
        password_hash = user.password_hash if user is not None else DUMMY_PASSWORD_HASH
        verified = await run_in_threadpool(verify_password, password_hash, password)
        if user is None or not verified:
            logger.info("Login rejected")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        return AuthPayload(
            user=UserRead.model_validate(user),
            token=issue_token(user.id, user.username, self.settings),
        )
