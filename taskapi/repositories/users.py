import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskapi.exceptions import ConflictError
from taskapi.models import User
from taskapi.repositories.base import store_errors

logger = logging.getLogger(__name__)


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, username: str, password_hash: str) -> int:
        """Insert a user. The unique index on username turns duplicates into ConflictError."""
        user = User(username=username, password_hash=password_hash)
        async with store_errors(self.db, f"create user {username!r}"):
            self.db.add(user)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                logger.info(f"Registration rejected, username taken: {username!r}")
                raise ConflictError("Username already exists") from e
            await self.db.refresh(user)
        return user.id

    async def get_by_id(self, user_id: int) -> User | None:
        async with store_errors(self.db, f"load user {user_id}"):
            return await self.db.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        query = select(User).where(User.username == username)
        async with store_errors(self.db, f"load user {username!r}"):
            result = await self.db.exec(query)
            return result.first()
