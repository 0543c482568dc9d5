import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from taskapi.exceptions import StoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_errors(db: AsyncSession, action: str):
    """Roll back and re-raise any SQLAlchemy failure as StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error while trying to {action}: {e}")
        raise StoreError(f"Database error while trying to {action}") from e
