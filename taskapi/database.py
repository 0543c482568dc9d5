import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# Table models must be imported so they register on SQLModel.metadata.
from taskapi import models  # noqa: F401

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the async engine and session factory.

    Built once per application and shared by all requests. Call
    ``connect()`` at startup and ``dispose()`` at shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self):
        if self.engine is not None:
            return

        self.engine = create_async_engine(
            self.url,
            echo=self.echo,
            future=True,
            pool_pre_ping=True,
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(
                self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys
            )

        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )
        logger.info("Database engine created (%s)", self.engine.dialect.name)

    async def create_tables(self):
        """Create missing tables. Migrations are the preferred path for PostgreSQL."""
        await self.connect()
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database.connect() has not been called")
        async with self._session_factory() as session:
            yield session

    async def dispose(self):
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database engine disposed")
        self.engine = None
        self._session_factory = None
