# tests/conftest.py

from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient

from taskapi.cache.layer import CacheLayer
from taskapi.core.config import Settings
from taskapi.database import Database
from taskapi.main import create_app
from taskapi.repositories.attachments import AttachmentRepository
from taskapi.repositories.tasks import TaskRepository
from taskapi.repositories.users import UserRepository
from taskapi.services.auth_service import AuthService
from taskapi.services.task_service import TaskService
from taskapi.storage import FileStorage


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing every resource at the per-test tmp directory.

    ``_env_file=None`` keeps a developer's local .env out of the tests.
    """
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.sqlite3'}",
        upload_dir=str(tmp_path / "uploads"),
        cache_namespace="test:",
        jwt_secret="test-secret-key-with-at-least-32-bytes",
        log_level="WARNING",
    )


@pytest.fixture()
def redis_server() -> fakeredis.FakeServer:
    """Set ``redis_server.connected = False`` to simulate a Redis outage."""
    return fakeredis.FakeServer()


@pytest.fixture()
def fake_redis(redis_server: fakeredis.FakeServer) -> fakeredis.FakeAsyncRedis:
    return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture()
async def cache(settings: Settings, fake_redis) -> CacheLayer:
    layer = CacheLayer(settings, redis=fake_redis)
    await layer.init_cache()
    yield layer
    await layer.close()


@pytest.fixture()
async def database(settings: Settings) -> Database:
    db = Database(settings.database_url)
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture()
async def session(database: Database):
    async with database.session() as session:
        yield session


@pytest.fixture()
def file_storage(settings: Settings) -> FileStorage:
    storage = FileStorage(
        settings.upload_dir, settings.max_upload_bytes, settings.allowed_upload_types
    )
    storage.ensure_directory()
    return storage


@pytest.fixture()
def task_service(session, cache: CacheLayer, file_storage: FileStorage) -> TaskService:
    return TaskService(
        TaskRepository(session), AttachmentRepository(session), cache, file_storage
    )


@pytest.fixture()
def auth_service(session, settings: Settings) -> AuthService:
    return AuthService(UserRepository(session), settings)


@pytest.fixture()
def client(settings: Settings, redis_server: fakeredis.FakeServer):
    """TestClient running the full lifespan against SQLite and fakeredis."""
    cache_layer = CacheLayer(
        settings,
        redis=fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True),
    )
    app = create_app(settings, cache_layer=cache_layer)
    with TestClient(app) as test_client:
        yield test_client
