import pytest
from httpx import ASGITransport, AsyncClient

from hackerchess.core.config import Settings
from hackerchess.main import create_app
from hackerchess.stores.memory import MemoryStore
from hackerchess.stores.sql import SQLStore

TEST_SECRET = "test-session-secret"


def make_settings(database_url: str, **overrides) -> Settings:
    values = {
        "DATABASE_URL": database_url,
        "SESSION_SECRET": TEST_SECRET,
        "PASSWORD_WORK_FACTOR": 1,
        "SESSION_PRUNE_INTERVAL": 0,
        "CORS_ORIGINS": "*",
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'hackerchess-test.db'}"


@pytest.fixture(params=["sqlite", "memory"])
def settings(request, sqlite_url) -> Settings:
    if request.param == "memory":
        return make_settings("memory://")
    return make_settings(sqlite_url)


@pytest.fixture
def sqlite_settings(sqlite_url) -> Settings:
    return make_settings(sqlite_url)


@pytest.fixture
async def app(settings):
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
async def other_client(app):
    """A second browser against the same server."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture(params=["sqlite", "memory"])
async def store(request, sqlite_url):
    if request.param == "memory":
        backend = MemoryStore()
    else:
        backend = SQLStore(make_settings(sqlite_url))
    await backend.start()
    try:
        yield backend
    finally:
        await backend.close()


async def register(client: AsyncClient, username: str = "alice", password: str = "secret123"):
    return await client.post("/api/register", json={"username": username, "password": password})


def cookie_header(settings: Settings, value: str) -> dict:
    return {"Cookie": f"{settings.session_cookie_name}={value}"}
