"""Test fixtures — a fresh SQLite users DB and settings root per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI + aiosqlite:

1. Each test gets its own engine pointed at a file under tmp_path, with
   the users table created up front. No cross-test pollution, no cleanup.
2. get_db is overridden so every request opens a session on that engine,
   the same way the real dependency does.
3. The app is built with create_app(), handing it a settings store rooted
   in tmp_path and a ServiceRegistry the test can inspect.

Env vars are set before anything from floodgate is imported: Settings is
read once at import time. Four bcrypt rounds keeps hashing fast.
"""

import os
import tempfile

os.environ.setdefault("FLOODGATE_BCRYPT_ROUNDS", "4")
os.environ.setdefault("FLOODGATE_JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("FLOODGATE_DB_PATH", tempfile.mkdtemp(prefix="floodgate-test-"))

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from floodgate.auth.dependencies import get_auth_mode  # noqa: E402
from floodgate.db.engine import get_db, init_models  # noqa: E402
from floodgate.main import create_app  # noqa: E402
from floodgate.services.gateway import AuthMode  # noqa: E402
from floodgate.services.lifecycle import ServiceRegistry  # noqa: E402
from floodgate.settings_store import SettingsStore, StoreManager  # noqa: E402

ADMIN = {"username": "alice", "password": "alice-password", "host": "127.0.0.1", "port": 5000}


@pytest_asyncio.fixture()
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'users.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A standalone session for service-layer tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def settings_store(tmp_path):
    store = SettingsStore(StoreManager(tmp_path / "stores"))
    yield store
    await store.manager.close()


@pytest_asyncio.fixture()
async def services():
    return ServiceRegistry()


@pytest_asyncio.fixture()
async def app(session_factory, settings_store, services):
    """App wired to the per-test DB, settings root and service registry."""
    application = create_app(settings_store=settings_store, services=services)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client against the real auth pipeline (auth enforced)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def bypass_client(app):
    """HTTP client for an app running with users and auth disabled."""
    app.dependency_overrides[get_auth_mode] = lambda: AuthMode.BYPASSED
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def admin_headers(client):
    """Bootstrap the first user and return an Authorization header for it.

    Learn: registration sets a session cookie too. The cookie jar is
    cleared so tests only authenticate through the headers they pass.
    """
    r = await client.post("/api/v1/auth/register", json=ADMIN)
    assert r.status_code == 201, r.text
    client.cookies.clear()
    return {"Authorization": r.json()["token"]}


async def login(client, username: str, password: str) -> dict:
    """Authenticate and return an Authorization header (cookie jar cleared)."""
    r = await client.post(
        "/api/v1/auth/authenticate",
        json={"username": username, "password": password},
    )
    assert r.status_code == 200, r.text
    client.cookies.clear()
    return {"Authorization": r.json()["token"]}
