"""
Test Configuration and Fixtures

Provides a throwaway database per test, async test clients for the
Personal Data Server and the Edge Proxy, and login helpers.
"""

import os
from collections.abc import AsyncGenerator

from cryptography.fernet import Fernet

# Settings are cached on first use, so the environment is set before any
# backend import.
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-sso-state")
os.environ["SSO_REDIRECT_URL"] = ""

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from asgi_lifespan import LifespanManager  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from backend.db.session import build_engine, build_session_factory, get_db, get_engine  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models.app_sso_provider import AppSsoProvider  # noqa: E402
from backend.models.base import Base  # noqa: E402
from backend.models.user import User  # noqa: E402
from backend.routers.sso import get_provider_http_client  # noqa: E402
from edge_proxy.main import app as edge_app  # noqa: E402
from edge_proxy.routes import get_relay_http_client  # noqa: E402
from tests.factories import (  # noqa: E402
    MockGoogle,
    make_access_token,
    make_app_sso_provider,
    make_sso_account,
    make_user,
)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Engine on a fresh database.

    SQLite in a temp dir by default; set TEST_DATABASE_URL to run against
    PostgreSQL instead.
    """
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = build_engine(url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_google() -> MockGoogle:
    return MockGoogle()


@pytest_asyncio.fixture
async def google_provider(db_session: AsyncSession) -> AppSsoProvider:
    """Registered Google client credentials."""
    provider = make_app_sso_provider()
    db_session.add(provider)
    await db_session.commit()
    return provider


@pytest_asyncio.fixture
async def logged_in_user(
    db_session: AsyncSession, google_provider: AppSsoProvider
) -> tuple[User, str]:
    """A user with a valid login token, returns (user, login_token)."""
    user = make_user(email="pat.smith@somewhere.com", name="Pat Smith")
    db_session.add(user)
    await db_session.flush()

    account = make_sso_account(user.id, google_provider.id, provider_user_id="PatId")
    db_session.add(account)
    await db_session.flush()

    token = make_access_token(account.id)
    db_session.add(token)
    await db_session.commit()
    return user, token.login_token


@pytest_asyncio.fixture
async def pds_app(
    session_factory, test_engine: AsyncEngine, mock_google: MockGoogle
) -> AsyncGenerator:
    """Personal Data Server app wired to the test database and mock Google."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    provider_client = mock_google.client()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine] = lambda: test_engine
    app.dependency_overrides[get_provider_http_client] = lambda: provider_client

    yield app

    app.dependency_overrides.clear()
    await provider_client.aclose()


@pytest_asyncio.fixture(scope="function")
async def client(pds_app) -> AsyncGenerator[AsyncClient, None]:
    """Async test client for the Personal Data Server, lifespan included."""
    async with LifespanManager(pds_app):
        transport = ASGITransport(app=pds_app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


@pytest_asyncio.fixture(scope="function")
async def edge_client(pds_app) -> AsyncGenerator[AsyncClient, None]:
    """Async test client for the Edge Proxy, relaying to the in-process PDS."""
    upstream = httpx.AsyncClient(transport=ASGITransport(app=pds_app))
    edge_app.dependency_overrides[get_relay_http_client] = lambda: upstream

    transport = ASGITransport(app=edge_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    edge_app.dependency_overrides.clear()
    await upstream.aclose()


@pytest.fixture
def auth_headers(logged_in_user: tuple[User, str]) -> dict[str, str]:
    """Bearer headers for the logged-in test user."""
    _, login_token = logged_in_user
    return {"Authorization": f"Bearer {login_token}"}
