"""Integration tests for the /health and /ready probes."""

import pytest
from httpx import ASGITransport, AsyncClient

from backend.db.session import build_engine, get_engine


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"isHealthy": True}


@pytest.mark.asyncio
async def test_health_before_startup_is_503(pds_app):
    # No lifespan: the app never finished starting
    async with AsyncClient(transport=ASGITransport(app=pds_app), base_url="http://test") as ac:
        response = await ac.get("/health")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_ready_with_database(client):
    response = await client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {"isReady": True}


@pytest.mark.asyncio
async def test_not_ready_without_database(client, pds_app, tmp_path):
    broken = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'db.sqlite'}")
    pds_app.dependency_overrides[get_engine] = lambda: broken

    response = await client.get("/ready")

    assert response.status_code == 503
    assert response.json() == {"isError": True, "message": "Database is not ready"}

    # Health does not depend on the database
    assert (await client.get("/health")).status_code == 200
    await broken.dispose()
