"""
Unit tests for backend.services.readiness

Health follows the lifespan flag; readiness is a fresh, bounded database
round-trip that reports failure as False instead of raising.
"""

import asyncio

import pytest

from backend.db.session import build_engine
from backend.services.readiness import ReadinessMonitor


def test_health_follows_start_and_stop():
    monitor = ReadinessMonitor()
    assert monitor.health() is False

    monitor.mark_started()
    assert monitor.health() is True

    monitor.mark_stopped()
    assert monitor.health() is False


@pytest.mark.asyncio
async def test_ready_with_reachable_database(test_engine):
    assert await ReadinessMonitor().ready(test_engine) is True


@pytest.mark.asyncio
async def test_not_ready_when_database_cannot_be_opened(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'db.sqlite'}")

    assert await ReadinessMonitor().ready(engine) is False
    await engine.dispose()


@pytest.mark.asyncio
async def test_not_ready_when_probe_times_out(test_engine, monkeypatch):
    async def slow_ping(engine):
        await asyncio.sleep(5)

    monkeypatch.setattr(ReadinessMonitor, "_ping", staticmethod(slow_ping))

    assert await ReadinessMonitor(timeout_seconds=0.01).ready(test_engine) is False


@pytest.mark.asyncio
async def test_readiness_is_not_cached(tmp_path, test_engine):
    monitor = ReadinessMonitor()
    broken = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'db.sqlite'}")

    assert await monitor.ready(test_engine) is True
    assert await monitor.ready(broken) is False
    assert await monitor.ready(test_engine) is True
    await broken.dispose()
