"""
Readiness Monitor

Two independent probes: process health (startup finished) and dependency
readiness (the database answers a trivial round-trip right now).
"""

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.config import get_settings

logger = logging.getLogger(__name__)


class ReadinessMonitor:
    """
    Health and readiness probes.

    Both are pure queries. Readiness is never cached: every call performs a
    fresh round-trip bounded by the probe timeout, and failures are reported
    as False rather than raised.
    """

    def __init__(self, timeout_seconds: float = 2.0):
        self.timeout_seconds = timeout_seconds
        self._started = False

    def mark_started(self) -> None:
        self._started = True

    def mark_stopped(self) -> None:
        self._started = False

    def health(self) -> bool:
        return self._started

    async def ready(self, engine: AsyncEngine) -> bool:
        try:
            await asyncio.wait_for(self._ping(engine), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Database readiness probe timed out after {self.timeout_seconds}s")
            return False
        except Exception as e:
            logger.warning(f"Database is not ready: {e}")
            return False
        return True

    @staticmethod
    async def _ping(engine: AsyncEngine) -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))


readiness_monitor = ReadinessMonitor(timeout_seconds=get_settings().readiness_timeout_seconds)
