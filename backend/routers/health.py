"""
Health Router

Process health and database readiness probes.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.db.session import get_engine
from backend.services.readiness import readiness_monitor

router = APIRouter()


@router.get("/health")
async def health_check():
    """Healthy once startup has completed; independent of the database."""
    if not readiness_monitor.health():
        return JSONResponse(
            status_code=503,
            content={"isError": True, "message": "Server is not started"},
        )
    return {"isHealthy": True}


@router.get("/ready")
async def readiness_check(engine: AsyncEngine = Depends(get_engine)):
    """Ready only while the database answers a round-trip."""
    if not await readiness_monitor.ready(engine):
        return JSONResponse(
            status_code=503,
            content={"isError": True, "message": "Database is not ready"},
        )
    return {"isReady": True}
