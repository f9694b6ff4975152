"""Health & Readiness Probes — liveness and database readiness.

Invariants:
    - GET /health/ answers 200 whenever the process serves requests
    - GET /health/ready answers 503 until the database accepts a query
    - Neither probe requires a bearer token
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import stm.infrastructure.database as db_module
from stm import __version__

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/")
async def liveness():
    return {"status": "healthy", "service": "simple-task-manager", "version": __version__}


@router.get("/ready")
async def readiness():
    manager = db_module.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": {"database": "unavailable"}},
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
