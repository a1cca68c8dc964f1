"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from salesmail.db.engine import ping
from salesmail.services.clock import iso_now

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Liveness check endpoint.

    Returns 200 if the process is running.
    Does not check database or other dependencies.
    """
    return {"status": "healthy", "timestamp": iso_now()}


@router.get("/health/ready")
def readiness_check(request: Request) -> JSONResponse:
    """Readiness check endpoint.

    Runs SELECT 1 against the application engine. Returns 503 with
    status "degraded" when the database does not answer.
    """
    if ping(request.app.state.db_engine):
        return JSONResponse(
            status_code=200,
            content={"status": "ready", "database": "up", "timestamp": iso_now()},
        )
    return JSONResponse(
        status_code=503,
        content={"status": "degraded", "database": "down", "timestamp": iso_now()},
    )
