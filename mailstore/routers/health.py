"""Health check router for system monitoring."""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import structlog

from .. import __version__
from ..database.engine import check_database_connection

logger = structlog.get_logger(__name__)
router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": __version__,
        "service": "mailstore"
    }


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness check: the database must be reachable."""
    engine = getattr(request.app.state, "engine", None)
    db_healthy = engine is not None and await check_database_connection(engine)

    if not db_healthy:
        logger.warning("Readiness check failed", database="unavailable")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": "unavailable", "timestamp": _now()}
        )

    return JSONResponse(
        status_code=200,
        content={"status": "ready", "database": "connected", "timestamp": _now()}
    )
