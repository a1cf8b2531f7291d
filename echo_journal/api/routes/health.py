"""Health & Readiness Probes - liveness and readiness endpoints.

Invariants:
    - GET /api/v1/health/ always returns 200 if process is up (liveness)
    - GET /api/v1/health/ready returns 503 until the auth session is ready and the
      store is reachable (readiness)
"""

import logging
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "echo-journal-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe - includes store connectivity and auth readiness."""
    db = getattr(request.app.state, "db", None)
    journal = getattr(request.app.state, "journal", None)
    db_ok = await db.health_check() if db else False
    auth_ready = journal.auth.is_ready if journal else False
    if not (db_ok and auth_ready):
        reason = "database_unavailable" if not db_ok else "auth_not_ready"
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": reason},
        )
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "auth": journal.session.state.value,
        },
    }
