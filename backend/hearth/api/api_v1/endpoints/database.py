"""
Database health endpoints
"""

from fastapi import APIRouter, HTTPException, Request, status
import logging

from hearth.core.database_utils import DatabaseHealthCheck, check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()


def _health_check(request: Request) -> DatabaseHealthCheck:
    state = request.app.state
    return DatabaseHealthCheck(state.directory_engine, state.registry, state.cipher)


@router.get("/health")
def database_health(request: Request):
    """
    Directory connectivity, tenant storage and decrypt fallback counters
    """
    health_status = _health_check(request).check()

    if health_status["status"] in ("healthy", "degraded"):
        return health_status
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=health_status,
    )


@router.get("/connection")
def test_connection(request: Request):
    """
    Test basic directory connection
    """
    if check_database_connection(request.app.state.directory_engine):
        return {
            "status": "connected",
            "message": "Database connection successful",
        }
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"status": "disconnected", "message": "Database connection failed"},
    )
