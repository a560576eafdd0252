"""Health and status endpoints"""

from fastapi import APIRouter, Request

from ..exceptions import DatabaseError
from ..schemas import HealthStatus
from ..utils import utcnow

router = APIRouter(tags=["System"])


@router.get("/")
async def root(request: Request):
    """Service banner"""
    config = request.app.state.config
    return {
        "app": config.app_name,
        "version": config.app_version,
        "status": "online"
    }


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request):
    """Database round-trip plus pool statistics"""
    db = request.app.state.db
    checks = {}
    overall_status = "healthy"

    try:
        await db.ping()
        checks["database"] = "healthy"
    except DatabaseError as e:
        checks["database"] = f"unhealthy: {e.message}"
        overall_status = "unhealthy"

    return HealthStatus(
        status=overall_status,
        version=request.app.state.config.app_version,
        timestamp=utcnow(),
        checks=checks,
        stats={"database": db.get_stats()}
    )
