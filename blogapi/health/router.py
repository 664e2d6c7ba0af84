"""Liveness, readiness and banner endpoints."""

from fastapi import APIRouter, Request, Response, status

from blogapi.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])

# Services that need a Cassandra session; all are set together by init_services.
DATABASE_SERVICES = ("auth_service", "category_service", "post_service")


def database_available(request: Request) -> bool:
    state = request.app.state
    return all(getattr(state, name, None) is not None for name in DATABASE_SERVICES)


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """503 until the database-backed services are wired, so a balancer holds traffic."""
    available = database_available(request)
    if not available:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if available else "unavailable",
        "database": available,
    }


@router.get("")
async def health(request: Request) -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "up" if database_available(request) else "down",
    }
