"""FastAPI dependencies for categories."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CategoryError, CategoryService


async def get_category_service(request: Request) -> CategoryService:
    """Get category service from app state."""
    service = getattr(request.app.state, "category_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Category service unavailable",
        )
    return service


CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]


def handle_category_error(error: CategoryError) -> HTTPException:
    status_map = {
        "category_exists": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
