"""FastAPI dependencies for posts.

Provides dependency injection for:
- Post service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import PostError, PostService


async def get_post_service(request: Request) -> PostService:
    """Get post service from app state."""
    service = getattr(request.app.state, "post_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Post service unavailable",
        )
    return service


PostServiceDep = Annotated[PostService, Depends(get_post_service)]


def handle_post_error(error: PostError) -> HTTPException:
    """Convert post errors to HTTP exceptions.

    Existence is always checked before ownership, so an unknown post is a 404
    even for a caller who could not have modified it.
    """
    status_map = {
        "post_not_found": status.HTTP_404_NOT_FOUND,
        "comment_not_found": status.HTTP_404_NOT_FOUND,
        "reply_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "validation_error": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
