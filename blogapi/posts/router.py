"""Post API endpoints.

Routes:
- GET    /posts                                  list (page, limit, search, category)
- POST   /posts                                  create (multipart, optional image)
- POST   /posts/upload                           upload an image
- GET    /posts/{id}                             read
- PUT    /posts/{id}                             partial update
- DELETE /posts/{id}                             delete (author only)
- POST   /posts/{id}/comments                    comment (guests allowed)
- DELETE /posts/{id}/comments/{cid}              delete comment (author only)
- POST   /posts/{id}/comments/{cid}/replies      reply (guests allowed)
- DELETE /posts/{id}/comments/{cid}/replies/{rid} delete reply (author only)
"""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from blogapi.auth.dependencies import CurrentUser, OptionalUser
from blogapi.auth.schemas import MessageResponse
from blogapi.config import get_settings
from blogapi.storage.dependencies import (
    StorageServiceDep,
    handle_storage_error,
    store_upload,
)
from blogapi.storage.schemas import ImageUploadResponse
from blogapi.storage.service import NoFileUploadedError, StorageError

from .dependencies import PostServiceDep, handle_post_error
from .schemas import (
    AddCommentRequest,
    CommentResponse,
    CreatePostRequest,
    PostListResponse,
    PostResponse,
    ReplyResponse,
    UpdatePostRequest,
)
from .service import PostError


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])

_settings = get_settings()


# ==============================================================================
# Posts
# ==============================================================================


@router.get("", response_model=PostListResponse, summary="List posts")
async def list_posts(
    post_service: PostServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[
        int, Query(ge=1, le=_settings.posts_max_page_size)
    ] = _settings.posts_default_page_size,
    search: Annotated[str | None, Query(max_length=200)] = None,
    category: Annotated[str | None, Query(max_length=200)] = None,
) -> PostListResponse:
    """Most recent first. ``search`` matches title, category name or author username."""
    return await post_service.list_posts(
        page=page, limit=limit, search=search, category=category
    )


@router.post(
    "/upload",
    response_model=ImageUploadResponse,
    summary="Upload image",
    responses={
        400: {"description": "No file or invalid content"},
        413: {"description": "File too large"},
        415: {"description": "Unsupported media type"},
    },
)
async def upload_image(
    storage: StorageServiceDep,
    user: CurrentUser,
    image: Annotated[UploadFile | None, File()] = None,
) -> ImageUploadResponse:
    try:
        if image is None or not image.filename:
            raise NoFileUploadedError
        image_url = await store_upload(storage, image)
    except StorageError as e:
        logger.warning("image_upload_rejected", code=e.code, user_id=str(user.id))
        raise handle_storage_error(e) from e
    return ImageUploadResponse(image_url=image_url)


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
    responses={400: {"description": "Missing fields or invalid image"}},
)
async def create_post(
    post_service: PostServiceDep,
    storage: StorageServiceDep,
    user: CurrentUser,
    title: Annotated[str | None, Form()] = None,
    content: Annotated[str | None, Form()] = None,
    author: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    slug: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> PostResponse:
    """Create a post from a multipart form; ``slug`` defaults to one derived from the title."""
    try:
        data = CreatePostRequest(
            title=title, content=content, author=author, category=category, slug=slug
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    featured_image = None
    if image is not None and image.filename:
        try:
            featured_image = await store_upload(storage, image)
        except StorageError as e:
            raise handle_storage_error(e) from e

    return await post_service.create_post(data, featured_image=featured_image)


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    summary="Get post",
    responses={404: {"description": "Post not found"}},
)
async def get_post(post_id: UUID, post_service: PostServiceDep) -> PostResponse:
    try:
        return await post_service.get_post(post_id)
    except PostError as e:
        raise handle_post_error(e) from e


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    summary="Update post",
    responses={404: {"description": "Post not found"}},
)
async def update_post(
    post_id: UUID,
    data: UpdatePostRequest,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> PostResponse:
    """Partial update. Unlike delete, this is not restricted to the author."""
    try:
        return await post_service.update_post(post_id, data)
    except PostError as e:
        raise handle_post_error(e) from e


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    summary="Delete post",
    responses={403: {"description": "Not the author"}, 404: {"description": "Post not found"}},
)
async def delete_post(
    post_id: UUID,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    try:
        await post_service.delete_post(post_id, user.id)
    except PostError as e:
        raise handle_post_error(e) from e
    return MessageResponse(message="Post deleted")


# ==============================================================================
# Comments and Replies
# ==============================================================================


@router.post(
    "/{post_id}/comments",
    response_model=list[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    post_id: UUID,
    data: AddCommentRequest,
    post_service: PostServiceDep,
    user: OptionalUser,
) -> list[CommentResponse]:
    """Comment as the signed-in user, or as a named guest without a token."""
    try:
        return await post_service.add_comment(
            post_id,
            content=data.content,
            name=data.name,
            user_id=user.id if user else None,
        )
    except PostError as e:
        raise handle_post_error(e) from e


@router.delete(
    "/{post_id}/comments/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
async def delete_comment(
    post_id: UUID,
    comment_id: UUID,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    try:
        await post_service.delete_comment(post_id, comment_id, user.id)
    except PostError as e:
        raise handle_post_error(e) from e
    return MessageResponse(message="Comment deleted")


@router.post(
    "/{post_id}/comments/{comment_id}/replies",
    response_model=list[ReplyResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add reply",
)
async def add_reply(
    post_id: UUID,
    comment_id: UUID,
    data: AddCommentRequest,
    post_service: PostServiceDep,
    user: OptionalUser,
) -> list[ReplyResponse]:
    try:
        return await post_service.add_reply(
            post_id,
            comment_id,
            content=data.content,
            name=data.name,
            user_id=user.id if user else None,
        )
    except PostError as e:
        raise handle_post_error(e) from e


@router.delete(
    "/{post_id}/comments/{comment_id}/replies/{reply_id}",
    response_model=MessageResponse,
    summary="Delete reply",
)
async def delete_reply(
    post_id: UUID,
    comment_id: UUID,
    reply_id: UUID,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    try:
        await post_service.delete_reply(post_id, comment_id, reply_id, user.id)
    except PostError as e:
        raise handle_post_error(e) from e
    return MessageResponse(message="Reply deleted")
