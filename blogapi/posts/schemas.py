"""Pydantic schemas for posts, comments and replies.

Multi-word response fields are emitted in camelCase (``featuredImage``,
``createdAt``, ``updatedAt``).
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from blogapi.auth.schemas import PublicUser

from .models import Comment, Reply
from .query import ResolvedPost


class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


# ==============================================================================
# Request Schemas
# ==============================================================================


def _required(value: Any, message: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(message)
    return value.strip() if isinstance(value, str) else value


class CreatePostRequest(BaseModel):
    """Fields of the multipart create-post form."""

    model_config = ConfigDict(validate_default=True)

    title: str | None = None
    content: str | None = None
    author: UUID | None = None
    category: UUID | None = None
    slug: str | None = None

    @field_validator("title", "content", "author", "category", mode="before")
    @classmethod
    def validate_required(cls, v: Any, info: ValidationInfo) -> Any:
        return _required(v, f"{info.field_name.capitalize()} is required")

    @field_validator("slug")
    @classmethod
    def blank_slug_is_absent(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class UpdatePostRequest(CamelModel):
    """Partial post update. Omitted fields are left alone; empty ones are rejected."""

    title: str | None = None
    content: str | None = None
    author: UUID | None = None
    category: UUID | None = None
    slug: str | None = None
    featured_image: str | None = None

    @field_validator(
        "title", "content", "author", "category", "slug", "featured_image",
        mode="before",
    )
    @classmethod
    def validate_not_empty(cls, v: Any, info: ValidationInfo) -> Any:
        # Only runs for keys the client sent, so an explicit null is rejected too.
        label = info.field_name.replace("_", " ").capitalize()
        return _required(v, f"{label} cannot be empty")

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AddCommentRequest(BaseModel):
    """Comment or reply body. ``name`` is only needed for guests."""

    name: str | None = Field(None, max_length=100)
    content: str | None = Field(None, max_length=10000)


# ==============================================================================
# Response Schemas
# ==============================================================================


class CategoryRef(CamelModel):
    id: UUID
    name: str


class ReplyResponse(CamelModel):
    id: UUID
    content: str
    user: UUID | None = None
    name: str | None = None
    created_at: datetime

    @classmethod
    def from_reply(cls, reply: Reply) -> "ReplyResponse":
        return cls(
            id=reply.id,
            content=reply.content,
            user=reply.user_id,
            name=reply.name,
            created_at=reply.created_at,
        )


class CommentResponse(CamelModel):
    id: UUID
    content: str
    user: UUID | None = None
    name: str | None = None
    created_at: datetime
    replies: list[ReplyResponse] = []

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            content=comment.content,
            user=comment.user_id,
            name=comment.name,
            created_at=comment.created_at,
            replies=[ReplyResponse.from_reply(r) for r in comment.replies],
        )


class PostResponse(CamelModel):
    """A post with author and category projections (null when dangling)."""

    id: UUID
    title: str
    slug: str
    content: str
    category: CategoryRef | None = None
    author: PublicUser | None = None
    featured_image: str | None = None
    comments: list[CommentResponse] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_resolved(cls, item: ResolvedPost) -> "PostResponse":
        post = item.post
        return cls(
            id=post.id,
            title=post.title,
            slug=post.slug,
            content=post.content,
            category=CategoryRef.model_validate(item.category)
            if item.category
            else None,
            author=PublicUser.model_validate(item.author.to_public())
            if item.author
            else None,
            featured_image=post.featured_image,
            comments=[CommentResponse.from_comment(c) for c in post.comments],
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostListResponse(BaseModel):
    """One page of posts, most recent first."""

    posts: list[PostResponse]
    total: int
    page: int
    pages: int
