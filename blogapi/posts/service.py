"""Post service layer.

Business logic for:
- Post listing (search, category filter, pagination) and CRUD
- Comments and replies embedded in the post document
- Author-only moderation of posts, comments and replies

Every mutation is a read-modify-write of the whole post row. Within one
process, mutations of the same post are serialized by a per-post lock; across
processes the last write wins.
"""

import asyncio
import weakref
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from blogapi.auth.service import AuthService
from blogapi.categories.service import CategoryService

from .models import Post, create_comment, create_post, create_reply
from .query import ResolvedPost, filter_posts, paginate
from .schemas import (
    CommentResponse,
    CreatePostRequest,
    PostListResponse,
    PostResponse,
    ReplyResponse,
    UpdatePostRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PostError(Exception):
    """Base post error."""

    def __init__(self, message: str, code: str = "post_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class PostNotFoundError(PostError):
    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


class CommentNotFoundError(PostError):
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class ReplyNotFoundError(PostError):
    def __init__(self, message: str = "Reply not found"):
        super().__init__(message, "reply_not_found")


class PermissionDeniedError(PostError):
    """Caller is authenticated but is not the post's author."""

    def __init__(self, message: str = "You are not authorized to modify this post"):
        super().__init__(message, "permission_denied")


class PostValidationError(PostError):
    """Request content rejected before any lookup or write."""

    def __init__(self, message: str):
        super().__init__(message, "validation_error")


def _commenter(
    content: str | None, name: str | None, user_id: UUID | None, kind: str
) -> tuple[str, str | None]:
    """Validate a comment or reply author and body.

    Raises:
        PostValidationError: If content is empty or a guest gave no name
    """
    content = (content or "").strip()
    name = (name or "").strip() or None
    if not content or (name is None and user_id is None):
        raise PostValidationError(
            f"Name and content are required for guest {kind}."
        )
    return content, name


# ==============================================================================
# Post Service
# ==============================================================================


class PostService:
    """Service for posts and their embedded comments."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        users: AuthService,
        categories: CategoryService,
    ):
        """Initialize with Cassandra session and the reference resolvers.

        Args:
            session: Cassandra driver session (with ``aexecute``)
            keyspace: Keyspace name for queries
            users: Resolves post authors
            categories: Resolves post categories
        """
        self.session = session
        self.keyspace = keyspace
        self.users = users
        self.categories = categories
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._list_posts = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.posts"
        )
        self._get_post = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.posts WHERE id = ?"
        )
        self._upsert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts
            (id, title, slug, content, category_id, author_id, featured_image,
             comments, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_post = self.session.prepare(
            f"DELETE FROM {self.keyspace}.posts WHERE id = ?"
        )

    def _lock(self, post_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(post_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[post_id] = lock
        return lock

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def _load(self, post_id: UUID) -> Post:
        rows = await self.session.aexecute(self._get_post, [post_id])
        row = rows.one()
        if not row:
            raise PostNotFoundError
        return Post.from_row(row)

    async def _save(self, post: Post) -> None:
        await self.session.aexecute(self._upsert_post, post.to_row())

    async def _resolve(self, posts: list[Post]) -> list[ResolvedPost]:
        authors = await self.users.get_users_by_ids(
            p.author_id for p in posts if p.author_id
        )
        categories = await self.categories.get_categories_by_ids(
            p.category_id for p in posts if p.category_id
        )
        return [
            ResolvedPost(
                post=p,
                author=authors.get(p.author_id) if p.author_id else None,
                category=categories.get(p.category_id) if p.category_id else None,
            )
            for p in posts
        ]

    async def _to_response(self, post: Post) -> PostResponse:
        (resolved,) = await self._resolve([post])
        return PostResponse.from_resolved(resolved)

    @staticmethod
    def _ensure_author(post: Post, user_id: UUID, message: str) -> None:
        if post.author_id != user_id:
            logger.info(
                "post_permission_denied", post_id=str(post.id), user_id=str(user_id)
            )
            raise PermissionDeniedError(message)

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def list_posts(
        self,
        page: int = 1,
        limit: int = 5,
        search: str | None = None,
        category: str | None = None,
    ) -> PostListResponse:
        """List posts, most recent first.

        Every row is loaded and resolved, then filtered in memory: ``search``
        matches title, category name or author username; ``category`` matches
        category name or exact id. Both are case-insensitive substring matches
        except the id comparison.
        """
        rows = await self.session.aexecute(self._list_posts)
        resolved = await self._resolve([Post.from_row(row) for row in rows])
        matched = filter_posts(resolved, search=search, category=category)
        result = paginate(matched, page, limit)
        return PostListResponse(
            posts=[PostResponse.from_resolved(i) for i in result.items],
            total=result.total,
            page=result.page,
            pages=result.pages,
        )

    async def get_post(self, post_id: UUID) -> PostResponse:
        """Get a post by id.

        Raises:
            PostNotFoundError: If the post does not exist
        """
        return await self._to_response(await self._load(post_id))

    async def create_post(
        self, data: CreatePostRequest, featured_image: str | None = None
    ) -> PostResponse:
        """Create a post. Author and category references are stored as given."""
        post = create_post(
            title=data.title,
            content=data.content,
            category_id=data.category,
            author_id=data.author,
            slug=data.slug,
            featured_image=featured_image,
        )
        await self._save(post)
        logger.info("post_created", post_id=str(post.id), slug=post.slug)
        return await self._to_response(post)

    async def update_post(self, post_id: UUID, data: UpdatePostRequest) -> PostResponse:
        """Apply a partial update. Any authenticated caller may update any post.

        Raises:
            PostNotFoundError: If the post does not exist
        """
        changes: dict[str, Any] = data.changes()
        async with self._lock(post_id):
            post = await self._load(post_id)
            for field_name, value in changes.items():
                attr = {"author": "author_id", "category": "category_id"}.get(
                    field_name, field_name
                )
                setattr(post, attr, value)
            post.updated_at = datetime.now(UTC)
            await self._save(post)
        logger.info("post_updated", post_id=str(post_id), fields=sorted(changes))
        return await self._to_response(post)

    async def delete_post(self, post_id: UUID, user_id: UUID) -> None:
        """Delete a post with all its comments and replies.

        Raises:
            PostNotFoundError: If the post does not exist
            PermissionDeniedError: If the caller is not the author
        """
        async with self._lock(post_id):
            post = await self._load(post_id)
            self._ensure_author(
                post, user_id, "You are not authorized to delete this post"
            )
            await self.session.aexecute(self._delete_post, [post_id])
        logger.info("post_deleted", post_id=str(post_id), user_id=str(user_id))

    # ==========================================================================
    # Comments and Replies
    # ==========================================================================

    async def add_comment(
        self,
        post_id: UUID,
        content: str | None,
        name: str | None = None,
        user_id: UUID | None = None,
    ) -> list[CommentResponse]:
        """Append a comment and return the post's full comment list.

        Registered callers are recorded by id; guests must give a name.

        Raises:
            PostValidationError: Checked before the post lookup
            PostNotFoundError: If the post does not exist
        """
        content, name = _commenter(content, name, user_id, "comments")
        async with self._lock(post_id):
            post = await self._load(post_id)
            post.comments.append(create_comment(content, user_id=user_id, name=name))
            await self._save(post)
        logger.info("comment_added", post_id=str(post_id), guest=user_id is None)
        return [CommentResponse.from_comment(c) for c in post.comments]

    async def add_reply(
        self,
        post_id: UUID,
        comment_id: UUID,
        content: str | None,
        name: str | None = None,
        user_id: UUID | None = None,
    ) -> list[ReplyResponse]:
        """Append a reply to a comment and return that comment's replies.

        Raises:
            PostValidationError: Checked before the post lookup
            PostNotFoundError: If the post does not exist
            CommentNotFoundError: If the comment does not exist
        """
        content, name = _commenter(content, name, user_id, "replies")
        async with self._lock(post_id):
            post = await self._load(post_id)
            comment = post.find_comment(comment_id)
            if comment is None:
                raise CommentNotFoundError
            comment.replies.append(create_reply(content, user_id=user_id, name=name))
            await self._save(post)
        logger.info(
            "reply_added",
            post_id=str(post_id),
            comment_id=str(comment_id),
            guest=user_id is None,
        )
        return [ReplyResponse.from_reply(r) for r in comment.replies]

    async def delete_comment(
        self, post_id: UUID, comment_id: UUID, user_id: UUID
    ) -> None:
        """Remove a comment (and its replies). Only the post's author may.

        Raises:
            PostNotFoundError, PermissionDeniedError, CommentNotFoundError,
            checked in that order
        """
        async with self._lock(post_id):
            post = await self._load(post_id)
            self._ensure_author(
                post, user_id, "You are not authorized to delete comments on this post"
            )
            comment = post.find_comment(comment_id)
            if comment is None:
                raise CommentNotFoundError
            post.comments.remove(comment)
            await self._save(post)
        logger.info("comment_deleted", post_id=str(post_id), comment_id=str(comment_id))

    async def delete_reply(
        self, post_id: UUID, comment_id: UUID, reply_id: UUID, user_id: UUID
    ) -> None:
        """Remove a reply. Only the post's author may.

        Raises:
            PostNotFoundError, PermissionDeniedError, CommentNotFoundError,
            ReplyNotFoundError, checked in that order
        """
        async with self._lock(post_id):
            post = await self._load(post_id)
            self._ensure_author(
                post, user_id, "You are not authorized to delete replies on this post"
            )
            comment = post.find_comment(comment_id)
            if comment is None:
                raise CommentNotFoundError
            reply = comment.find_reply(reply_id)
            if reply is None:
                raise ReplyNotFoundError
            comment.replies.remove(reply)
            await self._save(post)
        logger.info(
            "reply_deleted",
            post_id=str(post_id),
            comment_id=str(comment_id),
            reply_id=str(reply_id),
        )
