"""Posts with embedded comments and replies.

Note: Router is not exported here to avoid circular imports.
"""

from .models import POST_TABLES_CQL, Comment, Post, Reply, slugify
from .service import (
    CommentNotFoundError,
    PermissionDeniedError,
    PostError,
    PostNotFoundError,
    PostService,
    PostValidationError,
    ReplyNotFoundError,
)


__all__ = [
    "POST_TABLES_CQL",
    "Comment",
    "CommentNotFoundError",
    "PermissionDeniedError",
    "Post",
    "PostError",
    "PostNotFoundError",
    "PostService",
    "PostValidationError",
    "Reply",
    "ReplyNotFoundError",
    "slugify",
]
