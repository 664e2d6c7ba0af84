"""Database models for posts and their embedded comments.

A post is stored as one row in the ``posts`` table. Its comments, and the
replies under each comment, live in a single JSON ``comments`` column so that
every mutation rewrites the whole post document in one INSERT.

Architecture: denormalized document per post
- author_id / category_id are references that may dangle; they resolve to
  None on read and are never validated on write
- comment and reply order is append order
"""

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import orjson

from blogapi.auth.models import ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    content TEXT,
    category_id UUID,
    author_id UUID,
    featured_image TEXT,
    comments TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

POST_TABLES_CQL = [
    POST_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


def _parse_datetime(value: str) -> datetime:
    return ensure_utc_aware(datetime.fromisoformat(value))


@dataclass
class Reply:
    """Reply under a comment. Exactly one of ``user_id`` or ``name`` is set."""

    id: UUID
    content: str
    created_at: datetime
    user_id: UUID | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "content": self.content,
            "user": str(self.user_id) if self.user_id else None,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reply":
        return cls(
            id=UUID(data["id"]),
            content=data["content"],
            created_at=_parse_datetime(data["created_at"]),
            user_id=UUID(data["user"]) if data.get("user") else None,
            name=data.get("name"),
        )


@dataclass
class Comment:
    """Comment embedded in a post, with its own ordered replies."""

    id: UUID
    content: str
    created_at: datetime
    user_id: UUID | None = None
    name: str | None = None
    replies: list[Reply] = field(default_factory=list)

    def find_reply(self, reply_id: UUID) -> Reply | None:
        return next((r for r in self.replies if r.id == reply_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "content": self.content,
            "user": str(self.user_id) if self.user_id else None,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "replies": [r.to_dict() for r in self.replies],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        return cls(
            id=UUID(data["id"]),
            content=data["content"],
            created_at=_parse_datetime(data["created_at"]),
            user_id=UUID(data["user"]) if data.get("user") else None,
            name=data.get("name"),
            replies=[Reply.from_dict(r) for r in data.get("replies") or []],
        )


def encode_comments(comments: list[Comment]) -> str:
    """Serialize the comment tree for the ``comments`` column."""
    return orjson.dumps([c.to_dict() for c in comments]).decode()


def decode_comments(raw: str | None) -> list[Comment]:
    if not raw:
        return []
    return [Comment.from_dict(item) for item in orjson.loads(raw)]


@dataclass
class Post:
    """Post entity including its embedded comment document."""

    id: UUID
    title: str
    slug: str
    content: str
    category_id: UUID | None
    author_id: UUID | None
    featured_image: str | None
    comments: list[Comment]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        created_at = ensure_utc_aware(row.created_at)
        return cls(
            id=row.id,
            title=row.title or "",
            slug=row.slug or "",
            content=row.content or "",
            category_id=row.category_id,
            author_id=row.author_id,
            featured_image=row.featured_image,
            comments=decode_comments(row.comments),
            created_at=created_at,
            updated_at=ensure_utc_aware(row.updated_at) or created_at,
        )

    def to_row(self) -> list[Any]:
        """Column values in ``INSERT`` order."""
        return [
            self.id,
            self.title,
            self.slug,
            self.content,
            self.category_id,
            self.author_id,
            self.featured_image,
            encode_comments(self.comments),
            self.created_at,
            self.updated_at,
        ]

    def find_comment(self, comment_id: UUID) -> Comment | None:
        return next((c for c in self.comments if c.id == comment_id), None)


# ==============================================================================
# Factory Functions
# ==============================================================================

_NON_WORD_RE = re.compile(r"[^\w ]+")
_SPACES_RE = re.compile(r" +")


def slugify(title: str) -> str:
    """Derive a URL slug: lowercase, drop non-word characters, hyphenate spaces.

    >>> slugify("Hello World!")
    'hello-world'
    """
    return _SPACES_RE.sub("-", _NON_WORD_RE.sub("", title.lower()))


def create_post(
    title: str,
    content: str,
    category_id: UUID,
    author_id: UUID,
    slug: str | None = None,
    featured_image: str | None = None,
) -> Post:
    """Create a new post with a derived slug when none is given."""
    now = datetime.now(UTC)
    return Post(
        id=uuid4(),
        title=title,
        slug=slug or slugify(title),
        content=content,
        category_id=category_id,
        author_id=author_id,
        featured_image=featured_image,
        comments=[],
        created_at=now,
        updated_at=now,
    )


def create_comment(
    content: str, user_id: UUID | None = None, name: str | None = None
) -> Comment:
    """Registered commenters are recorded by id, guests by name, never both."""
    return Comment(
        id=uuid4(),
        content=content,
        created_at=datetime.now(UTC),
        user_id=user_id,
        name=None if user_id else name,
    )


def create_reply(
    content: str, user_id: UUID | None = None, name: str | None = None
) -> Reply:
    return Reply(
        id=uuid4(),
        content=content,
        created_at=datetime.now(UTC),
        user_id=user_id,
        name=None if user_id else name,
    )
