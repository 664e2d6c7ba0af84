"""Database models for post categories."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from blogapi.auth.models import ensure_utc_aware


CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.categories (
    id UUID PRIMARY KEY,
    name TEXT,
    created_at TIMESTAMP
)
"""

CATEGORY_NAME_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS categories_name_idx ON {keyspace}.categories (name)
"""

CATEGORY_TABLES_CQL = [
    CATEGORY_TABLE_CQL,
    CATEGORY_NAME_INDEX_CQL,
]


class Category:
    """Named tag for posts. Created once, never updated or deleted."""

    def __init__(
        self,
        id: UUID | None = None,
        name: str = "",
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Category":
        return cls(id=row.id, name=row.name, created_at=row.created_at)

    def __repr__(self) -> str:
        return f"Category(id={self.id}, name={self.name!r})"
