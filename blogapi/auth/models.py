"""Database models for authentication.

Cassandra table definitions for the users table. Usernames and emails are
looked up through secondary indexes; uniqueness is checked by the service
before insert since Cassandra has no unique constraint.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    username TEXT,
    email TEXT,
    password_hash TEXT,
    created_at TIMESTAMP
)
"""

USER_EMAIL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_email_idx ON {keyspace}.users (email)
"""

USER_USERNAME_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_username_idx ON {keyspace}.users (username)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_EMAIL_INDEX_CQL,
    USER_USERNAME_INDEX_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class User:
    """Registered account.

    Attributes:
        id: Unique identifier
        username: Unique display handle
        email: Unique email address (lowercased)
        password_hash: Argon2id hash
        created_at: Registration timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        username: str = "",
        email: str = "",
        password_hash: str = "",
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.username = username.strip()
        self.email = email.lower().strip()
        self.password_hash = password_hash
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            username=row.username,
            email=row.email,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def to_public(self) -> dict[str, Any]:
        """Public projection (never includes the password hash)."""
        return {"id": self.id, "username": self.username, "email": self.email}

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username!r})"
