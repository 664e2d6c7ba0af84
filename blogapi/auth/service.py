"""Authentication service layer.

Business logic for:
- User registration and login
- Identity token issuance
- User lookups used to resolve post authors
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from blogapi.auth.models import User
from blogapi.auth.schemas import AuthResponse, PublicUser, RegisterRequest
from blogapi.auth.security import TokenSigner, hash_password, verify_password


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password; deliberately does not say which."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, "invalid_credentials")


class UserExistsError(AuthError):
    """Username or email already registered."""

    def __init__(
        self,
        message: str = "Username or email already exists",
        field: str | None = None,
    ):
        super().__init__(message, "user_exists")
        self.field = field


class InvalidTokenError(AuthError):
    """Missing, malformed or expired token."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, "invalid_token")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Registration, login and user lookups."""

    def __init__(self, session: "Session", keyspace: str, signer: TokenSigner):
        """Initialize with Cassandra session and the token signer.

        Args:
            session: Cassandra driver session (with ``aexecute``)
            keyspace: Keyspace name for queries
            signer: Signs identity tokens issued on register/login
        """
        self.session = session
        self.keyspace = keyspace
        self.signer = signer
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_user_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._get_user_by_username = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE username = ?"
        )
        self._get_users_by_ids = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id IN ?"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, username, email, password_hash, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # User Queries
    # ==========================================================================

    async def get_user_by_email(self, email: str) -> User | None:
        rows = await self.session.aexecute(
            self._get_user_by_email, [email.lower().strip()]
        )
        row = rows.one()
        return User.from_row(row) if row else None

    async def get_user_by_username(self, username: str) -> User | None:
        rows = await self.session.aexecute(
            self._get_user_by_username, [username.strip()]
        )
        row = rows.one()
        return User.from_row(row) if row else None

    async def get_users_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        """Batch lookup keyed by id; unknown ids are simply absent."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        rows = await self.session.aexecute(self._get_users_by_ids, [ids])
        return {row.id: User.from_row(row) for row in rows}

    # ==========================================================================
    # Registration / Login
    # ==========================================================================

    async def register_user(self, data: RegisterRequest) -> User:
        """Register a new user.

        Raises:
            UserExistsError: If username or email already exists
        """
        if await self.get_user_by_username(data.username):
            raise UserExistsError(field="username")

        if await self.get_user_by_email(data.email):
            raise UserExistsError(field="email")

        user = User(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
        )

        await self.session.aexecute(
            self._insert_user,
            [user.id, user.username, user.email, user.password_hash, user.created_at],
        )
        logger.info("user_registered", user_id=str(user.id), username=user.username)
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate by email and password.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        user = await self.get_user_by_email(email)
        if user is None:
            logger.info("login_failed", reason="unknown_email")
            raise InvalidCredentialsError

        if not verify_password(password, user.password_hash):
            logger.info("login_failed", reason="password_mismatch", user_id=str(user.id))
            raise InvalidCredentialsError

        return user

    # ==========================================================================
    # Tokens
    # ==========================================================================

    def create_token(self, user: User) -> str:
        return self.signer.create_token(
            {"sub": str(user.id), "username": user.username, "email": user.email}
        )

    def to_auth_response(self, user: User) -> AuthResponse:
        """Token plus public projection for a freshly authenticated user."""
        return AuthResponse(
            token=self.create_token(user),
            user=PublicUser.model_validate(user.to_public()),
        )
