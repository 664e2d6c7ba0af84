"""Authentication module.

Registration, login and signed identity tokens.

Note: Router is not exported here to avoid circular imports.
Import directly from blogapi.auth.router when needed.
"""

from .models import AUTH_TABLES_CQL, User
from .security import TokenSigner, get_token_signer, hash_password, verify_password
from .service import (
    AuthError,
    AuthService,
    InvalidCredentialsError,
    InvalidTokenError,
    UserExistsError,
)


__all__ = [
    "AUTH_TABLES_CQL",
    "AuthError",
    "AuthService",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "TokenSigner",
    "User",
    "UserExistsError",
    "get_token_signer",
    "hash_password",
    "verify_password",
]
