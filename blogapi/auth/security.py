"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id (OWASP recommended)
- Signed identity tokens (JWT) with an injected signing key
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from jose import JWTError, jwt

from blogapi.config.settings import get_settings


# Argon2id configuration (OWASP recommended parameters)
# https://cheatsheetseries.owasp.org/cheatsheets/Password_Storage_Cheat_Sheet.html
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,  # 19 MiB
    parallelism=1,
    hash_len=32,
    salt_len=16,
)

TOKEN_TYPE = "access"

KeySource = str | Callable[[], str]


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    The returned hash embeds the salt and parameters, so it is self-contained
    for verification.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored Argon2id hash."""
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


class TokenSigner:
    """Issues and validates identity tokens.

    The signing key is supplied at construction, either as a fixed string or
    as a callable queried on every sign/verify (so a rotating key store can be
    plugged in without touching callers).

    Token payload:
        - sub: user id
        - username, email: public identity claims
        - iat, exp: issue and expiry timestamps
        - type: "access"
    """

    def __init__(
        self,
        key_source: KeySource,
        algorithm: str = "HS256",
        expires_delta: timedelta = timedelta(days=7),
    ) -> None:
        self._key_source = key_source
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    @property
    def key(self) -> str:
        if callable(self._key_source):
            return self._key_source()
        return self._key_source

    def create_token(
        self,
        data: dict[str, Any],
        expires_delta: timedelta | None = None,
    ) -> str:
        """Sign a token for the given claims.

        Args:
            data: Identity claims (``sub``, ``username``, ``email``)
            expires_delta: Override of the default validity window

        Returns:
            Encoded JWT string
        """
        now = datetime.now(UTC)
        to_encode = data.copy()
        to_encode.update(
            {
                "iat": now,
                "exp": now + (expires_delta or self.expires_delta),
                "type": TOKEN_TYPE,
            }
        )
        return jwt.encode(to_encode, self.key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Validate signature, expiry and token type.

        Raises:
            JWTError: If the token is malformed, expired, tampered with or lacks
                the identity claims.
        """
        payload = jwt.decode(token, self.key, algorithms=[self.algorithm])

        if payload.get("type") != TOKEN_TYPE:
            msg = f"Invalid token type: expected '{TOKEN_TYPE}'"
            raise JWTError(msg)

        if not payload.get("sub"):
            msg = "Token missing sub claim"
            raise JWTError(msg)

        return payload


@lru_cache
def get_token_signer() -> TokenSigner:
    """Signer configured from settings; the key is read lazily from them."""
    settings = get_settings()
    return TokenSigner(
        key_source=lambda: get_settings().auth_secret_key,
        algorithm=settings.auth_algorithm,
        expires_delta=timedelta(days=settings.auth_token_expire_days),
    )
