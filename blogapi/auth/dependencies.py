"""FastAPI dependencies for authentication.

Provides dependency injection for:
- The auth service and token signer
- Current user extraction from the bearer token (required or optional)
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from blogapi.auth.schemas import CurrentUserClaims
from blogapi.auth.security import TokenSigner, get_token_signer
from blogapi.auth.service import AuthService, InvalidTokenError
from blogapi.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract the token from ``Authorization: Bearer <token>``."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_auth_service(request: Request) -> AuthService:
    """Get auth service from app state (503 when the database is down)."""
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        )
    return service


def verify_token(signer: TokenSigner, token: str | None) -> CurrentUserClaims:
    """Resolve the caller's identity from a token without touching the user store.

    Raises:
        InvalidTokenError: If the token is absent, malformed or expired
    """
    if not token:
        raise InvalidTokenError("No token, authorization denied")

    try:
        payload = signer.decode_token(token)
        claims = CurrentUserClaims(
            id=payload["sub"],
            username=payload.get("username", ""),
            email=payload.get("email", ""),
        )
    except (JWTError, KeyError, ValueError) as e:
        raise InvalidTokenError from e

    set_user_id(claims.id)
    return claims


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
    signer: Annotated[TokenSigner, Depends(get_token_signer)],
) -> CurrentUserClaims:
    """Main authentication dependency.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    try:
        return verify_token(signer, token)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
    signer: Annotated[TokenSigner, Depends(get_token_signer)],
) -> CurrentUserClaims | None:
    """Current user if a valid token is attached, None otherwise (guest)."""
    if not token:
        return None
    try:
        return verify_token(signer, token)
    except InvalidTokenError:
        return None


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]

CurrentUser = Annotated[CurrentUserClaims, Depends(get_current_user)]

OptionalUser = Annotated[CurrentUserClaims | None, Depends(get_current_user_optional)]
