"""Authentication API endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, status

from blogapi.auth.dependencies import AuthServiceDep
from blogapi.auth.schemas import AuthResponse, LoginRequest, RegisterRequest
from blogapi.auth.service import AuthError


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException.

    Duplicate accounts and bad credentials are both plain 400s; the body never
    tells a caller whether an email is registered.
    """
    status_map = {
        "invalid_credentials": status.HTTP_400_BAD_REQUEST,
        "user_exists": status.HTTP_400_BAD_REQUEST,
        "invalid_token": status.HTTP_401_UNAUTHORIZED,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={400: {"description": "Validation error or duplicate account"}},
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> AuthResponse:
    """Create an account and return a token with the public user projection."""
    try:
        user = await auth_service.register_user(data)
    except AuthError as e:
        logger.info("registration_rejected", code=e.code, field=getattr(e, "field", None))
        raise handle_auth_error(e) from e
    return auth_service.to_auth_response(user)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="User login",
    responses={400: {"description": "Invalid credentials"}},
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> AuthResponse:
    """Authenticate by email and password."""
    try:
        user = await auth_service.authenticate_user(data.email, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_auth_response(user)
