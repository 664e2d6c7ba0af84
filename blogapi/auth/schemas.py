"""Pydantic schemas for authentication.

Request and response models for registration, login and the identity carried
by a verified token.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from blogapi.auth.validators import validate_password, validate_username


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    username: str = Field(..., description="Unique username")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")

    @field_validator("username")
    @classmethod
    def validate_username_format(cls, v: str) -> str:
        result = validate_username(v)
        if not result.valid:
            raise ValueError(result.message or "Invalid username")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        result = validate_password(v)
        if not result.valid:
            raise ValueError(result.message or "Invalid password")
        return v


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")


# ==============================================================================
# Response Schemas
# ==============================================================================


class PublicUser(BaseModel):
    """Public user projection (id, username, email)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str


class AuthResponse(BaseModel):
    """Token plus public projection, returned by register and login."""

    token: str
    user: PublicUser


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


# ==============================================================================
# Internal Schemas (not exposed in API)
# ==============================================================================


class CurrentUserClaims(BaseModel):
    """Identity resolved from a verified token; the user store is not consulted."""

    id: UUID
    username: str
    email: str
