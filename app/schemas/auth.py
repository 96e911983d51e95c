"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field

from app.core.security import (
    EMAIL_MAX_LEN,
    NAME_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)


class SignUpRequest(BaseModel):
    """New account details; password and confirm_password must match."""

    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN)
    email: str = Field(..., min_length=3, max_length=EMAIL_MAX_LEN)
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN
    )
    confirm_password: str = Field(..., max_length=PASSWORD_MAX_LEN)


class SignInRequest(BaseModel):
    """Credentials for sign-in."""

    email: str = Field(..., min_length=1, max_length=EMAIL_MAX_LEN)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Human-readable error message")
