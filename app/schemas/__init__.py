"""Pydantic request/response schemas."""

from app.schemas.account import AccountResponse, TransferRequest
from app.schemas.auth import (
    ErrorResponse,
    MessageResponse,
    SignInRequest,
    SignUpRequest,
)
from app.schemas.health import HealthResponse

__all__ = [
    "AccountResponse",
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse",
    "SignInRequest",
    "SignUpRequest",
    "TransferRequest",
]
