"""Sign-up, sign-in and the token gate for protected routes (require_account)."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.security import hash_password, verify_password
from app.models.account import Account
from app.schemas.auth import (
    ErrorResponse,
    MessageResponse,
    SignInRequest,
    SignUpRequest,
)
from app.services.account_store import (
    AccountConflictError,
    AccountNotFoundError,
    AccountStore,
    AccountStoreError,
    SQLAlchemyAccountStore,
)
from app.services.token_service import (
    InvalidTokenError,
    TokenIssueError,
    TokenService,
)

logger = logging.getLogger(__name__)
router = APIRouter()

# Raw token in a custom header (not "Authorization: Bearer ...").
token_header = APIKeyHeader(name=settings.JWT_HEADER_NAME, auto_error=False)

PERMISSION_DENIED = "Permission Denied"
INVALID_CREDENTIALS = "Invalid Credentials!"

# OpenAPI docs for the {"error": ...} bodies rendered by app.main.
ERROR_RESPONSES: dict[int | str, dict] = {400: {"model": ErrorResponse}}
PROTECTED_RESPONSES: dict[int | str, dict] = {
    **ERROR_RESPONSES,
    403: {"model": ErrorResponse},
}


def get_account_store(db: Annotated[Session, Depends(get_db)]) -> AccountStore:
    """Dependency: account store bound to the request's DB session."""
    return SQLAlchemyAccountStore(db)


@lru_cache
def get_token_service() -> TokenService:
    """Dependency: process-wide token service built once from settings."""
    return TokenService.from_settings(get_settings())


def require_account(
    token: Annotated[str | None, Depends(token_header)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    store: Annotated[AccountStore, Depends(get_account_store)],
) -> Account:
    """
    Dependency: require a valid token whose subject is an existing account.

    Bad signature, expiry, malformed token and unknown account all produce the
    same 403 so callers cannot tell them apart.
    """
    try:
        claims = tokens.validate_token(token)
        return store.get_account_by_id(claims.account_id)
    except (InvalidTokenError, AccountStoreError) as e:
        logger.debug("Rejected token: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=PERMISSION_DENIED,
        ) from e


@router.post(
    "/sign-up",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
def sign_up(
    body: SignUpRequest,
    store: Annotated[AccountStore, Depends(get_account_store)],
) -> MessageResponse:
    """Register an account; the password is stored as a bcrypt hash."""
    if body.password != body.confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="password and confirm password should match",
        )

    account = Account.new(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password_hash=hash_password(body.password),
    )
    try:
        store.create_account(account)
    except AccountConflictError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        ) from e
    except AccountStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="unable to create account please try again",
        ) from e
    return MessageResponse(message="Sign up successful!")


@router.post("/sign-in", response_model=MessageResponse, responses=ERROR_RESPONSES)
def sign_in(
    body: SignInRequest,
    response: Response,
    store: Annotated[AccountStore, Depends(get_account_store)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> MessageResponse:
    """
    Check email and password; on success return the signed token in the
    x-jwt-token response header. Unknown email and wrong password give the
    same error.
    """
    try:
        account = store.sign_in(body.email)
    except AccountNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_CREDENTIALS,
        ) from e
    except AccountStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        ) from e

    if not verify_password(body.password, account.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_CREDENTIALS,
        )

    try:
        token = tokens.issue_token(account)
    except TokenIssueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        ) from e

    response.headers[settings.JWT_HEADER_NAME] = token
    return MessageResponse(message="signed in successfully")
