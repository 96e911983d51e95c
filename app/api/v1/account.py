"""Account endpoints: list, fetch, delete and the transfer stub."""

import re
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.v1.auth import (
    ERROR_RESPONSES,
    PROTECTED_RESPONSES,
    get_account_store,
    require_account,
)
from app.models.account import Account
from app.schemas.account import AccountResponse, TransferRequest
from app.schemas.auth import MessageResponse
from app.services.account_store import (
    AccountNotFoundError,
    AccountStore,
    AccountStoreError,
)

router = APIRouter()

# Optional sign then ASCII digits only: no whitespace, underscores or other scripts.
ACCOUNT_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def _parse_account_id(raw: str) -> int:
    """Path ids must be plain integers."""
    if ACCOUNT_ID_PATTERN.fullmatch(raw) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="provide a numeric value for id",
        )
    return int(raw)


@router.get("", response_model=list[AccountResponse], responses=ERROR_RESPONSES)
def list_accounts(
    store: Annotated[AccountStore, Depends(get_account_store)],
) -> list[AccountResponse]:
    """Return every account (no authentication required)."""
    try:
        accounts = store.get_accounts()
    except AccountStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="unable to get account",
        ) from e
    return [AccountResponse.model_validate(a) for a in accounts]


@router.post(
    "/transfer", response_model=TransferRequest, responses=PROTECTED_RESPONSES
)
def transfer(
    body: TransferRequest,
    _account: Annotated[Account, Depends(require_account)],
) -> TransferRequest:
    """Echo the transfer instruction. Balances are not changed."""
    return body


@router.get(
    "/{account_id}", response_model=AccountResponse, responses=PROTECTED_RESPONSES
)
def get_account(
    account_id: str,
    _account: Annotated[Account, Depends(require_account)],
    store: Annotated[AccountStore, Depends(get_account_store)],
) -> AccountResponse:
    """Return one account by id."""
    parsed_id = _parse_account_id(account_id)
    try:
        account = store.get_account_by_id(parsed_id)
    except AccountStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"account with id {parsed_id} not found",
        ) from e
    return AccountResponse.model_validate(account)


@router.delete(
    "/{account_id}", response_model=MessageResponse, responses=PROTECTED_RESPONSES
)
def delete_account(
    account_id: str,
    _account: Annotated[Account, Depends(require_account)],
    store: Annotated[AccountStore, Depends(get_account_store)],
) -> MessageResponse:
    """Delete one account by id; an unknown id is reported, not ignored."""
    parsed_id = _parse_account_id(account_id)
    try:
        store.delete_account(parsed_id)
    except AccountNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        ) from e
    except AccountStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"unable to delete account {parsed_id}",
        ) from e
    return MessageResponse(message="account deleted")
