"""In-memory AccountStore for tests and local experiments."""

import logging
import threading
from datetime import UTC, datetime
from typing import Any

from app.models.account import Account, generate_bank_number
from app.services.account_store import (
    MAX_BANK_NUMBER_ATTEMPTS,
    UPDATABLE_FIELDS,
    AccountConflictError,
    AccountNotFoundError,
    AccountStore,
    account_fields,
)

logger = logging.getLogger(__name__)


class InMemoryAccountStore(AccountStore):
    """
    Dict-backed store with the same uniqueness rules as the accounts table.

    Rows are kept as plain dicts and every read returns a fresh Account, so
    callers cannot mutate stored state without going through update_account.
    """

    def __init__(self) -> None:
        self._rows: dict[int, dict[str, Any]] = {}
        self._next_id = 0
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def _email_owner(self, email: str) -> int | None:
        for account_id, row in self._rows.items():
            if row["email"] == email:
                return account_id
        return None

    def _bank_number_taken(self, bank_number: int) -> bool:
        return any(row["bank_number"] == bank_number for row in self._rows.values())

    def create_account(self, account: Account) -> Account:
        fields = account_fields(account)
        with self._lock:
            if self._email_owner(fields["email"]) is not None:
                raise AccountConflictError(
                    f"account with email {fields['email']} already exists"
                )
            if fields["bank_number"] is None:
                fields["bank_number"] = generate_bank_number()
            for attempt in range(1, MAX_BANK_NUMBER_ATTEMPTS + 1):
                if not self._bank_number_taken(fields["bank_number"]):
                    break
                if attempt == MAX_BANK_NUMBER_ATTEMPTS:
                    raise AccountConflictError("unable to allocate a unique bank number")
                logger.warning(
                    "Bank number collision on create (attempt %s of %s); regenerating",
                    attempt,
                    MAX_BANK_NUMBER_ATTEMPTS,
                )
                fields["bank_number"] = generate_bank_number()

            self._next_id += 1
            fields["id"] = self._next_id
            if fields["balance"] is None:
                fields["balance"] = 0
            if fields["created_at"] is None:
                fields["created_at"] = datetime.now(UTC)
            self._rows[fields["id"]] = fields
            logger.info("Account created", extra={"account_id": fields["id"]})
            return Account(**fields)

    def sign_in(self, email: str) -> Account:
        with self._lock:
            account_id = self._email_owner(email)
            if account_id is None:
                raise AccountNotFoundError("account does not exist")
            return Account(**self._rows[account_id])

    def get_accounts(self) -> list[Account]:
        with self._lock:
            return [Account(**self._rows[k]) for k in sorted(self._rows)]

    def get_account_by_id(self, account_id: int) -> Account:
        with self._lock:
            row = self._rows.get(account_id)
            if row is None:
                raise AccountNotFoundError(f"account with id {account_id} not found")
            return Account(**row)

    def delete_account(self, account_id: int) -> None:
        with self._lock:
            if self._rows.pop(account_id, None) is None:
                raise AccountNotFoundError(f"account with id {account_id} not found")

    def update_account(self, account: Account) -> None:
        with self._lock:
            row = self._rows.get(account.id)
            if row is None:
                raise AccountNotFoundError(f"account with id {account.id} not found")
            owner = self._email_owner(account.email)
            if owner is not None and owner != account.id:
                raise AccountConflictError(
                    f"account with email {account.email} already exists"
                )
            for name in UPDATABLE_FIELDS:
                row[name] = getattr(account, name)
