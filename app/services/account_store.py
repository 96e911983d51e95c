"""Account storage contract and its SQLAlchemy (PostgreSQL) implementation.

The store resolves identity only: sign_in looks an account up by email and
never judges the password; callers verify the returned hash themselves.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.account import Account, generate_bank_number

logger = logging.getLogger(__name__)

# Attempts at a unique bank number before create_account gives up.
MAX_BANK_NUMBER_ATTEMPTS = 5

# Columns an update may overwrite; id, bank_number and created_at never change.
UPDATABLE_FIELDS = ("first_name", "last_name", "email", "password", "balance")

ACCOUNT_FIELDS = (
    "id",
    "first_name",
    "last_name",
    "email",
    "password",
    "bank_number",
    "balance",
    "created_at",
)


class AccountStoreError(Exception):
    """Base class for account storage failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AccountNotFoundError(AccountStoreError):
    """Raised when no account matches the requested id or email."""


class AccountConflictError(AccountStoreError):
    """Raised when a write would duplicate a unique value (email, bank number)."""


class StorageUnavailableError(AccountStoreError):
    """Raised when the backing database cannot complete the request."""


def account_fields(account: Account) -> dict[str, Any]:
    """Column values of an account as a plain dict."""
    return {name: getattr(account, name) for name in ACCOUNT_FIELDS}


class AccountStore(ABC):
    """Persistence operations the API and the auth gate rely on."""

    @abstractmethod
    def create_account(self, account: Account) -> Account:
        """Persist a new account and return it with server-assigned fields."""

    @abstractmethod
    def sign_in(self, email: str) -> Account:
        """Return the account registered under email (no password check)."""

    @abstractmethod
    def get_accounts(self) -> list[Account]:
        """Return every account ordered by id; empty list when there are none."""

    @abstractmethod
    def get_account_by_id(self, account_id: int) -> Account:
        """Return the account with the given id."""

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Remove the account with the given id."""

    @abstractmethod
    def update_account(self, account: Account) -> None:
        """Overwrite the mutable fields of the stored account with account.id."""


class SQLAlchemyAccountStore(AccountStore):
    """AccountStore backed by a SQLAlchemy session (one per request)."""

    def __init__(self, db: Session) -> None:
        self._db = db

    @contextmanager
    def _storage_errors(self, message: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.exception("Account storage failure: %s", message)
            raise StorageUnavailableError(message) from e

    def _find_by_email(self, email: str) -> Account | None:
        return self._db.query(Account).filter(Account.email == email).first()

    def _bank_number_taken(self, bank_number: int) -> bool:
        return (
            self._db.query(Account.id)
            .filter(Account.bank_number == bank_number)
            .first()
            is not None
        )

    def create_account(self, account: Account) -> Account:
        # Unset values fall back to column defaults (balance, created_at).
        fields = {
            name: value
            for name, value in account_fields(account).items()
            if name != "id" and value is not None
        }
        if fields.get("bank_number") is None:
            fields["bank_number"] = generate_bank_number()
        with self._storage_errors("unable to create account"):
            for attempt in range(1, MAX_BANK_NUMBER_ATTEMPTS + 1):
                row = Account(**fields)
                self._db.add(row)
                try:
                    self._db.commit()
                except IntegrityError as e:
                    self._db.rollback()
                    if self._find_by_email(fields.get("email")) is not None:
                        raise AccountConflictError(
                            f"account with email {fields['email']} already exists"
                        ) from e
                    if not self._bank_number_taken(fields["bank_number"]):
                        raise AccountConflictError(
                            "account violates a storage constraint"
                        ) from e
                    if attempt == MAX_BANK_NUMBER_ATTEMPTS:
                        break
                    logger.warning(
                        "Bank number collision on create (attempt %s of %s); regenerating",
                        attempt,
                        MAX_BANK_NUMBER_ATTEMPTS,
                    )
                    fields["bank_number"] = generate_bank_number()
                    continue
                self._db.refresh(row)
                logger.info("Account created", extra={"account_id": row.id})
                return row
        raise AccountConflictError("unable to allocate a unique bank number")

    def sign_in(self, email: str) -> Account:
        with self._storage_errors("unable to sign in"):
            account = self._find_by_email(email)
        if account is None:
            raise AccountNotFoundError("account does not exist")
        return account

    def get_accounts(self) -> list[Account]:
        with self._storage_errors("unable to get accounts"):
            return self._db.query(Account).order_by(Account.id).all()

    def get_account_by_id(self, account_id: int) -> Account:
        with self._storage_errors(f"unable to get account {account_id}"):
            account = self._db.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(f"account with id {account_id} not found")
        return account

    def delete_account(self, account_id: int) -> None:
        with self._storage_errors(f"unable to delete account {account_id}"):
            account = self._db.get(Account, account_id)
            if account is None:
                raise AccountNotFoundError(f"account with id {account_id} not found")
            self._db.delete(account)
            self._db.commit()

    def update_account(self, account: Account) -> None:
        with self._storage_errors(f"unable to update account {account.id}"):
            row = self._db.get(Account, account.id)
            if row is None:
                raise AccountNotFoundError(f"account with id {account.id} not found")
            if row is not account:
                for name in UPDATABLE_FIELDS:
                    setattr(row, name, getattr(account, name))
            try:
                self._db.commit()
            except IntegrityError as e:
                self._db.rollback()
                raise AccountConflictError(
                    f"account with email {account.email} already exists"
                ) from e
