"""Tests for app.services.account_store.SQLAlchemyAccountStore on an in-memory SQLite engine."""

import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Account, Base
from app.services.account_store import (
    MAX_BANK_NUMBER_ATTEMPTS,
    AccountConflictError,
    AccountNotFoundError,
    SQLAlchemyAccountStore,
    StorageUnavailableError,
)


def _new_account(email: str = "ada@example.com", **kwargs: object) -> Account:
    """Build an unsaved Account the way sign-up does."""
    account = Account.new(
        first_name="Ada",
        last_name="Lovelace",
        email=email,
        password_hash="$2b$04$fakehash",
    )
    for name, value in kwargs.items():
        setattr(account, name, value)
    return account


class SqliteStoreTestCase(unittest.TestCase):
    """Fresh schema per test; one session shared by the store under test."""

    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.session = sessionmaker(bind=self.engine, autoflush=False)()
        self.store = SQLAlchemyAccountStore(self.session)

    def tearDown(self) -> None:
        self.session.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()


class TestCreateAccount(SqliteStoreTestCase):
    """create_account persists rows and maps integrity errors."""

    def test_assigns_id_and_keeps_fields(self) -> None:
        account = _new_account()
        created = self.store.create_account(account)
        self.assertIsNotNone(created.id)
        self.assertEqual(created.first_name, "Ada")
        self.assertEqual(created.email, "ada@example.com")
        self.assertEqual(created.bank_number, account.bank_number)
        self.assertEqual(created.balance, 0)
        self.assertIsNotNone(created.created_at)

    def test_column_defaults_fill_unset_fields(self) -> None:
        account = Account(
            first_name="Grace",
            last_name="Hopper",
            email="grace@example.com",
            password="hash",
        )
        created = self.store.create_account(account)
        self.assertEqual(created.balance, 0)
        self.assertIsNotNone(created.bank_number)
        self.assertIsNotNone(created.created_at)

    def test_duplicate_email_conflicts(self) -> None:
        self.store.create_account(_new_account())
        with self.assertRaises(AccountConflictError) as ctx:
            self.store.create_account(_new_account())
        self.assertIn("already exists", ctx.exception.message)
        self.assertEqual(len(self.store.get_accounts()), 1)

    def test_bank_number_collision_regenerates(self) -> None:
        self.store.create_account(_new_account("a@example.com", bank_number=1111111111))
        with patch(
            "app.services.account_store.generate_bank_number",
            return_value=2222222222,
        ):
            created = self.store.create_account(
                _new_account("b@example.com", bank_number=1111111111)
            )
        self.assertEqual(created.bank_number, 2222222222)
        self.assertEqual(len(self.store.get_accounts()), 2)

    def test_bank_number_attempts_exhausted(self) -> None:
        self.store.create_account(_new_account("a@example.com", bank_number=1111111111))
        with patch(
            "app.services.account_store.generate_bank_number",
            return_value=1111111111,
        ) as generate:
            with self.assertRaises(AccountConflictError):
                self.store.create_account(
                    _new_account("b@example.com", bank_number=1111111111)
                )
        # One fresh number per retry; the last failed attempt does not draw another.
        self.assertEqual(generate.call_count, MAX_BANK_NUMBER_ATTEMPTS - 1)

    def test_given_bank_number_is_not_regenerated(self) -> None:
        with patch("app.services.account_store.generate_bank_number") as generate:
            created = self.store.create_account(_new_account(bank_number=3333333333))
        generate.assert_not_called()
        self.assertEqual(created.bank_number, 3333333333)

    def test_row_inserted_by_other_session_conflicts(self) -> None:
        other_session = sessionmaker(bind=self.engine, autoflush=False)()
        try:
            SQLAlchemyAccountStore(other_session).create_account(
                _new_account(bank_number=4444444444)
            )
        finally:
            other_session.close()
        with self.assertRaises(AccountConflictError) as ctx:
            self.store.create_account(_new_account(bank_number=5555555555))
        self.assertIn("already exists", ctx.exception.message)
        emails = [a.email for a in self.store.get_accounts()]
        self.assertEqual(emails, ["ada@example.com"])


class TestReads(SqliteStoreTestCase):
    """sign_in, get_accounts and get_account_by_id."""

    def test_sign_in_resolves_by_email(self) -> None:
        created = self.store.create_account(_new_account())
        self.assertEqual(self.store.sign_in("ada@example.com").id, created.id)

    def test_sign_in_unknown_email(self) -> None:
        with self.assertRaises(AccountNotFoundError):
            self.store.sign_in("nobody@example.com")

    def test_get_accounts_empty(self) -> None:
        self.assertEqual(self.store.get_accounts(), [])

    def test_get_accounts_ordered_by_id(self) -> None:
        self.store.create_account(_new_account("a@example.com"))
        self.store.create_account(_new_account("b@example.com"))
        emails = [a.email for a in self.store.get_accounts()]
        self.assertEqual(emails, ["a@example.com", "b@example.com"])

    def test_get_account_by_id_missing(self) -> None:
        with self.assertRaises(AccountNotFoundError) as ctx:
            self.store.get_account_by_id(42)
        self.assertEqual(ctx.exception.message, "account with id 42 not found")


class TestWrites(SqliteStoreTestCase):
    """delete_account and update_account."""

    def test_delete(self) -> None:
        created = self.store.create_account(_new_account())
        self.store.delete_account(created.id)
        with self.assertRaises(AccountNotFoundError):
            self.store.get_account_by_id(created.id)

    def test_delete_missing_reports_not_found(self) -> None:
        with self.assertRaises(AccountNotFoundError):
            self.store.delete_account(42)

    def test_update_with_detached_copy(self) -> None:
        created = self.store.create_account(_new_account())
        changes = _new_account("ada.king@example.com", id=created.id, balance=900)
        self.store.update_account(changes)
        stored = self.store.get_account_by_id(created.id)
        self.assertEqual(stored.email, "ada.king@example.com")
        self.assertEqual(stored.balance, 900)
        self.assertEqual(stored.bank_number, created.bank_number)

    def test_update_missing(self) -> None:
        with self.assertRaises(AccountNotFoundError):
            self.store.update_account(_new_account(id=42))

    def test_update_duplicate_email(self) -> None:
        self.store.create_account(_new_account("a@example.com"))
        other = self.store.create_account(_new_account("b@example.com"))
        other.email = "a@example.com"
        with self.assertRaises(AccountConflictError):
            self.store.update_account(other)
        self.assertEqual(self.store.get_account_by_id(other.id).email, "b@example.com")


class TestStorageFailures(unittest.TestCase):
    """Database errors surface as StorageUnavailableError and roll back the session."""

    def test_query_failure(self) -> None:
        session = MagicMock()
        session.get.side_effect = OperationalError("SELECT", {}, Exception("down"))
        store = SQLAlchemyAccountStore(session)
        with self.assertRaises(StorageUnavailableError):
            store.get_account_by_id(1)
        session.rollback.assert_called_once()

    def test_listing_failure(self) -> None:
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("down"))
        with self.assertRaises(StorageUnavailableError):
            SQLAlchemyAccountStore(session).get_accounts()


if __name__ == "__main__":
    unittest.main()
