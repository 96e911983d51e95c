"""ORM model for bank accounts (identity, credentials and balance)."""

import secrets
from datetime import UTC, datetime

from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from app.models.base import Base

# Bank numbers are 10-digit integers: [BANK_NUMBER_MIN, BANK_NUMBER_MAX).
BANK_NUMBER_MIN = 1_000_000_000
BANK_NUMBER_MAX = 10_000_000_000


def generate_bank_number() -> int:
    """Return a random 10-digit bank number. Uniqueness is enforced by the store."""
    return BANK_NUMBER_MIN + secrets.randbelow(BANK_NUMBER_MAX - BANK_NUMBER_MIN)


class Account(Base):
    """
    Account holder record used for sign-in and JWT subject resolution.

    password holds a bcrypt hash, never the plain text. balance is in minor units.
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(48), nullable=False)
    last_name = Column(String(48), nullable=False)
    email = Column(String(64), nullable=False, unique=True, index=True)
    password = Column(String(256), nullable=False)
    bank_number = Column(BigInteger, nullable=False, unique=True, index=True)
    balance = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    @classmethod
    def new(
        cls,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
    ) -> "Account":
        """Build an unsaved account: zero balance, fresh bank number, created now (UTC)."""
        return cls(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password_hash,
            bank_number=generate_bank_number(),
            balance=0,
            created_at=datetime.now(UTC),
        )

    def __repr__(self) -> str:
        return f"<Account id={self.id} email={self.email!r}>"
