"""Issue and validate signed, time-limited JWTs bound to an account id."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.models.account import Account

DEFAULT_TOKEN_LIFETIME = timedelta(hours=24)


class TokenIssueError(Exception):
    """Raised when a token cannot be signed (missing secret, signing failure)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidTokenError(Exception):
    """Raised for a missing, malformed, badly signed or expired token."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class TokenClaims:
    """Validated token payload."""

    account_id: int
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenService:
    """
    Stateless JWT issuer/validator.

    The secret is fixed at construction; nothing is read from the environment
    per call. Tokens carry sub (account id as a string), exp and iat.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            lifetime=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        )

    @property
    def lifetime(self) -> timedelta:
        return self._lifetime

    def issue_token(self, account: Account) -> str:
        """Sign a token whose subject is account.id and which expires after the lifetime."""
        if not self._secret:
            raise TokenIssueError("token signing secret is not configured")
        if account.id is None:
            raise TokenIssueError("cannot issue a token for an unsaved account")
        now = self._clock()
        payload: dict[str, Any] = {
            "sub": str(account.id),
            "exp": now + self._lifetime,
            "iat": now,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError) as e:
            raise TokenIssueError(f"unable to sign token: {e}") from e

    def validate_token(self, token: str | None) -> TokenClaims:
        """
        Verify signature and expiration; return the claims.

        Expiry is judged against the service clock, not the wall clock, so a
        service built with a fixed clock accepts and rejects consistently.
        Raises InvalidTokenError on any failure. No revocation check.
        """
        if not token:
            raise InvalidTokenError("missing token")
        if not self._secret:
            raise InvalidTokenError("token signing secret is not configured")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "sub"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(f"invalid token: {e}") from e

        try:
            expires_at = datetime.fromtimestamp(payload["exp"], tz=UTC)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise InvalidTokenError("invalid token expiration") from e
        if expires_at <= self._clock():
            raise InvalidTokenError("token has expired")

        try:
            account_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("invalid token subject") from e
        if account_id < 1:
            raise InvalidTokenError("invalid token subject")
        return TokenClaims(account_id=account_id, expires_at=expires_at)
