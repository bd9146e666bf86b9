"""Time-limited one-shot codes shared by account verification and password recovery."""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from app.core.exceptions import BadRequestException, CodeExpiredException

CODE_MIN = 100000
CODE_MAX = 999999


class CodePurpose(str, Enum):
    """Which account slot a code lives in."""

    VERIFICATION = "verification"
    RECOVERY = "recovery"

    @property
    def code_column(self) -> str:
        return f"{self.value}_code"

    @property
    def expires_column(self) -> str:
        return f"{self.value}_code_expires_at"


def generate_code() -> str:
    """Return a 6-digit numeric code, uniform over 100000-999999."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class OneTimeCode:
    """A code value together with the instant it stops being accepted."""

    value: str
    expires_at: datetime

    @classmethod
    def issue(cls, ttl: timedelta, now: datetime | None = None) -> "OneTimeCode":
        return cls(value=generate_code(), expires_at=(now or utc_now()) + ttl)

    @classmethod
    def from_account(cls, account: dict[str, Any], purpose: CodePurpose) -> "OneTimeCode | None":
        """Read the pending code for ``purpose``, or None when the slot is empty."""
        value = account.get(purpose.code_column)
        expires_at = account.get(purpose.expires_column)
        if not value or expires_at is None:
            return None
        return cls(value=value, expires_at=as_utc(expires_at))

    def is_expired(self, now: datetime) -> bool:
        return as_utc(now) > self.expires_at

    def matches(self, supplied: str) -> bool:
        # compare_digest rejects non-ASCII str
        return secrets.compare_digest(self.value.encode(), supplied.strip().encode())

    def as_values(self, purpose: CodePurpose) -> dict[str, Any]:
        """Column values that store this code in the ``purpose`` slot."""
        return {purpose.code_column: self.value, purpose.expires_column: self.expires_at}


def cleared_values(purpose: CodePurpose) -> dict[str, Any]:
    """Column values that empty the ``purpose`` slot."""
    return {purpose.code_column: None, purpose.expires_column: None}


def check_code(
    account: dict[str, Any],
    purpose: CodePurpose,
    supplied: str,
    now: datetime,
    *,
    no_code_message: str = "No code is pending for this account",
    mismatch_message: str = "Incorrect code",
) -> OneTimeCode:
    """
    Validate ``supplied`` against the account's pending code.

    Checks run in order: a code is pending, it has not expired, it matches.

    Raises:
        BadRequestException: If no code is pending or the code does not match
        CodeExpiredException: If the pending code has expired
    """
    pending = OneTimeCode.from_account(account, purpose)
    if pending is None:
        raise BadRequestException(no_code_message)
    if pending.is_expired(now):
        raise CodeExpiredException()
    if not pending.matches(supplied):
        raise BadRequestException(mismatch_message)
    return pending
