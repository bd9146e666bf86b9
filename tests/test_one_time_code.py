"""Tests for one-time codes."""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.exceptions import BadRequestException, CodeExpiredException
from app.core.one_time_code import (
    CodePurpose,
    OneTimeCode,
    check_code,
    cleared_values,
    generate_code,
)

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=UTC)


def _account(purpose: CodePurpose, code: OneTimeCode | None) -> dict:
    return code.as_values(purpose) if code else cleared_values(purpose)


def test_generate_code_format():
    """Codes are six digits in 100000-999999."""
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_purpose_columns():
    """Each purpose has its own slot."""
    assert CodePurpose.VERIFICATION.code_column == "verification_code"
    assert CodePurpose.RECOVERY.expires_column == "recovery_code_expires_at"


def test_issue_sets_expiry():
    """Expiry is issue time plus TTL."""
    code = OneTimeCode.issue(timedelta(minutes=15), NOW)
    assert code.expires_at == NOW + timedelta(minutes=15)
    assert not code.is_expired(NOW + timedelta(minutes=15))
    assert code.is_expired(NOW + timedelta(minutes=15, seconds=1))


def test_from_account_reads_naive_timestamps_as_utc():
    """Naive timestamps coming back from the store are treated as UTC."""
    account = {"recovery_code": "123456", "recovery_code_expires_at": datetime(2026, 1, 10, 12, 15)}
    code = OneTimeCode.from_account(account, CodePurpose.RECOVERY)
    assert code.expires_at.tzinfo is not None
    assert not code.is_expired(NOW)


def test_check_code_accepts_matching_code():
    code = OneTimeCode("123456", NOW + timedelta(minutes=5))
    account = _account(CodePurpose.VERIFICATION, code)
    assert check_code(account, CodePurpose.VERIFICATION, " 123456 ", NOW) == code


def test_check_code_without_pending_code():
    account = _account(CodePurpose.VERIFICATION, None)
    with pytest.raises(BadRequestException, match="No code"):
        check_code(account, CodePurpose.VERIFICATION, "123456", NOW)


def test_check_code_expired_even_when_matching():
    """Expiry is checked before the value."""
    code = OneTimeCode("123456", NOW - timedelta(seconds=1))
    account = _account(CodePurpose.RECOVERY, code)
    with pytest.raises(CodeExpiredException) as exc_info:
        check_code(account, CodePurpose.RECOVERY, "123456", NOW)
    assert exc_info.value.details["code_expired"] is True


def test_check_code_mismatch():
    code = OneTimeCode("123456", NOW + timedelta(minutes=5))
    account = _account(CodePurpose.RECOVERY, code)
    with pytest.raises(BadRequestException, match="Incorrect code"):
        check_code(account, CodePurpose.RECOVERY, "654321", NOW)


def test_slots_are_independent():
    """A verification code does not satisfy a recovery check."""
    code = OneTimeCode("123456", NOW + timedelta(minutes=5))
    account = {**_account(CodePurpose.VERIFICATION, code), **cleared_values(CodePurpose.RECOVERY)}
    with pytest.raises(BadRequestException):
        check_code(account, CodePurpose.RECOVERY, "123456", NOW)


def test_check_code_non_ascii_is_a_mismatch():
    """Codes with non-ASCII digits or letters are rejected like any wrong code."""
    code = OneTimeCode("123456", NOW + timedelta(minutes=5))
    account = _account(CodePurpose.VERIFICATION, code)
    for supplied in ("12345é", "١٢٣٤٥٦"):
        with pytest.raises(BadRequestException, match="Incorrect code"):
            check_code(account, CodePurpose.VERIFICATION, supplied, NOW)
