"""Tests for the password recovery flow."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from app.core.one_time_code import utc_now
from app.core.security import issue_password_reset_token, verify_password
from app.models.users import users

RECOVERY = "/api/v1/auth/password-recovery"


async def _request_and_verify(client: AsyncClient, email_service, email: str) -> tuple[str, str]:
    response = await client.post(f"{RECOVERY}/request", json={"email": email})
    assert response.status_code == 200, response.text
    code = email_service.last_code("recovery")

    response = await client.post(f"{RECOVERY}/verify-code", json={"email": email, "code": code})
    assert response.status_code == 200, response.text
    return code, response.json()["reset_token"]


@pytest.mark.asyncio
async def test_full_recovery_flow(
    client: AsyncClient,
    email_service,
    patient: dict,
    db_session,
) -> None:
    """Request, verify and reset; the new password works and the code is spent."""
    code, reset_token = await _request_and_verify(client, email_service, patient["email"])

    response = await client.post(
        f"{RECOVERY}/reset",
        json={
            "email": patient["email"],
            "code": code,
            "new_password": "NewPassw0rd",
            "reset_token": reset_token,
        },
    )
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert email_service.sent[-1]["kind"] == "password_changed"

    result = await db_session.execute(select(users).where(users.c.id == patient["id"]))
    row = result.mappings().first()
    assert verify_password("NewPassw0rd", row["password_hash"])
    assert row["recovery_code"] is None
    assert row["recovery_code_expires_at"] is None

    login = await client.post(
        "/api/v1/auth/login", json={"email": patient["email"], "password": "NewPassw0rd"}
    )
    assert login.status_code == 200

    # The consumed code cannot be reused
    response = await client.post(
        f"{RECOVERY}/verify-code", json={"email": patient["email"], "code": code}
    )
    assert response.status_code == 400
    assert "No recovery code" in response.json()["message"]


@pytest.mark.asyncio
async def test_request_for_unregistered_email(client: AsyncClient) -> None:
    """Unknown addresses are reported as not found."""
    response = await client.post(f"{RECOVERY}/request", json={"email": "nobody@gmail.com"})
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_request_rejects_unlisted_domain(client: AsyncClient, admin: dict) -> None:
    """Recovery is limited to the configured domains."""
    response = await client.post(f"{RECOVERY}/request", json={"email": admin["email"]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_request_for_inactive_account(client: AsyncClient, make_user) -> None:
    """Deactivated accounts cannot recover their password."""
    user = await make_user("inactivo@gmail.com", is_active=False)
    response = await client.post(f"{RECOVERY}/request", json={"email": user["email"]})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_request_clears_code_when_email_fails(
    client: AsyncClient,
    email_service,
    patient: dict,
    db_session,
) -> None:
    """An undelivered code is not left behind."""
    email_service.fail = True

    response = await client.post(f"{RECOVERY}/request", json={"email": patient["email"]})
    assert response.status_code == 500

    result = await db_session.execute(
        select(users.c.recovery_code).where(users.c.id == patient["id"])
    )
    assert result.scalar() is None


@pytest.mark.asyncio
async def test_verify_wrong_code(client: AsyncClient, email_service, patient: dict) -> None:
    """A wrong code is rejected."""
    await client.post(f"{RECOVERY}/request", json={"email": patient["email"]})
    code = email_service.last_code("recovery")
    wrong = "100000" if code != "100000" else "100001"

    response = await client.post(
        f"{RECOVERY}/verify-code", json={"email": patient["email"], "code": wrong}
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_verify_rejects_non_ascii_digits(client: AsyncClient, patient: dict) -> None:
    """Arabic-Indic digits are not accepted as a recovery code."""
    await client.post(f"{RECOVERY}/request", json={"email": patient["email"]})

    response = await client.post(
        f"{RECOVERY}/verify-code", json={"email": patient["email"], "code": "١٢٣٤٥٦"}
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_verify_unknown_account(client: AsyncClient) -> None:
    """Unknown accounts get the generic invalid-code answer."""
    response = await client.post(
        f"{RECOVERY}/verify-code", json={"email": "ghost@gmail.com", "code": "123456"}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired code"


@pytest.mark.asyncio
async def test_verify_expired_code(
    client: AsyncClient,
    email_service,
    patient: dict,
    db_session,
) -> None:
    """An expired recovery code reports code_expired."""
    await client.post(f"{RECOVERY}/request", json={"email": patient["email"]})
    code = email_service.last_code("recovery")

    await db_session.execute(
        update(users)
        .where(users.c.id == patient["id"])
        .values(recovery_code_expires_at=utc_now() - timedelta(seconds=1))
    )
    await db_session.commit()

    response = await client.post(
        f"{RECOVERY}/verify-code", json={"email": patient["email"], "code": code}
    )
    assert response.status_code == 400
    assert response.json()["code_expired"] is True


@pytest.mark.asyncio
async def test_reset_requires_matching_token(
    client: AsyncClient,
    email_service,
    patient: dict,
) -> None:
    """A reset token issued for another code is refused."""
    code, _ = await _request_and_verify(client, email_service, patient["email"])
    other_code = "999999" if code != "999999" else "111111"
    forged = issue_password_reset_token(patient["email"], other_code)

    response = await client.post(
        f"{RECOVERY}/reset",
        json={
            "email": patient["email"],
            "code": code,
            "new_password": "NewPassw0rd",
            "reset_token": forged,
        },
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reset_rejects_same_password(
    client: AsyncClient,
    email_service,
    patient: dict,
) -> None:
    """The new password must differ from the current one."""
    code, reset_token = await _request_and_verify(client, email_service, patient["email"])

    response = await client.post(
        f"{RECOVERY}/reset",
        json={
            "email": patient["email"],
            "code": code,
            "new_password": "Passw0rd",
            "reset_token": reset_token,
        },
    )
    assert response.status_code == 400
    assert "different" in response.json()["message"]


@pytest.mark.asyncio
async def test_reset_enforces_password_policy(
    client: AsyncClient,
    email_service,
    patient: dict,
) -> None:
    """Weak passwords are refused at the reset step."""
    code, reset_token = await _request_and_verify(client, email_service, patient["email"])

    response = await client.post(
        f"{RECOVERY}/reset",
        json={
            "email": patient["email"],
            "code": code,
            "new_password": "password",
            "reset_token": reset_token,
        },
    )
    assert response.status_code == 400
    assert response.json()["errors"]


@pytest.mark.asyncio
async def test_reset_succeeds_when_confirmation_email_fails(
    client: AsyncClient,
    email_service,
    patient: dict,
) -> None:
    """The confirmation e-mail is best-effort."""
    code, reset_token = await _request_and_verify(client, email_service, patient["email"])
    email_service.fail = True

    response = await client.post(
        f"{RECOVERY}/reset",
        json={
            "email": patient["email"],
            "code": code,
            "new_password": "NewPassw0rd",
            "reset_token": reset_token,
        },
    )
    assert response.status_code == 200
