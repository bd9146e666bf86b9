"""Tests for appointment endpoints."""

import pytest
from httpx import AsyncClient

BASE = "/api/v1/appointments"


async def _book(client: AsyncClient, headers: dict, data: dict, **overrides) -> dict:
    response = await client.post(BASE, json={**data, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["appointment"]


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient,
    patient: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Patients book pending appointments linked to their account."""
    appointment = await _book(client, auth_headers(patient), sample_appointment_data)

    assert appointment["status"] == "pending"
    assert appointment["patient_id"] == str(patient["id"])
    assert appointment["pet_name"] == "Firulais"
    assert appointment["clinical_records"] == []
    assert appointment["reviewed"] is False
    assert appointment["veterinarian"] is None


@pytest.mark.asyncio
async def test_admin_booking_has_no_patient_link(
    client: AsyncClient,
    admin: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Bookings made by staff keep only the contact snapshot."""
    appointment = await _book(client, auth_headers(admin), sample_appointment_data)
    assert appointment["patient_id"] is None
    assert appointment["patient_email"] == "paciente@gmail.com"


@pytest.mark.asyncio
async def test_veterinarian_cannot_book(
    client: AsyncClient,
    veterinarian: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    response = await client.post(
        BASE, json=sample_appointment_data, headers=auth_headers(veterinarian)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_appointment_validation(
    client: AsyncClient,
    patient: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Invalid phone, species and time slot are all reported."""
    response = await client.post(
        BASE,
        json={
            **sample_appointment_data,
            "patient_phone": "123",
            "pet_species": "dragon",
            "time_slot": "25:00",
        },
        headers=auth_headers(patient),
    )
    assert response.status_code == 400
    assert len(response.json()["errors"]) == 3


@pytest.mark.asyncio
async def test_availability(
    client: AsyncClient,
    patient: dict,
    admin: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """A slot is taken only by a non-cancelled appointment at that exact time."""
    slot = {"date": sample_appointment_data["date"], "time_slot": "10:00"}

    response = await client.post(f"{BASE}/availability", json=slot)
    assert response.json()["available"] is True

    appointment = await _book(client, auth_headers(patient), sample_appointment_data)

    response = await client.post(f"{BASE}/availability", json=slot)
    assert response.json()["available"] is False

    response = await client.post(f"{BASE}/availability", json={**slot, "time_slot": "10:30"})
    assert response.json()["available"] is True

    await client.patch(
        f"{BASE}/{appointment['id']}/status",
        json={"status": "cancelled"},
        headers=auth_headers(admin),
    )
    response = await client.post(f"{BASE}/availability", json=slot)
    assert response.json()["available"] is True


@pytest.mark.asyncio
async def test_double_booking_rejected(
    client: AsyncClient,
    patient: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    await _book(client, auth_headers(patient), sample_appointment_data)

    response = await client.post(
        BASE, json=sample_appointment_data, headers=auth_headers(patient)
    )
    assert response.status_code == 400
    assert response.json()["field"] == "time_slot"


@pytest.mark.asyncio
async def test_list_appointments_by_role(
    client: AsyncClient,
    patient: dict,
    veterinarian: dict,
    make_user,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Staff see everything, patients only their own bookings."""
    other = await make_user("otro@gmail.com")
    await _book(client, auth_headers(patient), sample_appointment_data)
    await _book(client, auth_headers(other), sample_appointment_data, time_slot="11:00")

    response = await client.get(BASE, headers=auth_headers(veterinarian))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [a["time_slot"] for a in data["appointments"]] == ["10:00", "11:00"]

    response = await client.get(BASE, headers=auth_headers(patient))
    assert response.status_code == 403

    response = await client.get(f"{BASE}/patient/{patient['id']}", headers=auth_headers(patient))
    assert response.status_code == 200
    assert response.json()["total"] == 1

    response = await client.get(f"{BASE}/patient/{other['id']}", headers=auth_headers(patient))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_status_transitions(
    client: AsyncClient,
    patient: dict,
    veterinarian: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Completed appointments cannot be reopened."""
    appointment = await _book(client, auth_headers(patient), sample_appointment_data)
    url = f"{BASE}/{appointment['id']}/status"
    headers = auth_headers(veterinarian)

    response = await client.patch(url, json={"status": "confirmed"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["appointment"]["status"] == "confirmed"

    response = await client.patch(url, json={"status": "completed"}, headers=headers)
    assert response.status_code == 200

    response = await client.patch(url, json={"status": "pending"}, headers=headers)
    assert response.status_code == 400

    response = await client.patch(url, json={"status": "archived"}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reopening_cancelled_appointment_needs_free_slot(
    client: AsyncClient,
    patient: dict,
    admin: dict,
    make_user,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """A cancelled appointment cannot come back onto a slot booked in the meantime."""
    first = await _book(client, auth_headers(patient), sample_appointment_data)
    headers = auth_headers(admin)
    status_url = f"{BASE}/{first['id']}/status"

    response = await client.patch(status_url, json={"status": "cancelled"}, headers=headers)
    assert response.status_code == 200

    other = await make_user("otro@gmail.com")
    await _book(client, auth_headers(other), sample_appointment_data)

    response = await client.patch(status_url, json={"status": "pending"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["field"] == "time_slot"

    response = await client.put(
        f"{BASE}/{first['id']}", json={"status": "confirmed"}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["field"] == "time_slot"

    # Reopening onto a free slot works
    response = await client.put(
        f"{BASE}/{first['id']}",
        json={"status": "confirmed", "time_slot": "11:00"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["appointment"]["status"] == "confirmed"

    response = await client.get(BASE, headers=headers)
    slots = [a["time_slot"] for a in response.json()["appointments"] if a["status"] != "cancelled"]
    assert slots == ["10:00", "11:00"]


@pytest.mark.asyncio
async def test_status_update_unknown_appointment(
    client: AsyncClient,
    admin: dict,
    auth_headers,
) -> None:
    response = await client.patch(
        f"{BASE}/00000000-0000-0000-0000-000000000000/status",
        json={"status": "confirmed"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_veterinarian(
    client: AsyncClient,
    patient: dict,
    veterinarian: dict,
    admin: dict,
    make_user,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Only admins assign, and only active veterinarians can be assigned."""
    appointment = await _book(client, auth_headers(patient), sample_appointment_data)
    url = f"{BASE}/{appointment['id']}/veterinarian"

    response = await client.patch(
        url, json={"veterinarian_id": str(veterinarian["id"])}, headers=auth_headers(veterinarian)
    )
    assert response.status_code == 403

    response = await client.patch(
        url, json={"veterinarian_id": str(patient["id"])}, headers=auth_headers(admin)
    )
    assert response.status_code == 404

    retired = await make_user("retirado@littlefalls.com", role="veterinarian", is_active=False)
    response = await client.patch(
        url, json={"veterinarian_id": str(retired["id"])}, headers=auth_headers(admin)
    )
    assert response.status_code == 400

    response = await client.patch(
        url, json={"veterinarian_id": str(veterinarian["id"])}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assigned = response.json()["appointment"]
    assert assigned["veterinarian_id"] == str(veterinarian["id"])
    assert assigned["veterinarian"]["first_name"] == "Carlos"


@pytest.mark.asyncio
async def test_update_appointment(
    client: AsyncClient,
    patient: dict,
    veterinarian: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Partial updates change only the given fields; occupied slots are refused."""
    first = await _book(client, auth_headers(patient), sample_appointment_data)
    await _book(client, auth_headers(patient), sample_appointment_data, time_slot="12:00")
    headers = auth_headers(veterinarian)

    response = await client.put(
        f"{BASE}/{first['id']}",
        json={"pet_name": "Max", "veterinarian_notes": "Calm"},
        headers=headers,
    )
    assert response.status_code == 200
    updated = response.json()["appointment"]
    assert updated["pet_name"] == "Max"
    assert updated["veterinarian_notes"] == "Calm"
    assert updated["time_slot"] == "10:00"

    # Moving onto its own slot is fine
    response = await client.put(
        f"{BASE}/{first['id']}", json={"time_slot": "10:00"}, headers=headers
    )
    assert response.status_code == 200

    response = await client.put(
        f"{BASE}/{first['id']}", json={"time_slot": "12:00"}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["field"] == "time_slot"

    response = await client.put(
        f"{BASE}/{first['id']}", json={"description": ""}, headers=headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_appointment(
    client: AsyncClient,
    patient: dict,
    veterinarian: dict,
    admin: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    appointment = await _book(client, auth_headers(patient), sample_appointment_data)
    url = f"{BASE}/{appointment['id']}"

    response = await client.delete(url, headers=auth_headers(veterinarian))
    assert response.status_code == 403

    response = await client.delete(url, headers=auth_headers(admin))
    assert response.status_code == 200

    response = await client.delete(url, headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_clinical_records(
    client: AsyncClient,
    patient: dict,
    veterinarian: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Records append in order and mirror diagnosis and treatment."""
    appointment = await _book(client, auth_headers(patient), sample_appointment_data)
    url = f"{BASE}/{appointment['id']}/clinical-records"
    headers = auth_headers(veterinarian)

    response = await client.put(url, json={"diagnosis": "Otitis"}, headers=headers)
    assert response.status_code == 400

    response = await client.post(
        url,
        json={"reason": "Checkup", "weight": 12.5, "diagnosis": "Healthy", "treatment": "None"},
        headers=headers,
    )
    assert response.status_code == 201
    saved = response.json()["appointment"]
    assert saved["has_clinical_record"] is True
    assert saved["diagnosis"] == "Healthy"
    assert saved["clinical_records"][0]["consultation_date"] is not None

    response = await client.post(url, json={"diagnosis": "Otitis"}, headers=headers)
    assert len(response.json()["appointment"]["clinical_records"]) == 2

    response = await client.put(
        url, json={"index": 0, "observations": "Follow up in a month"}, headers=headers
    )
    assert response.status_code == 200
    records = response.json()["appointment"]["clinical_records"]
    assert records[0]["observations"] == "Follow up in a month"
    assert records[0]["weight"] == 12.5

    response = await client.put(url, json={"treatment": "Drops"}, headers=headers)
    updated = response.json()["appointment"]
    assert updated["clinical_records"][1]["treatment"] == "Drops"
    assert updated["diagnosis"] == "Otitis"
    assert updated["treatment"] == "Drops"

    response = await client.put(url, json={"index": 5, "treatment": "X"}, headers=headers)
    assert response.status_code == 400

    response = await client.post(url, json={"weight": -1}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_review_moves_appointment_to_history(
    client: AsyncClient,
    patient: dict,
    veterinarian: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    """Reviewing needs a clinical record and completes the appointment."""
    appointment = await _book(client, auth_headers(patient), sample_appointment_data)
    headers = auth_headers(veterinarian)
    vet_id = veterinarian["id"]

    response = await client.get(f"{BASE}/veterinarian/{vet_id}/active", headers=headers)
    assert [a["id"] for a in response.json()["appointments"]] == [appointment["id"]]

    response = await client.patch(f"{BASE}/{appointment['id']}/reviewed", headers=headers)
    assert response.status_code == 400

    await client.post(
        f"{BASE}/{appointment['id']}/clinical-records",
        json={"diagnosis": "Healthy"},
        headers=headers,
    )
    response = await client.patch(f"{BASE}/{appointment['id']}/reviewed", headers=headers)
    assert response.status_code == 200
    reviewed = response.json()["appointment"]
    assert reviewed["reviewed"] is True
    assert reviewed["status"] == "completed"
    assert reviewed["veterinarian_id"] == str(vet_id)

    response = await client.get(f"{BASE}/veterinarian/{vet_id}/active", headers=headers)
    assert response.json()["total"] == 0

    response = await client.get(f"{BASE}/veterinarian/{vet_id}/history", headers=headers)
    assert [a["id"] for a in response.json()["appointments"]] == [appointment["id"]]

    response = await client.get(f"{BASE}/veterinarian/{vet_id}", headers=headers)
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_patient_cannot_write_clinical_records(
    client: AsyncClient,
    patient: dict,
    auth_headers,
    sample_appointment_data: dict,
) -> None:
    appointment = await _book(client, auth_headers(patient), sample_appointment_data)
    response = await client.post(
        f"{BASE}/{appointment['id']}/clinical-records",
        json={"diagnosis": "Healthy"},
        headers=auth_headers(patient),
    )
    assert response.status_code == 403
