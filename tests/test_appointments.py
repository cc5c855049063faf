"""End-to-end tests for client booking, listing and cancellation."""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from app.models.appointment import Appointment, AppointmentStatus

DAY = "2030-06-10"
LAST_YEAR_VISIT = datetime(2024, 6, 10, 10, 0)


async def book(client, headers, service, practitioner, start, **extra):
    return await client.post(
        "/api/v1/appointments/",
        json={
            "service_id": str(service.id),
            "practitioner_id": str(practitioner.id),
            "start_at": start,
            **extra,
        },
        headers=headers,
    )


@pytest.mark.asyncio
async def test_book_then_slot_disappears_then_conflict(
    client, practitioner, client_user, service, make_user, auth_headers
):
    """Two clients race for 10:00: the second one gets a 409 slot conflict."""
    rival = await make_user("rival@example.com", first_name="Inès", last_name="Roux")

    resp = await book(client, auth_headers(client_user), service, practitioner, f"{DAY}T10:00:00Z")
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "booked"
    assert data["start_at"] == f"{DAY}T10:00:00Z"
    assert data["end_at"] == f"{DAY}T11:00:00Z"
    assert data["duration_minutes"] == 60
    assert data["service_name"] == "Soin éclat"
    assert data["practitioner"]["full_name"] == "Camille Bernard"

    availability = await client.get(
        "/api/v1/availability/", params={"service_id": str(service.id), "date": DAY}
    )
    starts = [slot["start"] for slot in availability.json()["practitioners"][0]["slots"]]
    assert f"{DAY}T10:00:00Z" not in starts
    assert len(starts) == 8

    resp = await book(client, auth_headers(rival), service, practitioner, f"{DAY}T10:30:00Z")
    assert resp.status_code == 409
    assert resp.json()["code"] == "slot_conflict"


@pytest.mark.asyncio
async def test_timezone_offset_is_normalised(client, practitioner, client_user, service, auth_headers):
    resp = await book(client, auth_headers(client_user), service, practitioner, f"{DAY}T12:00:00+02:00")
    assert resp.status_code == 201
    assert resp.json()["start_at"] == f"{DAY}T10:00:00Z"


@pytest.mark.asyncio
async def test_booking_requires_authentication(client, practitioner, service):
    resp = await book(client, {}, service, practitioner, f"{DAY}T10:00:00Z")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_booking_in_the_past_is_rejected(client, practitioner, client_user, service, auth_headers):
    resp = await book(client, auth_headers(client_user), service, practitioner, "2020-01-06T10:00:00Z")
    assert resp.status_code == 400
    assert resp.json()["code"] == "past_date"


@pytest.mark.asyncio
async def test_booking_an_unknown_service(client, practitioner, client_user, auth_headers):
    resp = await client.post(
        "/api/v1/appointments/",
        json={
            "service_id": "00000000-0000-0000-0000-000000000001",
            "practitioner_id": str(practitioner.id),
            "start_at": f"{DAY}T10:00:00Z",
        },
        headers=auth_headers(client_user),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_booking_queues_confirmation_email(client, practitioner, client_user, service, auth_headers):
    with patch(
        "app.api.v1.endpoints.appointments.email_service.send_booking_confirmation",
        new_callable=AsyncMock,
    ) as send:
        resp = await book(client, auth_headers(client_user), service, practitioner, f"{DAY}T10:00:00Z")

    assert resp.status_code == 201
    send.assert_awaited_once()
    assert send.call_args.args[0].client_id == client_user.id


@pytest.mark.asyncio
async def test_client_cancels_and_slot_reopens(client, practitioner, client_user, service, auth_headers):
    headers = auth_headers(client_user)
    booked = (await book(client, headers, service, practitioner, f"{DAY}T10:00:00Z")).json()

    resp = await client.post(f"/api/v1/appointments/{booked['id']}/cancel", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["appointment"]["status"] == "cancelled"

    again = await client.post(f"/api/v1/appointments/{booked['id']}/cancel", headers=headers)
    assert again.status_code == 200
    assert again.json()["appointment"]["status"] == "cancelled"

    resp = await book(client, headers, service, practitioner, f"{DAY}T10:00:00Z")
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_client_cannot_cancel_other_clients_appointment(
    client, practitioner, client_user, service, make_user, auth_headers
):
    booked = (await book(client, auth_headers(client_user), service, practitioner, f"{DAY}T10:00:00Z")).json()
    stranger = await make_user("stranger@example.com")

    resp = await client.post(f"/api/v1/appointments/{booked['id']}/cancel", headers=auth_headers(stranger))
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_my_appointments_lists_display_status(
    client, db, practitioner, client_user, service, auth_headers
):
    db.add(Appointment(
        practitioner_id=practitioner.id,
        client_id=client_user.id,
        service_id=service.id,
        start_at=LAST_YEAR_VISIT,
        status=AppointmentStatus.COMPLETED,
    ))
    await db.commit()
    await book(client, auth_headers(client_user), service, practitioner, f"{DAY}T10:00:00Z")

    resp = await client.get("/api/v1/appointments/me", headers=auth_headers(client_user))
    assert resp.status_code == 200
    rows = resp.json()
    assert [row["status"] for row in rows] == ["past", "upcoming"]
    assert rows[1]["treatment"] == "Soin éclat"
    assert rows[1]["practitioner"] == "Camille Bernard"
    assert rows[0]["date"] == "2024-06-10T10:00:00Z"


@pytest.mark.asyncio
async def test_practitioner_sees_own_schedule(
    client, db, practitioner, client_user, service, auth_headers
):
    await book(client, auth_headers(client_user), service, practitioner, f"{DAY}T10:00:00Z")

    resp = await client.get("/api/v1/appointments/practitioner/me", headers=auth_headers(practitioner))
    assert resp.status_code == 200
    rows = resp.json()
    assert len(rows) == 1
    assert rows[0]["client_name"] == "Julie Martin"

    result = await db.execute(select(Appointment))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_client_cannot_read_practitioner_schedule(client, client_user, auth_headers):
    resp = await client.get("/api/v1/appointments/practitioner/me", headers=auth_headers(client_user))
    assert resp.status_code == 403
