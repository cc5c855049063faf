"""Tests for free slot computation and the availability endpoint."""

from datetime import date, datetime, timedelta

import pytest

from app.core.exceptions import InvalidBookingError
from app.models.appointment import Appointment, AppointmentStatus
from app.services.availability import SlotGenerator, candidate_slots, working_window

DAY = date(2030, 6, 10)


def at(hour, minute=0):
    return datetime(2030, 6, 10, hour, minute)


async def book(db, practitioner, client, start, minutes=60, status=AppointmentStatus.BOOKED):
    appointment = Appointment(
        practitioner_id=practitioner.id,
        client_id=client.id,
        custom_service_name="Soin",
        custom_duration_minutes=minutes,
        start_at=start,
        status=status,
    )
    db.add(appointment)
    await db.commit()
    return appointment


def test_sixty_minute_service_fills_the_day():
    start, end = working_window(DAY, 9, 18)
    slots = candidate_slots(start, end, 60)
    assert len(slots) == 9
    assert slots[0] == (at(9), at(10))
    assert slots[-1] == (at(17), at(18))


def test_forty_five_minute_grid_has_no_partial_slot():
    start, end = working_window(DAY, 9, 18)
    slots = candidate_slots(start, end, 45)
    assert [s for s, _ in slots][:3] == [at(9), at(9, 45), at(10, 30)]
    assert slots[-1] == (at(17, 15), at(18))
    assert len(slots) == 12


def test_slot_longer_than_window_yields_nothing():
    start, end = working_window(DAY, 9, 18)
    assert candidate_slots(start, end, 10 * 60) == []


def test_non_positive_duration_is_rejected():
    start, end = working_window(DAY, 9, 18)
    with pytest.raises(InvalidBookingError):
        candidate_slots(start, end, 0)


@pytest.mark.asyncio
async def test_booked_slot_is_removed(db, practitioner, client_user):
    await book(db, practitioner, client_user, at(13))

    slots = await SlotGenerator(db).generate_slots(practitioner.id, 60, DAY)

    starts = [s for s, _ in slots]
    assert at(13) not in starts
    assert len(slots) == 8
    assert starts == sorted(starts)


@pytest.mark.asyncio
async def test_offset_appointment_blocks_both_neighbouring_slots(db, practitioner, client_user):
    await book(db, practitioner, client_user, at(10, 30), minutes=60)

    slots = await SlotGenerator(db).generate_slots(practitioner.id, 60, DAY)

    starts = [s for s, _ in slots]
    assert at(10) not in starts
    assert at(11) not in starts
    assert at(9) in starts and at(12) in starts


@pytest.mark.asyncio
async def test_cancelled_appointment_frees_its_slot(db, practitioner, client_user):
    await book(db, practitioner, client_user, at(13), status=AppointmentStatus.CANCELLED)

    slots = await SlotGenerator(db).generate_slots(practitioner.id, 60, DAY)
    assert (at(13), at(14)) in slots


@pytest.mark.asyncio
async def test_custom_working_hours(db, practitioner):
    generator = SlotGenerator(db, workday_start_hour=10, workday_end_hour=12)
    slots = await generator.generate_slots(practitioner.id, 60, DAY)
    assert slots == [(at(10), at(11)), (at(11), at(12))]


@pytest.mark.asyncio
async def test_no_practitioners_means_empty_availability(db):
    assert await SlotGenerator(db).practitioner_availability(60, DAY) == []


@pytest.mark.asyncio
async def test_practitioner_availability_filters_by_institute(db, practitioner, other_practitioner):
    result = await SlotGenerator(db).practitioner_availability(60, DAY, institute="paris16")
    assert [p.practitioner_id for p in result] == [practitioner.id]


@pytest.mark.asyncio
async def test_availability_endpoint(client, db, practitioner, other_practitioner, client_user, service):
    await book(db, practitioner, client_user, at(13))

    resp = await client.get(
        "/api/v1/availability/",
        params={"service_id": str(service.id), "date": DAY.isoformat()},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["duration_minutes"] == 60
    # Ordered by last name: Bernard, then Moreau
    names = [p["practitioner_name"] for p in data["practitioners"]]
    assert names == ["Camille Bernard", "Léa Moreau"]

    camille = data["practitioners"][0]
    starts = [slot["start"] for slot in camille["slots"]]
    assert "2030-06-10T13:00:00Z" not in starts
    assert starts[0] == "2030-06-10T09:00:00Z"
    assert camille["slots"][0]["end"] == "2030-06-10T10:00:00Z"
    assert len(data["practitioners"][1]["slots"]) == 9


@pytest.mark.asyncio
async def test_availability_unknown_service(client):
    resp = await client.get(
        "/api/v1/availability/",
        params={"service_id": "00000000-0000-0000-0000-000000000000", "date": DAY.isoformat()},
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_inactive_practitioner_has_no_availability(db, practitioner):
    practitioner.is_active = False
    await db.commit()
    assert await SlotGenerator(db).practitioner_availability(60, DAY) == []


def test_window_spans_the_requested_day():
    start, end = working_window(DAY, 9, 18)
    assert end - start == timedelta(hours=9)
