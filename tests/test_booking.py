"""Tests for the booking writer: create, update, cancel and complete."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    InvalidBookingError,
    InvalidTransitionError,
    NotFoundError,
    PastDateError,
    PermissionDeniedError,
    SlotConflictError,
)
from app.models.appointment import AppointmentStatus, transition_status
from app.models.user import User, UserRole
from app.schemas.appointment import CatalogService, CustomService
from app.services.booking import BookingWriter
from app.services.clients import find_or_create_walk_in

NOW = datetime(2030, 6, 1, 8, 0)


def at(hour, minute=0, day=10):
    return datetime(2030, 6, day, hour, minute)


def writer(db):
    return BookingWriter(db, clock=lambda: NOW)


async def create(db, practitioner, client, start, source=None, **kwargs):
    source = source or CustomService(name="Soin", price_cents=5000, duration_minutes=60)
    return await writer(db).create(
        practitioner_id=practitioner.id,
        client_id=client.id,
        source=source,
        start_at=start,
        **kwargs,
    )


# ============================================================================
# CREATE
# ============================================================================

@pytest.mark.asyncio
async def test_create_catalog_appointment(db, practitioner, client_user, service):
    appointment = await create(db, practitioner, client_user, at(10), CatalogService(service_id=service.id))

    assert appointment.status == AppointmentStatus.BOOKED
    assert appointment.service_id == service.id
    assert appointment.duration_minutes == 60
    assert appointment.end_at == at(11)
    assert appointment.service_name == "Soin éclat"
    assert appointment.price_cents == 8000


@pytest.mark.asyncio
async def test_create_with_option_uses_option_price(db, practitioner, client_user, service):
    option = service.options[0]
    appointment = await create(
        db, practitioner, client_user, at(10),
        CatalogService(service_id=service.id, service_option_id=option.id),
    )
    assert appointment.price_cents == 9500
    assert appointment.service_name == "Soin éclat - Masque hydratant"


@pytest.mark.asyncio
async def test_option_of_another_service_is_rejected(db, practitioner, client_user, service, short_service):
    with pytest.raises(InvalidBookingError):
        await create(
            db, practitioner, client_user, at(10),
            CatalogService(service_id=short_service.id, service_option_id=service.options[0].id),
        )


@pytest.mark.asyncio
async def test_create_accepts_aware_datetimes(db, practitioner, client_user):
    start = datetime(2030, 6, 10, 12, 0, tzinfo=timezone.utc)
    appointment = await create(db, practitioner, client_user, start)
    assert appointment.start_at == at(12)


@pytest.mark.asyncio
async def test_overlapping_create_is_rejected(db, practitioner, client_user):
    await create(db, practitioner, client_user, at(10))

    with pytest.raises(SlotConflictError):
        await create(db, practitioner, client_user, at(10, 30))


@pytest.mark.asyncio
async def test_adjacent_appointments_are_allowed(db, practitioner, client_user):
    await create(db, practitioner, client_user, at(10))
    second = await create(db, practitioner, client_user, at(11))
    first_before = await create(db, practitioner, client_user, at(9))
    assert second.start_at == at(11)
    assert first_before.end_at == at(10)


@pytest.mark.asyncio
async def test_other_practitioner_is_unaffected(db, practitioner, other_practitioner, client_user):
    await create(db, practitioner, client_user, at(10))
    appointment = await create(db, other_practitioner, client_user, at(10))
    assert appointment.practitioner_id == other_practitioner.id


@pytest.mark.asyncio
async def test_past_start_is_rejected_for_clients(db, practitioner, client_user):
    with pytest.raises(PastDateError):
        await create(db, practitioner, client_user, datetime(2030, 5, 31, 10, 0))


@pytest.mark.asyncio
async def test_staff_may_log_a_past_visit(db, practitioner, client_user):
    appointment = await create(
        db, practitioner, client_user, datetime(2030, 5, 31, 10, 0), enforce_future=False
    )
    assert appointment.status == AppointmentStatus.BOOKED


@pytest.mark.asyncio
async def test_booking_a_non_practitioner_is_rejected(db, admin_user, client_user):
    with pytest.raises(InvalidBookingError):
        await create(db, admin_user, client_user, at(10))


@pytest.mark.asyncio
async def test_inactive_practitioner_cannot_be_booked(db, practitioner, client_user):
    practitioner.is_active = False
    await db.commit()
    with pytest.raises(InvalidBookingError):
        await create(db, practitioner, client_user, at(10))


@pytest.mark.asyncio
async def test_unknown_client_is_a_validation_error(db, practitioner):
    with pytest.raises(InvalidBookingError):
        await writer(db).create(
            practitioner_id=practitioner.id,
            client_id=uuid4(),
            source=CustomService(name="Soin", price_cents=0, duration_minutes=30),
            start_at=at(10),
        )


@pytest.mark.asyncio
async def test_conflict_rolls_back_new_walk_in_client(db, practitioner, client_user):
    await create(db, practitioner, client_user, at(10))

    walk_in = await find_or_create_walk_in(db, "Nina", "Petit", "06 98 76 54 32")
    with pytest.raises(SlotConflictError):
        await create(db, practitioner, walk_in, at(10, 15))

    count = await db.execute(select(func.count(User.id)).where(User.phone == "06 98 76 54 32"))
    assert count.scalar_one() == 0


# ============================================================================
# UPDATE
# ============================================================================

@pytest.mark.asyncio
async def test_reschedule_within_own_slot(db, practitioner, client_user):
    """Moving an appointment by 15 minutes does not conflict with itself."""
    appointment = await create(db, practitioner, client_user, at(10))

    updated = await writer(db).update(appointment.id, {"start_at": at(10, 15)})

    assert updated.start_at == at(10, 15)
    assert updated.end_at == at(11, 15)


@pytest.mark.asyncio
async def test_reschedule_onto_another_appointment_conflicts(db, practitioner, client_user):
    first = await create(db, practitioner, client_user, at(10))
    await create(db, practitioner, client_user, at(12))

    with pytest.raises(SlotConflictError):
        await writer(db).update(first.id, {"start_at": at(11, 30)})


@pytest.mark.asyncio
async def test_longer_duration_is_rechecked(db, practitioner, client_user):
    first = await create(db, practitioner, client_user, at(10))
    await create(db, practitioner, client_user, at(11))

    with pytest.raises(SlotConflictError):
        await writer(db).update(first.id, {"custom_duration_minutes": 90})


@pytest.mark.asyncio
async def test_switch_to_catalog_service_clears_custom_duration(db, practitioner, client_user, short_service):
    appointment = await create(db, practitioner, client_user, at(10))

    updated = await writer(db).update(appointment.id, {
        "service_id": short_service.id,
        "custom_service_name": None,
        "custom_price_cents": None,
        "custom_duration_minutes": None,
    })

    assert updated.service_name == "Nettoyage de peau"
    assert updated.duration_minutes == 45
    assert updated.price_cents == 6000


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(db, practitioner, client_user):
    appointment = await create(db, practitioner, client_user, at(10))
    with pytest.raises(InvalidBookingError):
        await writer(db).update(appointment.id, {"practitioner_id": practitioner.id})


@pytest.mark.asyncio
async def test_cancelled_appointment_cannot_be_edited(db, practitioner, client_user, admin_user):
    appointment = await create(db, practitioner, client_user, at(10))
    await writer(db).cancel(appointment.id, admin_user)

    with pytest.raises(InvalidBookingError):
        await writer(db).update(appointment.id, {"notes": "late"})


@pytest.mark.asyncio
async def test_update_missing_appointment(db):
    with pytest.raises(NotFoundError):
        await writer(db).update(uuid4(), {"notes": "x"})


# ============================================================================
# CANCEL / COMPLETE
# ============================================================================

@pytest.mark.asyncio
async def test_client_cancels_own_appointment_and_frees_slot(db, practitioner, client_user):
    appointment = await create(db, practitioner, client_user, at(10))

    cancelled = await writer(db).cancel(appointment.id, client_user)
    assert cancelled.status == AppointmentStatus.CANCELLED

    rebooked = await create(db, practitioner, client_user, at(10))
    assert rebooked.status == AppointmentStatus.BOOKED


@pytest.mark.asyncio
async def test_cancel_twice_is_a_no_op(db, practitioner, client_user):
    appointment = await create(db, practitioner, client_user, at(10))
    await writer(db).cancel(appointment.id, client_user)

    again = await writer(db).cancel(appointment.id, client_user)
    assert again.status == AppointmentStatus.CANCELLED


@pytest.mark.asyncio
async def test_client_cannot_cancel_someone_else(db, practitioner, client_user, make_user):
    appointment = await create(db, practitioner, client_user, at(10))
    stranger = await make_user("stranger@example.com")

    with pytest.raises(PermissionDeniedError):
        await writer(db).cancel(appointment.id, stranger)


@pytest.mark.asyncio
async def test_client_cannot_cancel_past_appointment(db, practitioner, client_user):
    appointment = await create(db, practitioner, client_user, datetime(2030, 5, 31, 10), enforce_future=False)

    with pytest.raises(PastDateError):
        await writer(db).cancel(appointment.id, client_user)


@pytest.mark.asyncio
async def test_staff_can_cancel_past_appointment(db, practitioner, client_user):
    appointment = await create(db, practitioner, client_user, datetime(2030, 5, 31, 10), enforce_future=False)

    cancelled = await writer(db).cancel(appointment.id, practitioner)
    assert cancelled.status == AppointmentStatus.CANCELLED


@pytest.mark.asyncio
async def test_complete_then_cannot_complete_again(db, practitioner, client_user):
    appointment = await create(db, practitioner, client_user, at(10))

    completed = await writer(db).complete(appointment.id)
    assert completed.status == AppointmentStatus.COMPLETED

    with pytest.raises(InvalidTransitionError):
        await writer(db).complete(appointment.id)


@pytest.mark.asyncio
async def test_cancelled_appointment_cannot_be_completed(db, practitioner, admin_user, client_user):
    appointment = await create(db, practitioner, client_user, at(10))
    await writer(db).cancel(appointment.id, admin_user)

    with pytest.raises(InvalidTransitionError):
        await writer(db).complete(appointment.id)


def test_transition_table():
    assert transition_status(AppointmentStatus.BOOKED, AppointmentStatus.COMPLETED) == AppointmentStatus.COMPLETED
    assert transition_status(AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED) == AppointmentStatus.CANCELLED
    with pytest.raises(InvalidTransitionError):
        transition_status(AppointmentStatus.CANCELLED, AppointmentStatus.BOOKED)
    with pytest.raises(InvalidTransitionError):
        transition_status(AppointmentStatus.COMPLETED, AppointmentStatus.BOOKED)


@pytest.mark.asyncio
async def test_walk_in_matches_existing_client_by_phone(db, client_user):
    found = await find_or_create_walk_in(db, "Julie", "Martin", "0612345678")
    assert found.id == client_user.id
    assert found.role == UserRole.CLIENT


@pytest.mark.asyncio
async def test_walk_in_matches_placeholder_email_whatever_the_phone_format(db):
    first = await find_or_create_walk_in(db, "Nina", "Petit", "06 98 76 54 32")
    second = await find_or_create_walk_in(db, "Nina", "Petit", "06.98.76.54.32")
    assert first.id == second.id


@pytest.mark.asyncio
async def test_duplicate_walk_in_insert_is_a_validation_error(db, make_user):
    # Another request created the same client between our lookup and our insert
    await make_user("0698765432@walkin.pureeclat.fr")
    missed = MagicMock()
    missed.scalars.return_value.first.return_value = None

    with patch.object(db, "execute", AsyncMock(return_value=missed)):
        with pytest.raises(InvalidBookingError):
            await find_or_create_walk_in(db, "Nina", "Petit", "06 98 76 54 32")

    count = await db.scalar(
        select(func.count()).select_from(User).where(User.email == "0698765432@walkin.pureeclat.fr")
    )
    assert count == 1
