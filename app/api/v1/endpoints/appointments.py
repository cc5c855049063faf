"""Client appointment endpoints: book, list and cancel."""

import logging
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.deps import get_current_user, require_practitioner
from app.models.appointment import Appointment, AppointmentStatus
from app.models.user import User
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentOut,
    CancelResponse,
    MyAppointmentOut,
    PractitionerAppointmentOut,
)
from app.services.booking import BookingWriter, get_bookable_service, get_service_option
from app.services.email_service import email_service
from app.services.payments import authorize_payment, booking_price_cents
from app.utils.timeutils import utc_now

router = APIRouter()
logger = logging.getLogger(__name__)


def display_status(appointment: Appointment, now) -> str:
    if appointment.status == AppointmentStatus.CANCELLED:
        return "cancelled"
    if appointment.start_at < now:
        return "past"
    return "upcoming"


@router.get("/me", response_model=list[MyAppointmentOut])
async def list_my_appointments(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Appointments booked for the current user, oldest first."""
    result = await db.execute(
        select(Appointment)
        .where(Appointment.client_id == current_user.id)
        .order_by(Appointment.start_at)
    )
    now = utc_now()
    return [
        MyAppointmentOut(
            id=a.id,
            date=a.start_at,
            end_at=a.end_at,
            treatment=a.service_name,
            practitioner=a.practitioner.full_name,
            location=settings.INSTITUTE_NAME,
            status=display_status(a, now),
        )
        for a in result.scalars().all()
    ]


@router.get("/practitioner/me", response_model=list[PractitionerAppointmentOut])
async def list_practitioner_appointments(
    current_user: User = Depends(require_practitioner),
    db: AsyncSession = Depends(get_db),
):
    """Appointments where the current practitioner performs the service."""
    result = await db.execute(
        select(Appointment)
        .where(Appointment.practitioner_id == current_user.id)
        .order_by(Appointment.start_at)
    )
    now = utc_now()
    return [
        PractitionerAppointmentOut(
            id=a.id,
            date=a.start_at,
            end_at=a.end_at,
            treatment=a.service_name,
            client_name=a.client.full_name,
            status=display_status(a, now),
        )
        for a in result.scalars().all()
    ]


@router.post("/", response_model=AppointmentOut, status_code=201)
async def book_appointment(
    booking: AppointmentCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Book an appointment for the current user.

    Paid services need an authorized payment before anything is written.
    """
    service = await get_bookable_service(db, booking.service_id)
    option = None
    if booking.service_option_id is not None:
        option = await get_service_option(db, service, booking.service_option_id)
    await authorize_payment(db, booking.payment_intent_id, booking_price_cents(service, option))

    appointment = await BookingWriter(db).create(
        practitioner_id=booking.practitioner_id,
        client_id=current_user.id,
        source=booking.service_source(),
        start_at=booking.start_at,
        payment_intent_id=booking.payment_intent_id,
    )

    logger.info("Client %s booked appointment %s", current_user.email, appointment.id)
    background_tasks.add_task(email_service.send_booking_confirmation, appointment)
    return appointment


@router.post("/{appointment_id}/cancel", response_model=CancelResponse)
async def cancel_appointment(
    appointment_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel an appointment. Clients: own future appointments only."""
    appointment = await BookingWriter(db).cancel(appointment_id, current_user)

    background_tasks.add_task(email_service.send_cancellation_notice, appointment)
    message = "Appointment cancelled by staff." if current_user.is_staff else "Appointment cancelled."
    return {"message": message, "appointment": appointment}
