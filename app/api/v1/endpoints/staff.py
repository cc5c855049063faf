"""Staff endpoints: daily planning, walk-in bookings and appointment edits.

All routes require a practitioner, admin or superadmin.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import require_staff
from app.models.appointment import Appointment, AppointmentStatus
from app.models.service import Service
from app.models.user import User
from app.schemas.appointment import (
    AppointmentOut,
    AppointmentUpdate,
    ClientSummary,
    DayStats,
    PlanningAppointment,
    PlanningPractitioner,
    PlanningResponse,
    StaffAppointmentCreate,
)
from app.schemas.auth import MessageResponse
from app.schemas.service import StaffServiceOut
from app.services.availability import get_active_practitioners
from app.services.booking import BookingWriter
from app.services.clients import find_or_create_walk_in, get_client, search_clients
from app.services.email_service import email_service
from app.utils.timeutils import day_bounds

router = APIRouter()
logger = logging.getLogger(__name__)


async def _day_appointments(
    db: AsyncSession,
    day: date,
    practitioner_ids: Optional[list[UUID]] = None,
) -> list[Appointment]:
    start, end = day_bounds(day)
    query = select(Appointment).where(Appointment.start_at >= start, Appointment.start_at < end)
    if practitioner_ids is not None:
        query = query.where(Appointment.practitioner_id.in_(practitioner_ids))
    result = await db.execute(query.order_by(Appointment.start_at))
    return list(result.scalars().all())


# ============================================================================
# PLANNING
# ============================================================================

@router.get("/planning", response_model=PlanningResponse)
async def get_planning(
    date: date = Query(...),
    institute: Optional[str] = Query(None),
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Day grid: every active practitioner with their non-cancelled appointments."""
    practitioners = await get_active_practitioners(db, institute)
    appointments = await _day_appointments(db, date, [p.id for p in practitioners])

    by_practitioner: dict[UUID, list[Appointment]] = defaultdict(list)
    for appointment in appointments:
        if appointment.status != AppointmentStatus.CANCELLED:
            by_practitioner[appointment.practitioner_id].append(appointment)

    return PlanningResponse(
        date=date,
        practitioners=[
            PlanningPractitioner(
                id=p.id,
                first_name=p.first_name,
                last_name=p.last_name,
                institute=p.institute,
                appointments=[
                    PlanningAppointment.model_validate(a) for a in by_practitioner[p.id]
                ],
            )
            for p in practitioners
        ],
    )


@router.get("/services", response_model=list[StaffServiceOut])
async def list_staff_services(
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Active services for the booking modal, alphabetical."""
    result = await db.execute(
        select(Service).where(Service.is_active.is_(True)).order_by(Service.name)
    )
    return result.scalars().all()


@router.get("/clients/search", response_model=list[ClientSummary])
async def search_staff_clients(
    q: str = Query(..., min_length=2),
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await search_clients(db, q)


@router.get("/stats", response_model=DayStats)
async def get_day_stats(
    date: date = Query(...),
    institute: Optional[str] = Query(None),
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Counts per status and the revenue of the day's non-cancelled appointments."""
    practitioner_ids = None
    if institute:
        practitioners = await get_active_practitioners(db, institute)
        practitioner_ids = [p.id for p in practitioners]
    appointments = await _day_appointments(db, date, practitioner_ids)

    counts = {status: 0 for status in AppointmentStatus}
    revenue = 0
    for appointment in appointments:
        counts[appointment.status] += 1
        if appointment.status != AppointmentStatus.CANCELLED:
            revenue += appointment.price_cents or 0

    return DayStats(
        date=date,
        institute=institute,
        booked=counts[AppointmentStatus.BOOKED],
        completed=counts[AppointmentStatus.COMPLETED],
        cancelled=counts[AppointmentStatus.CANCELLED],
        revenue_cents=revenue,
    )


# ============================================================================
# APPOINTMENTS
# ============================================================================

@router.post("/appointments", response_model=AppointmentOut, status_code=201)
async def create_staff_appointment(
    booking: StaffAppointmentCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Book from the planning grid.

    An unknown client is created as a walk-in in the same transaction as the
    appointment, so a conflict leaves no orphan client behind.
    """
    if booking.client_id is not None:
        client = await get_client(db, booking.client_id)
    else:
        client = await find_or_create_walk_in(
            db,
            first_name=booking.client_first_name,
            last_name=booking.client_last_name,
            phone=booking.client_phone,
            email=booking.client_email,
        )

    appointment = await BookingWriter(db).create(
        practitioner_id=booking.practitioner_id,
        client_id=client.id,
        source=booking.service_source(),
        start_at=booking.start_at,
        notes=booking.notes,
        enforce_future=False,
    )

    logger.info("Staff %s booked appointment %s", current_user.email, appointment.id)
    background_tasks.add_task(email_service.send_booking_confirmation, appointment)
    return appointment


@router.put("/appointments/{appointment_id}", response_model=AppointmentOut)
async def update_staff_appointment(
    appointment_id: UUID,
    changes: AppointmentUpdate,
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Reschedule or edit an appointment; overlap is re-checked excluding itself."""
    return await BookingWriter(db).update(appointment_id, changes.model_dump(exclude_unset=True))


@router.delete("/appointments/{appointment_id}", response_model=MessageResponse)
async def cancel_staff_appointment(
    appointment_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Cancel (never hard-delete) an appointment."""
    appointment = await BookingWriter(db).cancel(appointment_id, current_user)
    background_tasks.add_task(email_service.send_cancellation_notice, appointment)
    return MessageResponse(message="Appointment cancelled")


@router.post("/appointments/{appointment_id}/complete", response_model=AppointmentOut)
async def complete_staff_appointment(
    appointment_id: UUID,
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await BookingWriter(db).complete(appointment_id)
