"""Booking writes: create, reschedule, cancel and complete appointments.

This is the only code that mutates appointments. Creates and reschedules run
in a single transaction that first locks the practitioner's row, then checks
for overlaps, then writes. Every writer for a practitioner queues on that lock,
so the overlap check made here is authoritative no matter what availability
the client saw earlier. Any failure rolls the whole unit of work back.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Union
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    InvalidBookingError,
    NotFoundError,
    PastDateError,
    PermissionDeniedError,
    SlotConflictError,
)
from app.models.appointment import (
    Appointment,
    AppointmentStatus,
    resolve_duration_minutes,
    transition_status,
)
from app.models.service import Service, ServiceOption
from app.models.user import User, UserRole
from app.schemas.appointment import CatalogService, CustomService
from app.services.clients import get_client
from app.services.overlap import OverlapGuard
from app.utils.timeutils import to_naive_utc, utc_now

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "service_id",
    "service_option_id",
    "custom_service_name",
    "custom_price_cents",
    "custom_duration_minutes",
    "start_at",
    "notes",
})


async def load_appointment(db: AsyncSession, appointment_id: UUID, for_update: bool = False) -> Appointment:
    """Fetch an appointment with its relations freshly loaded."""
    query = (
        select(Appointment)
        .where(Appointment.id == appointment_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    appointment = result.scalar_one_or_none()
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


async def get_service(db: AsyncSession, service_id: UUID, active_only: bool = True) -> Service:
    result = await db.execute(select(Service).where(Service.id == service_id))
    service = result.scalar_one_or_none()
    if service is None or (active_only and not service.is_active):
        raise NotFoundError("Service not found")
    return service


async def get_bookable_service(db: AsyncSession, service_id: UUID) -> Service:
    """Like ``get_service`` but an unknown service is a validation error of the booking."""
    try:
        return await get_service(db, service_id)
    except NotFoundError:
        raise InvalidBookingError("Unknown or inactive service")


async def get_service_option(db: AsyncSession, service: Service, option_id: UUID) -> ServiceOption:
    result = await db.execute(select(ServiceOption).where(ServiceOption.id == option_id))
    option = result.scalar_one_or_none()
    if option is None or option.service_id != service.id:
        raise InvalidBookingError("Invalid option for this service")
    return option


class BookingWriter:
    """Sole mutator of appointments."""

    def __init__(
        self,
        db: AsyncSession,
        guard: Optional[OverlapGuard] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.guard = guard or OverlapGuard(db)
        self.clock = clock

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _lock_practitioner(self, practitioner_id: UUID, check_bookable: bool = True) -> User:
        """Take the row lock that serialises all writes to this calendar."""
        result = await self.db.execute(
            select(User).where(User.id == practitioner_id).with_for_update()
        )
        practitioner = result.scalar_one_or_none()
        if practitioner is None:
            raise InvalidBookingError("Unknown practitioner")
        if check_bookable and (practitioner.role != UserRole.PRACTITIONER or not practitioner.is_active):
            raise InvalidBookingError("Invalid or inactive practitioner")
        return practitioner

    async def _resolve_source(self, source: Union[CatalogService, CustomService]) -> tuple[dict[str, Any], int]:
        """Column values and effective duration for a service source."""
        if isinstance(source, CatalogService):
            service = await get_bookable_service(self.db, source.service_id)
            option_id = None
            if source.service_option_id is not None:
                option = await get_service_option(self.db, service, source.service_option_id)
                option_id = option.id
            fields = {"service_id": service.id, "service_option_id": option_id}
            return fields, resolve_duration_minutes(None, service)

        if isinstance(source, CustomService):
            fields = {
                "custom_service_name": source.name,
                "custom_price_cents": source.price_cents,
                "custom_duration_minutes": source.duration_minutes,
            }
            return fields, source.duration_minutes

        raise InvalidBookingError("Unknown service source")

    async def _ensure_free(
        self,
        practitioner_id: UUID,
        start_at: datetime,
        duration_minutes: int,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> None:
        if duration_minutes <= 0:
            raise InvalidBookingError("Duration must be a positive number of minutes")
        end_at = start_at + timedelta(minutes=duration_minutes)
        conflict = await self.guard.find_conflict(
            practitioner_id, start_at, end_at, exclude_appointment_id=exclude_appointment_id
        )
        if conflict is not None:
            raise SlotConflictError("This time slot is no longer available. Please choose another one.")

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            logger.warning("Booking write rejected by the database: %s", e.orig)
            raise InvalidBookingError("Booking could not be saved: conflicting data")

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    async def create(
        self,
        *,
        practitioner_id: UUID,
        client_id: UUID,
        source: Union[CatalogService, CustomService],
        start_at: datetime,
        notes: Optional[str] = None,
        payment_intent_id: Optional[str] = None,
        enforce_future: bool = True,
    ) -> Appointment:
        """Book a new appointment.

        ``enforce_future`` is cleared by the staff path, which may log a visit
        that already happened today.
        """
        start_at = to_naive_utc(start_at)
        try:
            if enforce_future and start_at < self.clock():
                raise PastDateError("Appointments cannot be booked in the past")

            practitioner = await self._lock_practitioner(practitioner_id)
            client = await get_client(self.db, client_id)
            fields, duration = await self._resolve_source(source)
            await self._ensure_free(practitioner.id, start_at, duration)

            appointment = Appointment(
                practitioner_id=practitioner.id,
                client_id=client.id,
                start_at=start_at,
                status=AppointmentStatus.BOOKED,
                notes=notes,
                payment_intent_id=payment_intent_id,
                **fields,
            )
            self.db.add(appointment)
            await self._commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Appointment %s booked: practitioner=%s client=%s start=%s (%d min)",
            appointment.id, practitioner_id, client_id, start_at, duration,
        )
        return await load_appointment(self.db, appointment.id)

    async def update(self, appointment_id: UUID, changes: dict[str, Any]) -> Appointment:
        """Reschedule or edit an appointment; unset fields keep their value."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidBookingError(f"Unknown fields: {', '.join(sorted(unknown))}")

        try:
            current = await load_appointment(self.db, appointment_id)
            await self._lock_practitioner(current.practitioner_id, check_bookable=False)
            appointment = await load_appointment(self.db, appointment_id, for_update=True)

            if appointment.status == AppointmentStatus.CANCELLED:
                raise InvalidBookingError("Cancelled appointments cannot be modified")

            service_id = appointment.service_id
            option_id = appointment.service_option_id
            service = appointment.service
            if "service_id" in changes and changes["service_id"] != appointment.service_id:
                service_id = changes["service_id"]
                option_id = None
                service = await get_bookable_service(self.db, service_id) if service_id is not None else None
            if "service_option_id" in changes:
                option_id = changes["service_option_id"]
                if option_id is not None:
                    if service is None:
                        raise InvalidBookingError("A service option needs a catalog service")
                    await get_service_option(self.db, service, option_id)

            custom_name = changes.get("custom_service_name", appointment.custom_service_name)
            custom_price = changes.get("custom_price_cents", appointment.custom_price_cents)
            custom_duration = changes.get("custom_duration_minutes", appointment.custom_duration_minutes)
            if service_id is None and not custom_name:
                raise InvalidBookingError("An appointment needs a catalog service or a custom service name")

            start_at = changes.get("start_at") or appointment.start_at
            start_at = to_naive_utc(start_at)
            duration = resolve_duration_minutes(custom_duration, service)
            await self._ensure_free(
                appointment.practitioner_id, start_at, duration, exclude_appointment_id=appointment.id
            )

            appointment.service_id = service_id
            appointment.service_option_id = option_id
            appointment.custom_service_name = custom_name
            appointment.custom_price_cents = custom_price
            appointment.custom_duration_minutes = custom_duration
            appointment.start_at = start_at
            if "notes" in changes:
                appointment.notes = changes["notes"]
            await self._commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Appointment %s updated: start=%s (%d min)", appointment_id, start_at, duration)
        return await load_appointment(self.db, appointment_id)

    async def cancel(self, appointment_id: UUID, actor: User) -> Appointment:
        """Cancel an appointment.

        Clients may only cancel their own future appointments; staff may cancel
        anything. Cancelling twice is a no-op.
        """
        try:
            appointment = await load_appointment(self.db, appointment_id, for_update=True)

            if not actor.is_staff and appointment.client_id != actor.id:
                raise PermissionDeniedError("You are not allowed to cancel this appointment")

            if appointment.status == AppointmentStatus.CANCELLED:
                await self.db.commit()
                logger.info("Appointment %s already cancelled", appointment_id)
                return appointment

            if not actor.is_staff and appointment.start_at < self.clock():
                raise PastDateError("Past appointments can no longer be cancelled")

            appointment.status = transition_status(appointment.status, AppointmentStatus.CANCELLED)
            await self._commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Appointment %s cancelled by %s (%s)", appointment_id, actor.id, actor.role.value)
        return await load_appointment(self.db, appointment_id)

    async def complete(self, appointment_id: UUID) -> Appointment:
        try:
            appointment = await load_appointment(self.db, appointment_id, for_update=True)
            appointment.status = transition_status(appointment.status, AppointmentStatus.COMPLETED)
            await self._commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Appointment %s completed", appointment_id)
        return await load_appointment(self.db, appointment_id)
