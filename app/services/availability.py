"""Free slot computation for practitioners.

Slots start at the opening of the working window and advance by the service
duration itself, so a 45 minute service yields 09:00, 09:45, 10:30... while a
60 minute one yields 09:00, 10:00... There is no shared grid between services.
Working hours are interpreted in UTC on the requested calendar day.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InvalidBookingError
from app.models.appointment import Appointment
from app.models.user import User, UserRole
from app.schemas.appointment import PractitionerAvailability, TimeSlot
from app.services.overlap import OverlapGuard, find_overlapping

logger = logging.getLogger(__name__)

Slot = tuple[datetime, datetime]


def working_window(day: date, start_hour: int, end_hour: int) -> Slot:
    start = datetime.combine(day, time.min) + timedelta(hours=start_hour)
    end = datetime.combine(day, time.min) + timedelta(hours=end_hour)
    return start, end


def candidate_slots(window_start: datetime, window_end: datetime, duration_minutes: int) -> list[Slot]:
    """Every ``duration``-long slot from the window start; no partial trailing slot."""
    if duration_minutes <= 0:
        raise InvalidBookingError("Service duration must be a positive number of minutes")

    step = timedelta(minutes=duration_minutes)
    slots = []
    current = window_start
    while current + step <= window_end:
        slots.append((current, current + step))
        current += step
    return slots


def free_slots(candidates: list[Slot], appointments: list[Appointment]) -> list[Slot]:
    """Drop candidates that overlap an active appointment of the snapshot."""
    return [
        (start, end)
        for start, end in candidates
        if find_overlapping(appointments, start, end) is None
    ]


async def get_active_practitioners(db: AsyncSession, institute: Optional[str] = None) -> list[User]:
    query = select(User).where(
        User.role == UserRole.PRACTITIONER,
        User.is_active.is_(True),
    )
    if institute:
        query = query.where(User.institute == institute)
    result = await db.execute(query.order_by(User.last_name, User.first_name))
    return list(result.scalars().all())


class SlotGenerator:
    """Computes bookable slots against one consistent read of the appointments."""

    def __init__(
        self,
        db: AsyncSession,
        guard: Optional[OverlapGuard] = None,
        workday_start_hour: Optional[int] = None,
        workday_end_hour: Optional[int] = None,
    ):
        self.db = db
        self.guard = guard or OverlapGuard(db)
        self.workday_start_hour = (
            settings.WORKDAY_START_HOUR if workday_start_hour is None else workday_start_hour
        )
        self.workday_end_hour = (
            settings.WORKDAY_END_HOUR if workday_end_hour is None else workday_end_hour
        )

    def window(self, day: date) -> Slot:
        return working_window(day, self.workday_start_hour, self.workday_end_hour)

    async def generate_slots(self, practitioner_id: UUID, duration_minutes: int, day: date) -> list[Slot]:
        """Chronological free ``(start, end)`` pairs for one practitioner on ``day``."""
        window_start, window_end = self.window(day)
        candidates = candidate_slots(window_start, window_end, duration_minutes)
        appointments = await self.guard.active_appointments([practitioner_id], window_start, window_end)
        return free_slots(candidates, appointments)

    async def practitioner_availability(
        self,
        duration_minutes: int,
        day: date,
        institute: Optional[str] = None,
    ) -> list[PractitionerAvailability]:
        """Free slots of every active practitioner, ordered by last name."""
        window_start, window_end = self.window(day)
        candidates = candidate_slots(window_start, window_end, duration_minutes)

        practitioners = await get_active_practitioners(self.db, institute)
        if not practitioners:
            return []

        appointments = await self.guard.active_appointments(
            [p.id for p in practitioners], window_start, window_end
        )
        by_practitioner: dict[UUID, list[Appointment]] = defaultdict(list)
        for appointment in appointments:
            by_practitioner[appointment.practitioner_id].append(appointment)

        result = []
        for practitioner in practitioners:
            slots = free_slots(candidates, by_practitioner[practitioner.id])
            result.append(
                PractitionerAvailability(
                    practitioner_id=practitioner.id,
                    practitioner_name=practitioner.full_name,
                    slots=[TimeSlot(start=start, end=end) for start, end in slots],
                )
            )

        logger.debug(
            "Availability for %s (%d min): %d practitioners",
            day, duration_minutes, len(result),
        )
        return result
