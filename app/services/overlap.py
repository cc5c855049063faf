"""Overlap detection between appointments of one practitioner.

Two appointments overlap when their half-open intervals intersect:
``[s1, e1)`` and ``[s2, e2)`` overlap iff ``s1 < e2 and s2 < e1``. Touching
intervals (one ends exactly when the other starts) do not overlap, and
cancelled appointments never take part.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment, AppointmentStatus, MAX_DURATION_MINUTES

logger = logging.getLogger(__name__)

# No appointment lasts longer than this, so nothing that started earlier than
# ``window_start - LOOKBACK`` can still be running at ``window_start``.
LOOKBACK = timedelta(minutes=MAX_DURATION_MINUTES)


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Half-open interval intersection test."""
    return start_a < end_b and start_b < end_a


def find_overlapping(
    appointments: Iterable[Appointment],
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[UUID] = None,
) -> Optional[Appointment]:
    """Return the first active appointment of the snapshot overlapping ``[start, end)``."""
    for appointment in appointments:
        if appointment.status == AppointmentStatus.CANCELLED:
            continue
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if intervals_overlap(appointment.start_at, appointment.end_at, start, end):
            return appointment
    return None


class OverlapGuard:
    """Answers "is this practitioner free over ``[start, end)``?" from the database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def active_appointments(
        self,
        practitioner_ids: Sequence[UUID],
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> list[Appointment]:
        """Non-cancelled appointments that may intersect ``[window_start, window_end)``.

        The end of an appointment is not stored, so the query bounds the start
        only; callers still run the exact interval test on the result.
        """
        if not practitioner_ids:
            return []

        query = select(Appointment).where(
            Appointment.practitioner_id.in_(practitioner_ids),
            Appointment.status != AppointmentStatus.CANCELLED,
            Appointment.start_at < window_end,
            Appointment.start_at > window_start - LOOKBACK,
        )
        if exclude_appointment_id is not None:
            query = query.where(Appointment.id != exclude_appointment_id)

        result = await self.db.execute(query.order_by(Appointment.start_at))
        return list(result.scalars().all())

    async def find_conflict(
        self,
        practitioner_id: UUID,
        proposed_start: datetime,
        proposed_end: datetime,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> Optional[Appointment]:
        """Return one active appointment overlapping the proposed interval, if any."""
        candidates = await self.active_appointments(
            [practitioner_id],
            proposed_start,
            proposed_end,
            exclude_appointment_id=exclude_appointment_id,
        )
        conflict = find_overlapping(candidates, proposed_start, proposed_end, exclude_appointment_id)
        if conflict is not None:
            logger.debug(
                "Practitioner %s busy over [%s, %s): appointment %s",
                practitioner_id, proposed_start, proposed_end, conflict.id,
            )
        return conflict

    async def conflicts(
        self,
        practitioner_id: UUID,
        proposed_start: datetime,
        proposed_end: datetime,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> bool:
        conflict = await self.find_conflict(
            practitioner_id, proposed_start, proposed_end, exclude_appointment_id
        )
        return conflict is not None
