"""Availability endpoint: free slots per practitioner for a service and a day."""

from datetime import date
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.appointment import resolve_duration_minutes
from app.schemas.appointment import AvailabilityResponse
from app.services.availability import SlotGenerator
from app.services.booking import get_service

router = APIRouter()


@router.get("/", response_model=AvailabilityResponse)
async def get_availability(
    service_id: UUID = Query(...),
    date: date = Query(...),
    institute: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Free slots of every active practitioner for ``service_id`` on ``date``.

    The service is only used for its duration.
    """
    service = await get_service(db, service_id)
    duration = resolve_duration_minutes(None, service)

    practitioners = await SlotGenerator(db).practitioner_availability(duration, date, institute)

    return AvailabilityResponse(
        date=date,
        service_id=service.id,
        duration_minutes=duration,
        practitioners=practitioners,
    )
