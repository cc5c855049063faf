"""Pydantic schemas for user administration."""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel

from app.models.appointment import AppointmentStatus
from app.models.user import UserRole
from app.schemas.appointment import UTCDateTime
from app.schemas.auth import UserOut


class AdminUserUpdate(BaseModel):
    role: UserRole | None = None
    is_active: bool | None = None
    institute: str | None = None


class AdminUserOut(UserOut):
    is_walk_in: bool
    created_at: datetime | None = None


class UserAppointmentRow(BaseModel):
    id: UUID
    start_at: UTCDateTime
    status: AppointmentStatus
    service_name: str
    counterpart_name: str


class UserAppointmentsResponse(BaseModel):
    user: UserOut
    client_appointments: list[UserAppointmentRow]
    practitioner_appointments: list[UserAppointmentRow]
