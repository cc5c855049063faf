"""Pydantic schemas for appointments, availability and the staff planning."""

from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID
from pydantic import AfterValidator, BaseModel, EmailStr, Field, model_validator

from app.models.appointment import AppointmentStatus, MAX_DURATION_MINUTES
from app.utils.timeutils import as_utc, to_naive_utc

# Outgoing instants always carry UTC so they serialise with a trailing "Z";
# incoming ones are normalised to the naive UTC values stored in the database.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]
InstantIn = Annotated[datetime, AfterValidator(to_naive_utc)]
DurationMinutes = Annotated[int, Field(gt=0, le=MAX_DURATION_MINUTES)]


# ============================================================================
# SERVICE SOURCE
# ============================================================================

class CatalogService(BaseModel):
    """Booking for a catalog service: duration and price come from the catalog."""
    kind: Literal["catalog"] = "catalog"
    service_id: UUID
    service_option_id: Optional[UUID] = None


class CustomService(BaseModel):
    """Ad-hoc service typed in by staff."""
    kind: Literal["custom"] = "custom"
    name: str = Field(min_length=1)
    price_cents: int = Field(ge=0)
    duration_minutes: DurationMinutes


ServiceSource = Annotated[Union[CatalogService, CustomService], Field(discriminator="kind")]


# ============================================================================
# REQUESTS
# ============================================================================

class AppointmentCreate(BaseModel):
    """Client booking request."""
    service_id: UUID
    practitioner_id: UUID
    start_at: InstantIn
    service_option_id: Optional[UUID] = None
    payment_intent_id: Optional[str] = None

    def service_source(self) -> CatalogService:
        return CatalogService(service_id=self.service_id, service_option_id=self.service_option_id)


class StaffAppointmentCreate(BaseModel):
    """Staff booking request from the planning grid.

    Either ``service_id`` or the full custom triple; either an existing
    ``client_id`` or the walk-in client's name and phone.
    """
    practitioner_id: UUID
    start_at: InstantIn
    service_id: Optional[UUID] = None
    service_option_id: Optional[UUID] = None
    custom_service_name: Optional[str] = None
    custom_price_cents: Optional[int] = Field(default=None, ge=0)
    custom_duration_minutes: Optional[DurationMinutes] = None
    client_id: Optional[UUID] = None
    client_first_name: Optional[str] = None
    client_last_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[EmailStr] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_service_and_client(self):
        custom = (self.custom_service_name, self.custom_price_cents, self.custom_duration_minutes)
        if self.service_id is None and any(value is None for value in custom):
            raise ValueError(
                "Provide service_id or custom_service_name, custom_price_cents and custom_duration_minutes"
            )
        if self.client_id is None and not (
            self.client_first_name and self.client_last_name and self.client_phone
        ):
            raise ValueError("Provide client_id or client_first_name, client_last_name and client_phone")
        return self

    def service_source(self) -> Union[CatalogService, CustomService]:
        if self.service_id is not None:
            return CatalogService(service_id=self.service_id, service_option_id=self.service_option_id)
        return CustomService(
            name=self.custom_service_name,
            price_cents=self.custom_price_cents,
            duration_minutes=self.custom_duration_minutes,
        )


class AppointmentUpdate(BaseModel):
    """Staff edit. Fields left unset keep their stored value."""
    service_id: Optional[UUID] = None
    service_option_id: Optional[UUID] = None
    custom_service_name: Optional[str] = None
    custom_price_cents: Optional[int] = Field(default=None, ge=0)
    custom_duration_minutes: Optional[DurationMinutes] = None
    start_at: Optional[InstantIn] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_start_not_null(self):
        if "start_at" in self.model_fields_set and self.start_at is None:
            raise ValueError("start_at cannot be null")
        return self


# ============================================================================
# RESPONSES
# ============================================================================

class UserSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    full_name: str

    class Config:
        from_attributes = True


class ClientSummary(UserSummary):
    email: str
    phone: Optional[str] = None
    is_walk_in: bool = False


class AppointmentOut(BaseModel):
    """Schema for returning appointment details."""
    id: UUID
    practitioner_id: UUID
    client_id: UUID
    service_id: Optional[UUID] = None
    service_option_id: Optional[UUID] = None
    custom_service_name: Optional[str] = None
    custom_price_cents: Optional[int] = None
    custom_duration_minutes: Optional[int] = None
    service_name: str
    price_cents: Optional[int] = None
    duration_minutes: int
    start_at: UTCDateTime
    end_at: UTCDateTime
    status: AppointmentStatus
    notes: Optional[str] = None
    practitioner: UserSummary
    client: ClientSummary
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CancelResponse(BaseModel):
    message: str
    appointment: AppointmentOut


class TimeSlot(BaseModel):
    """A bookable ``[start, end)`` window."""
    start: UTCDateTime
    end: UTCDateTime


class PractitionerAvailability(BaseModel):
    practitioner_id: UUID
    practitioner_name: str
    slots: list[TimeSlot]


class AvailabilityResponse(BaseModel):
    date: date
    service_id: UUID
    duration_minutes: int
    practitioners: list[PractitionerAvailability]


class MyAppointmentOut(BaseModel):
    """Row of the client's "my appointments" page."""
    id: UUID
    date: UTCDateTime
    end_at: UTCDateTime
    treatment: str
    practitioner: str
    location: str
    status: Literal["upcoming", "past", "cancelled"]


class PractitionerAppointmentOut(BaseModel):
    id: UUID
    date: UTCDateTime
    end_at: UTCDateTime
    treatment: str
    client_name: str
    status: Literal["upcoming", "past", "cancelled"]


# ============================================================================
# STAFF PLANNING
# ============================================================================

class PlanningAppointment(BaseModel):
    id: UUID
    start_at: UTCDateTime
    end_at: UTCDateTime
    status: AppointmentStatus
    notes: Optional[str] = None
    service_name: str
    duration_minutes: int
    price_cents: Optional[int] = None
    client: ClientSummary

    class Config:
        from_attributes = True


class PlanningPractitioner(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    institute: Optional[str] = None
    appointments: list[PlanningAppointment]


class PlanningResponse(BaseModel):
    date: date
    practitioners: list[PlanningPractitioner]


class DayStats(BaseModel):
    date: date
    institute: Optional[str] = None
    booked: int
    completed: int
    cancelled: int
    revenue_cents: int
