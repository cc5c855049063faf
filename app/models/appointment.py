"""Appointment model for the booking system.

The end of an appointment is never stored: it is always derived from
``start_at`` and the effective duration (custom duration, else the catalog
service's duration, else one hour).
"""

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Enum as SQLEnum, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, timedelta
import enum
from typing import Optional
from app.core.database import Base
from app.core.exceptions import InvalidTransitionError

DEFAULT_DURATION_MINUTES = 60
MAX_DURATION_MINUTES = 24 * 60


class AppointmentStatus(str, enum.Enum):
    BOOKED = "booked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Forward-only: nothing leaves CANCELLED.
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.BOOKED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset({AppointmentStatus.CANCELLED}),
    AppointmentStatus.CANCELLED: frozenset(),
}


def transition_status(current: AppointmentStatus, target: AppointmentStatus) -> AppointmentStatus:
    """Return ``target`` if ``current -> target`` is allowed, else raise."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move an appointment from {current.value} to {target.value}"
        )
    return target


def resolve_duration_minutes(custom_duration_minutes: Optional[int], service) -> int:
    """custom duration ?? service duration ?? 60."""
    if custom_duration_minutes is not None:
        return custom_duration_minutes
    if service is not None and service.duration_minutes is not None:
        return service.duration_minutes
    return DEFAULT_DURATION_MINUTES


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_practitioner_start", "practitioner_id", "start_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practitioner_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # Catalog service...
    service_id = Column(UUID(as_uuid=True), ForeignKey("services.id"), nullable=True, index=True)
    service_option_id = Column(UUID(as_uuid=True), ForeignKey("service_options.id"), nullable=True)
    # ...or an ad-hoc service entered by staff
    custom_service_name = Column(String, nullable=True)
    custom_price_cents = Column(Integer, nullable=True)
    custom_duration_minutes = Column(Integer, nullable=True)

    start_at = Column(DateTime, nullable=False, index=True)  # naive UTC
    status = Column(
        SQLEnum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.BOOKED,
        nullable=False,
        index=True,
    )
    notes = Column(Text, nullable=True)
    payment_intent_id = Column(String, unique=True, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    practitioner = relationship("User", foreign_keys=[practitioner_id], lazy="selectin")
    client = relationship("User", foreign_keys=[client_id], lazy="selectin")
    service = relationship("Service", lazy="selectin")
    service_option = relationship("ServiceOption", lazy="selectin")

    @property
    def duration_minutes(self) -> int:
        return resolve_duration_minutes(self.custom_duration_minutes, self.service)

    @property
    def end_at(self) -> datetime:
        return self.start_at + timedelta(minutes=self.duration_minutes)

    @property
    def service_name(self) -> str:
        if self.custom_service_name:
            return self.custom_service_name
        if self.service is None:
            return "Service"
        if self.service_option is not None:
            return f"{self.service.name} - {self.service_option.name}"
        return self.service.name

    @property
    def price_cents(self) -> Optional[int]:
        if self.custom_price_cents is not None:
            return self.custom_price_cents
        if self.service_option is not None and self.service_option.price_cents is not None:
            return self.service_option.price_cents
        if self.service is not None:
            return self.service.price_cents
        return None
