"""Pydantic schemas for payments."""

from uuid import UUID
from pydantic import BaseModel


class PaymentIntentRequest(BaseModel):
    service_id: UUID
    service_option_id: UUID | None = None


class PaymentIntentOut(BaseModel):
    client_secret: str | None
    amount_cents: int
    currency: str
