"""Stripe payment authorization for paid client bookings."""

import logging
from typing import Optional
import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InvalidBookingError, PaymentRequiredError
from app.models.appointment import Appointment
from app.models.service import Service, ServiceOption

logger = logging.getLogger(__name__)

# Configure Stripe
stripe.api_key = settings.STRIPE_API_KEY

AUTHORIZED_STATUSES = frozenset({"succeeded", "requires_capture"})


def payments_enabled() -> bool:
    return bool(settings.STRIPE_API_KEY)


def booking_price_cents(service: Service, option: Optional[ServiceOption] = None) -> Optional[int]:
    """Option price overrides the service price."""
    if option is not None and option.price_cents is not None:
        return option.price_cents
    return service.price_cents


async def create_payment_intent(
    amount_cents: int,
    metadata: dict[str, str],
) -> Optional[str]:
    """Create a PaymentIntent and return its client secret.

    Returns None if Stripe is not configured.
    """
    if not payments_enabled():
        logger.warning("Stripe not configured, skipping payment intent creation")
        return None

    try:
        intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=settings.STRIPE_CURRENCY,
            metadata=metadata,
        )
    except stripe.StripeError as e:
        logger.error("Stripe error creating payment intent: %s", e)
        raise PaymentRequiredError("Payment could not be initialised. Please try again.")

    logger.info("Created payment intent %s for %d cents", intent.id, amount_cents)
    return intent.client_secret


async def authorize_payment(
    db: AsyncSession,
    payment_intent_id: Optional[str],
    amount_cents: Optional[int],
) -> None:
    """Raise unless ``payment_intent_id`` covers ``amount_cents``.

    Free services need no payment; without Stripe credentials the check is
    skipped so local development can book paid services.
    """
    if not amount_cents:
        return

    if not payments_enabled():
        logger.warning("Stripe not configured, skipping payment authorization")
        return

    if not payment_intent_id:
        raise PaymentRequiredError("Payment is required to book this service")

    result = await db.execute(
        select(Appointment.id).where(Appointment.payment_intent_id == payment_intent_id)
    )
    if result.first() is not None:
        raise InvalidBookingError("This payment has already been used for another booking")

    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        logger.error("Stripe error retrieving payment intent %s: %s", payment_intent_id, e)
        raise PaymentRequiredError("Payment could not be verified")

    if intent.status not in AUTHORIZED_STATUSES:
        logger.warning("Payment intent %s not authorized (status=%s)", payment_intent_id, intent.status)
        raise PaymentRequiredError("Payment has not been authorized")

    if intent.currency != settings.STRIPE_CURRENCY or intent.amount < amount_cents:
        logger.warning(
            "Payment intent %s covers %s %s, expected %s %s",
            payment_intent_id, intent.amount, intent.currency, amount_cents, settings.STRIPE_CURRENCY,
        )
        raise PaymentRequiredError("Payment amount does not match the service price")

    logger.info("Payment intent %s authorized for %d cents", payment_intent_id, amount_cents)
