"""Payment endpoints: create the Stripe PaymentIntent a client pays before booking."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.deps import get_current_user
from app.core.exceptions import InvalidBookingError
from app.models.user import User
from app.schemas.payment import PaymentIntentOut, PaymentIntentRequest
from app.services.booking import get_bookable_service, get_service_option
from app.services.payments import booking_price_cents, create_payment_intent

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/intent", response_model=PaymentIntentOut)
async def create_intent(
    data: PaymentIntentRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a PaymentIntent for the price of a service or one of its options.

    ``client_secret`` is null when Stripe is not configured.
    """
    service = await get_bookable_service(db, data.service_id)
    option = None
    if data.service_option_id is not None:
        option = await get_service_option(db, service, data.service_option_id)

    amount = booking_price_cents(service, option)
    if not amount:
        raise InvalidBookingError("This service is free and needs no payment")

    metadata = {"service_id": str(service.id), "user_id": str(current_user.id)}
    if option is not None:
        metadata["service_option_id"] = str(option.id)
    client_secret = await create_payment_intent(amount, metadata)
    logger.info("Payment intent requested by %s for %s (%d cents)", current_user.email, service.slug, amount)

    return PaymentIntentOut(
        client_secret=client_secret,
        amount_cents=amount,
        currency=settings.STRIPE_CURRENCY,
    )
