"""Client lookup for staff bookings, creating walk-in records when needed."""

import logging
import re
from typing import Optional
from uuid import UUID
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InvalidBookingError
from app.models.user import User, UserRole
from app.services.auth import unusable_password_hash

logger = logging.getLogger(__name__)


def walk_in_email(phone: str) -> str:
    """Placeholder address for a client who never registered."""
    digits = re.sub(r"\D", "", phone)
    if not digits:
        raise InvalidBookingError("Client phone number must contain digits")
    return f"{digits}@{settings.WALK_IN_EMAIL_DOMAIN}"


async def get_client(db: AsyncSession, client_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == client_id))
    client = result.scalar_one_or_none()
    if client is None:
        raise InvalidBookingError("Unknown client")
    return client


async def find_or_create_walk_in(
    db: AsyncSession,
    first_name: str,
    last_name: str,
    phone: str,
    email: Optional[str] = None,
) -> User:
    """Match an existing user by phone or email, else add a walk-in client.

    The new client is only flushed: it is committed together with the booking
    that needs it, or rolled back with it.
    """
    placeholder = walk_in_email(phone)
    conditions = [User.phone == phone, User.email == placeholder]
    if email:
        conditions.append(User.email == email.lower())

    result = await db.execute(select(User).where(or_(*conditions)).limit(1))
    client = result.scalars().first()
    if client is not None:
        return client

    client = User(
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        email=(email or placeholder).lower(),
        hashed_password=unusable_password_hash(),
        role=UserRole.CLIENT,
        is_active=True,
        is_walk_in=True,
    )
    db.add(client)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Walk-in client rejected by the database: %s", e.orig)
        raise InvalidBookingError("A client with this email or phone already exists")

    logger.info("Walk-in client created: %s %s (%s)", first_name, last_name, client.email)
    return client


async def search_clients(db: AsyncSession, term: str, limit: int = 10) -> list[User]:
    """Case-insensitive search on name, email or phone, clients only."""
    escaped = re.sub(r"([\\%_])", r"\\\1", term.strip())
    pattern = f"%{escaped}%"
    query = (
        select(User)
        .where(
            User.role == UserRole.CLIENT,
            or_(
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
                User.phone.ilike(pattern, escape="\\"),
            ),
        )
        .order_by(User.last_name, User.first_name)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())
