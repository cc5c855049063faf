"""Seed a demo catalog and demo accounts on app startup (SEED_ON_STARTUP)."""

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.service import Category, Service, ServiceOption
from app.models.user import User, UserRole
from app.services.auth import hash_password, get_user_by_email

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "DemoPureEclat2026!"

DEMO_USERS = [
    ("admin@pureeclat.fr", "Admin", "Pure Éclat", UserRole.ADMIN, "paris16"),
    ("camille@pureeclat.fr", "Camille", "Bernard", UserRole.PRACTITIONER, "paris16"),
    ("lea@pureeclat.fr", "Léa", "Moreau", UserRole.PRACTITIONER, "paris16"),
    ("client@example.com", "Julie", "Martin", UserRole.CLIENT, None),
]

DEMO_CATALOG = {
    ("Soins du visage", "soins-visage"): [
        {
            "name": "Soin éclat", "slug": "soin-eclat", "duration_minutes": 60,
            "price_cents": 8000, "is_featured": True,
            "options": [("Masque hydratant", 9500)],
        },
        {"name": "Nettoyage de peau", "slug": "nettoyage-peau", "duration_minutes": 45, "price_cents": 6000},
    ],
    ("Épilation", "epilation"): [
        {"name": "Sourcils", "slug": "sourcils", "duration_minutes": 15, "price_cents": 1500},
        {"name": "Jambes complètes", "slug": "jambes-completes", "duration_minutes": 30, "price_cents": 3500},
    ],
}


async def _seed_users(db: AsyncSession) -> None:
    for email, first_name, last_name, role, institute in DEMO_USERS:
        if await get_user_by_email(db, email):
            continue
        db.add(User(
            email=email,
            hashed_password=hash_password(DEMO_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            role=role,
            institute=institute,
            is_active=True,
        ))
        logger.info("Demo account created: %s (%s)", email, role.value)


async def _seed_catalog(db: AsyncSession) -> None:
    for position, ((name, slug), services) in enumerate(DEMO_CATALOG.items()):
        result = await db.execute(select(Category).where(Category.slug == slug))
        if result.scalar_one_or_none():
            continue

        category = Category(name=name, slug=slug, position=position)
        for service_position, data in enumerate(services):
            data = dict(data)
            options = data.pop("options", [])
            service = Service(position=service_position, **data)
            service.options = [ServiceOption(name=n, price_cents=p) for n, p in options]
            category.services.append(service)
        db.add(category)
        logger.info("Demo category created: %s (%d services)", slug, len(services))


async def seed_demo_data(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Create demo data if missing. Safe to run on every start."""
    async with session_factory() as db:
        try:
            await _seed_users(db)
            await _seed_catalog(db)
            await db.commit()
        except Exception as e:
            logger.error("Failed to seed demo data: %s", e)
            await db.rollback()
