"""Shared test fixtures for the Pure Éclat API tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["STRIPE_API_KEY"] = ""
os.environ["SENDGRID_API_KEY"] = ""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, create_session_factory, get_db
from app.main import app
from app.models.appointment import Appointment  # noqa: F401
from app.models.service import Category, Service, ServiceOption
from app.models.user import User, UserRole
from app.services.auth import create_access_token, hash_password

# Use aiosqlite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(autouse=True)
async def session_factory():
    """Fresh database per test; every session shares the single in-memory connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = create_session_factory(engine)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.clear()

    await engine.dispose()


@pytest_asyncio.fixture
async def client():
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db(session_factory):
    """Direct DB session for test setup/assertions."""
    async with session_factory() as session:
        yield session


async def create_user(db, email, role=UserRole.CLIENT, first_name="Test", last_name="User", **kwargs):
    user = User(
        email=email,
        hashed_password=hash_password("testpass123"),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db.add(user)
    await db.commit()
    return user


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def auth_headers():
    """Authorization header for a user, signed with the test secret."""
    return bearer


@pytest_asyncio.fixture
async def make_user(db):
    async def factory(email, role=UserRole.CLIENT, **kwargs):
        return await create_user(db, email, role, **kwargs)
    return factory


@pytest_asyncio.fixture
async def practitioner(db):
    return await create_user(
        db, "camille@pureeclat.fr", UserRole.PRACTITIONER,
        first_name="Camille", last_name="Bernard", institute="paris16",
    )


@pytest_asyncio.fixture
async def other_practitioner(db):
    return await create_user(
        db, "lea@pureeclat.fr", UserRole.PRACTITIONER,
        first_name="Léa", last_name="Moreau", institute="lyon",
    )


@pytest_asyncio.fixture
async def client_user(db):
    return await create_user(
        db, "julie@example.com", first_name="Julie", last_name="Martin", phone="0612345678",
    )


@pytest_asyncio.fixture
async def admin_user(db):
    return await create_user(db, "admin@pureeclat.fr", UserRole.ADMIN, first_name="Admin", last_name="Eclat")


@pytest_asyncio.fixture
async def category(db):
    category = Category(name="Soins du visage", slug="soins-visage", position=0)
    db.add(category)
    await db.commit()
    return category


@pytest_asyncio.fixture
async def service(db, category):
    """One hour facial with a paid option."""
    service = Service(
        category_id=category.id,
        name="Soin éclat",
        slug="soin-eclat",
        duration_minutes=60,
        price_cents=8000,
        is_featured=True,
    )
    service.options = [ServiceOption(name="Masque hydratant", price_cents=9500)]
    db.add(service)
    await db.commit()
    return service


@pytest_asyncio.fixture
async def short_service(db):
    service = Service(name="Nettoyage de peau", slug="nettoyage-peau", duration_minutes=45, price_cents=6000)
    db.add(service)
    await db.commit()
    return service
