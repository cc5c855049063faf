"""Service catalog endpoints.

Listing and detail are public; writes need an admin. Deleting a service only
deactivates it so past appointments keep their service.
"""

import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import require_admin
from app.core.exceptions import InvalidBookingError, NotFoundError
from app.models.service import Category, Service, ServiceOption
from app.models.user import User
from app.schemas.auth import MessageResponse
from app.schemas.service import ServiceCreate, ServiceOut, ServiceUpdate
from app.services.booking import get_service

router = APIRouter()
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = frozenset({"name", "is_featured", "is_active", "position"})


async def _reload(db: AsyncSession, service_id: UUID) -> Service:
    result = await db.execute(
        select(Service)
        .where(Service.id == service_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _check_category(db: AsyncSession, category_id: Optional[UUID]) -> None:
    if category_id is None:
        return
    result = await db.execute(select(Category.id).where(Category.id == category_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Category not found")


@router.get("/", response_model=list[ServiceOut])
async def list_services(
    category: Optional[str] = Query(None, description="Category slug"),
    featured: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Active services, ordered by position then name."""
    query = select(Service).where(Service.is_active.is_(True))
    if category:
        query = query.join(Category).where(Category.slug == category)
    if featured is not None:
        query = query.where(Service.is_featured.is_(featured))
    result = await db.execute(query.order_by(Service.position, Service.name))
    return result.scalars().all()


@router.get("/{slug}", response_model=ServiceOut)
async def get_service_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Service).where(Service.slug == slug, Service.is_active.is_(True))
    )
    service = result.scalar_one_or_none()
    if not service:
        raise NotFoundError("Service not found")
    return service


@router.post("/", response_model=ServiceOut, status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    existing = await db.execute(select(Service.id).where(Service.slug == data.slug))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="A service with this slug already exists")
    await _check_category(db, data.category_id)

    service = Service(**data.model_dump(exclude={"options"}))
    service.options = [ServiceOption(**option.model_dump()) for option in data.options]
    db.add(service)
    await db.commit()

    logger.info("Service created: %s by %s", service.slug, current_user.email)
    return await _reload(db, service.id)


@router.put("/{service_id}", response_model=ServiceOut)
async def update_service(
    service_id: UUID,
    data: ServiceUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await get_service(db, service_id, active_only=False)
    changes = data.model_dump(exclude_unset=True)
    cleared = sorted(f for f in REQUIRED_FIELDS if f in changes and changes[f] is None)
    if cleared:
        raise InvalidBookingError(f"Fields cannot be null: {', '.join(cleared)}")
    if "category_id" in changes:
        await _check_category(db, changes["category_id"])

    for field, value in changes.items():
        setattr(service, field, value)
    await db.commit()

    logger.info("Service %s updated: %s", service.slug, ", ".join(sorted(changes)))
    return await _reload(db, service.id)


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_service(
    service_id: UUID,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await get_service(db, service_id, active_only=False)
    service.is_active = False
    await db.commit()

    logger.info("Service %s deactivated by %s", service.slug, current_user.email)
    return MessageResponse(message="Service deactivated")
