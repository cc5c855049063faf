"""User administration endpoints.

All routes require an admin. Only a superadmin may touch superadmin
accounts or grant the superadmin role.
"""

import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import require_admin
from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.models.appointment import Appointment
from app.models.user import User, UserRole
from app.schemas.auth import UserOut
from app.schemas.user import (
    AdminUserOut,
    AdminUserUpdate,
    UserAppointmentRow,
    UserAppointmentsResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("/", response_model=list[AdminUserOut])
async def list_users(
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """List users, newest first, optionally filtered by role or a search term."""
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.phone.ilike(pattern),
            )
        )
    query = query.order_by(User.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.patch("/{user_id}", response_model=AdminUserOut)
async def update_user(
    user_id: UUID,
    data: AdminUserUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change a user's role, active flag or institute."""
    user = await _get_user(db, user_id)
    changes = data.model_dump(exclude_unset=True)

    if current_user.role != UserRole.SUPERADMIN and (
        user.role == UserRole.SUPERADMIN or changes.get("role") == UserRole.SUPERADMIN
    ):
        raise PermissionDeniedError("Only a superadmin can manage superadmin accounts")
    if user.id == current_user.id and changes.get("is_active") is False:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    if any(changes.get(field) is None for field in ("role", "is_active") if field in changes):
        raise HTTPException(status_code=400, detail="role and is_active cannot be null")

    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)

    logger.info("User %s updated by %s: %s", user.email, current_user.email, changes)
    return user


@router.get("/{user_id}/appointments", response_model=UserAppointmentsResponse)
async def get_user_appointments(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Appointments of a user, both as client and as practitioner, newest first."""
    user = await _get_user(db, user_id)

    as_client = await db.execute(
        select(Appointment)
        .where(Appointment.client_id == user.id)
        .order_by(Appointment.start_at.desc())
    )
    as_practitioner = await db.execute(
        select(Appointment)
        .where(Appointment.practitioner_id == user.id)
        .order_by(Appointment.start_at.desc())
    )

    return UserAppointmentsResponse(
        user=UserOut.model_validate(user),
        client_appointments=[
            UserAppointmentRow(
                id=a.id,
                start_at=a.start_at,
                status=a.status,
                service_name=a.service_name,
                counterpart_name=a.practitioner.full_name,
            )
            for a in as_client.scalars().all()
        ],
        practitioner_appointments=[
            UserAppointmentRow(
                id=a.id,
                start_at=a.start_at,
                status=a.status,
                service_name=a.service_name,
                counterpart_name=a.client.full_name,
            )
            for a in as_practitioner.scalars().all()
        ],
    )
