"""Pydantic schemas for the service catalog."""

from uuid import UUID
from pydantic import BaseModel, Field

from app.models.appointment import MAX_DURATION_MINUTES


class CategoryOut(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    position: int

    class Config:
        from_attributes = True


class ServiceOptionIn(BaseModel):
    name: str = Field(min_length=1)
    price_cents: int | None = Field(default=None, ge=0)


class ServiceOptionOut(BaseModel):
    id: UUID
    name: str
    price_cents: int | None = None

    class Config:
        from_attributes = True


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    category_id: UUID | None = None
    short_description: str | None = None
    description: str | None = None
    duration_minutes: int | None = Field(default=None, gt=0, le=MAX_DURATION_MINUTES)
    price_cents: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    is_featured: bool = False
    position: int = 0
    options: list[ServiceOptionIn] = []


class ServiceUpdate(BaseModel):
    """Schema for updating a service. Options are managed with the service."""
    name: str | None = None
    category_id: UUID | None = None
    short_description: str | None = None
    description: str | None = None
    duration_minutes: int | None = Field(default=None, gt=0, le=MAX_DURATION_MINUTES)
    price_cents: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    is_featured: bool | None = None
    is_active: bool | None = None
    position: int | None = None


class ServiceOut(BaseModel):
    id: UUID
    name: str
    slug: str
    category: CategoryOut | None = None
    short_description: str | None = None
    description: str | None = None
    duration_minutes: int | None = None
    price_cents: int | None = None
    image_url: str | None = None
    is_featured: bool
    is_active: bool
    options: list[ServiceOptionOut] = []

    class Config:
        from_attributes = True


class StaffServiceOut(BaseModel):
    """Light listing for the planning modal."""
    id: UUID
    name: str
    duration_minutes: int | None = None
    price_cents: int | None = None

    class Config:
        from_attributes = True
