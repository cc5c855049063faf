"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from app.models.user import UserRole


class UserRegister(BaseModel):
    """Request schema for client registration."""
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str | None = None


class UserLogin(BaseModel):
    """Request schema for user login."""
    email: EmailStr
    password: str


class UserOut(BaseModel):
    """Response schema for user info."""
    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: UserRole
    institute: str | None = None
    is_active: bool

    class Config:
        from_attributes = True


class Token(BaseModel):
    """Response schema for login and registration: the JWT and its user."""
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MessageResponse(BaseModel):
    """Generic success message response."""
    message: str
