"""User model: clients, practitioners and administrators share one table."""

from sqlalchemy import Column, String, DateTime, Boolean, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
import uuid
import enum
from datetime import datetime
from app.core.database import Base


class UserRole(str, enum.Enum):
    CLIENT = "client"
    PRACTITIONER = "practitioner"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


STAFF_ROLES = (UserRole.PRACTITIONER, UserRole.ADMIN, UserRole.SUPERADMIN)
ADMIN_ROLES = (UserRole.ADMIN, UserRole.SUPERADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=True, index=True)
    role = Column(SQLEnum(UserRole, name="user_role"), nullable=False, default=UserRole.CLIENT)
    institute = Column(String, nullable=True, index=True)  # "paris16", "lyon", ...
    is_active = Column(Boolean, nullable=False, default=True)
    is_walk_in = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
