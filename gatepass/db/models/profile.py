"""Profile and role membership models."""
import enum
from datetime import datetime, timezone as tz
from sqlalchemy import Boolean, Column, String, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship

from gatepass.db.base import Base
from gatepass.core.utils import new_id


class RoleType(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    GUARD = "guard"
    RESIDENT = "resident"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    phone = Column(String(16), unique=True, nullable=False, index=True)  # +91XXXXXXXXXX
    full_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    roles = relationship("UserRole", back_populates="profile", cascade="all, delete-orphan")


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=new_id)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    society_id = Column(String(36), ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    unit_id = Column(String(36), ForeignKey("units.id", ondelete="SET NULL"), nullable=True)
    role = Column(
        Enum(RoleType, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    profile = relationship("Profile", back_populates="roles")
    unit = relationship("Unit")

    __table_args__ = (
        Index("idx_user_roles_profile", "profile_id"),
        Index("idx_user_roles_unit_role", "unit_id", "role"),
    )
