"""Society and unit models."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from gatepass.db.base import Base
from gatepass.core.utils import new_id


class Society(Base):
    __tablename__ = "societies"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    units = relationship("Unit", back_populates="society", cascade="all, delete-orphan")


class Unit(Base):
    __tablename__ = "units"

    id = Column(String(36), primary_key=True, default=new_id)
    society_id = Column(String(36), ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    block_name = Column(String(50), nullable=True)
    unit_number = Column(String(20), nullable=False)  # exact, case-sensitive match

    # Relationships
    society = relationship("Society", back_populates="units")

    __table_args__ = (
        Index("idx_units_society", "society_id"),
        UniqueConstraint("society_id", "unit_number", name="uq_society_unit_number"),
    )
