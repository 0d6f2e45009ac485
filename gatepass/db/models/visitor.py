"""Visitor model and its status state machine."""
import enum
from datetime import datetime, timezone as tz
from sqlalchemy import Column, String, Date, Time, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship

from gatepass.db.base import Base
from gatepass.core.utils import new_id


class VisitorStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"


class VisitorType(str, enum.Enum):
    EXPECTED = "expected"
    WALK_IN = "walk-in"
    DELIVERY = "delivery"
    SERVICE = "service"
    GUEST = "guest"


# States a record may be created in
INITIAL_STATUSES = frozenset({
    VisitorStatus.PENDING,
    VisitorStatus.APPROVED,
    VisitorStatus.CHECKED_IN,
})

TERMINAL_STATUSES = frozenset({VisitorStatus.DENIED, VisitorStatus.CHECKED_OUT})

# Every directed edge a persisted visitor may move along
VISITOR_TRANSITIONS = frozenset({
    (VisitorStatus.PENDING, VisitorStatus.APPROVED),
    (VisitorStatus.PENDING, VisitorStatus.DENIED),
    (VisitorStatus.APPROVED, VisitorStatus.CHECKED_IN),
    (VisitorStatus.APPROVED, VisitorStatus.DENIED),
    (VisitorStatus.CHECKED_IN, VisitorStatus.CHECKED_OUT),
})


def is_valid_transition(source: VisitorStatus, target: VisitorStatus) -> bool:
    """Return True if ``source -> target`` is an edge of the state machine."""
    return (VisitorStatus(source), VisitorStatus(target)) in VISITOR_TRANSITIONS


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Visitor(Base):
    __tablename__ = "visitors"

    id = Column(String(36), primary_key=True, default=new_id)
    society_id = Column(String(36), ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    unit_id = Column(String(36), ForeignKey("units.id"), nullable=False)
    host_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)  # null only for walk-ins to empty units

    visitor_name = Column(String(100), nullable=False)
    visitor_phone = Column(String(10), nullable=True)
    visitor_type = Column(
        Enum(VisitorType, name="visitor_type", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=VisitorType.GUEST,
    )
    purpose = Column(String(200), nullable=True)
    expected_date = Column(Date, nullable=True)
    expected_time = Column(Time, nullable=True)

    status = Column(
        Enum(VisitorStatus, name="visitor_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=VisitorStatus.PENDING,
    )
    rejection_reason = Column(String(200), nullable=True)

    # Set together at pre-approval, cleared together on check-in
    otp = Column(String(6), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)
    checked_out_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)

    # Relationships
    unit = relationship("Unit")
    logs = relationship("VisitorLog", back_populates="visitor", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_visitors_society_status", "society_id", "status"),
        Index("idx_visitors_unit_status", "unit_id", "status"),
        Index("idx_visitors_society_otp", "society_id", "otp"),
        Index("idx_visitors_society_phone", "society_id", "visitor_phone"),
    )


class VisitorLog(Base):
    """Audit row written in the same transaction as each committed transition."""

    __tablename__ = "visitor_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    visitor_id = Column(String(36), ForeignKey("visitors.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(30), nullable=False)
    from_status = Column(String(20), nullable=True)  # null for creation
    to_status = Column(String(20), nullable=False)
    actor_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    visitor = relationship("Visitor", back_populates="logs")

    __table_args__ = (
        Index("idx_visitor_logs_visitor", "visitor_id"),
    )
