"""Factories shared by the test suites."""
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from gatepass.core.config import settings
from gatepass.core.security import create_access_token
from gatepass.core.utils import local_today, utcnow
from gatepass.db.models import (
    Profile,
    RoleType,
    Society,
    Unit,
    UserRole,
    Visitor,
    VisitorStatus,
    VisitorType,
)
from gatepass.schemas.auth import SessionContext

# 2025-01-15 10:00 in Asia/Kolkata
T0 = datetime(2025, 1, 15, 4, 30, tzinfo=timezone.utc)


def create_society(db, name="Green Valley Residency", units=("A-101", "A-102", "B-204", "C-301")):
    """Create a society with the given unit numbers; returns (society, {number: unit})."""
    society = Society(name=name)
    db.add(society)
    db.flush()

    by_number = {}
    for number in units:
        unit = Unit(society_id=society.id, block_name=number.split("-")[0], unit_number=number)
        db.add(unit)
        by_number[number] = unit

    db.commit()
    return society, by_number


def add_member(db, society, phone, role: RoleType, unit: Optional[Unit] = None, full_name=None) -> SessionContext:
    """Create a profile holding one role and return its session context."""
    profile = Profile(phone=phone, full_name=full_name)
    db.add(profile)
    db.flush()

    user_role = UserRole(
        profile_id=profile.id,
        society_id=society.id,
        unit_id=unit.id if unit else None,
        role=role,
    )
    db.add(user_role)
    db.commit()

    return SessionContext(
        profile_id=profile.id,
        role_id=user_role.id,
        role=role,
        society_id=society.id,
        unit_id=user_role.unit_id,
    )


def make_visitor(db, context: SessionContext, unit: Unit, status=VisitorStatus.PENDING, **fields) -> Visitor:
    """Insert a visitor row directly in ``status``."""
    values = {
        "society_id": context.society_id,
        "unit_id": unit.id,
        "host_id": context.profile_id,
        "visitor_name": "Raj Kumar",
        "visitor_phone": "9876543210",
        "visitor_type": VisitorType.GUEST,
        "expected_date": T0.date(),
        "status": status,
        "created_at": T0,
        "updated_at": T0,
    }
    if status == VisitorStatus.APPROVED and "otp" not in fields:
        values["otp"] = "482913"
        values["otp_expires_at"] = T0 + timedelta(hours=24)
    values.update(fields)

    visitor = Visitor(**values)
    db.add(visitor)
    db.commit()
    db.refresh(visitor)
    return visitor


def bearer(context: SessionContext) -> dict:
    """Authorization header for a session context."""
    return {"Authorization": f"Bearer {create_access_token(context.to_claims())}"}


def expected_now() -> dict:
    """Fields for an approved visitor expected today with a live pass, in wall-clock time."""
    now = utcnow()
    return {
        "expected_date": local_today(ZoneInfo(settings.TIMEZONE), now),
        "otp_expires_at": now + timedelta(hours=24),
    }
