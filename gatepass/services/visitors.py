"""Visitor lifecycle business logic."""
import json
from datetime import date, datetime, time
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import or_
from sqlalchemy.orm import Session

from gatepass.core import config
from gatepass.core.constants import DEFAULT_CANCEL_REASON, DEFAULT_DENY_REASON
from gatepass.core.exceptions import (
    OtpExpired,
    OtpInvalid,
    PermissionDenied,
    TransitionConflict,
    UnitNotFound,
    ValidationFailed,
    VisitorNotFound,
)
from gatepass.core.logging_config import get_logger
from gatepass.core.sanitization import validate_otp_format
from gatepass.core.utils import is_expired, local_today, to_timezone, to_utc, utcnow
from gatepass.db.models import RoleType, Unit, UserRole, Visitor, VisitorStatus, VisitorType
from gatepass.schemas.auth import SessionContext
from gatepass.services.otp import find_visitor_by_otp, verify_visitor_otp, visitor_otp_policy
from gatepass.services.notifications import stage_visitor_waiting
from gatepass.services.transitions import record_creation, transition
from gatepass.services.utils import generate_qr_code

logger = get_logger(__name__)

GATE_ROLES = (RoleType.GUARD, RoleType.MANAGER)
BUCKETS = ("pending", "approved", "active", "expected")


def _society_tz() -> ZoneInfo:
    return ZoneInfo(config.settings.TIMEZONE)


def _now(now: Optional[datetime]) -> datetime:
    return to_utc(now) if now else utcnow()


def resolve_unit(db: Session, society_id: str, unit_number: str) -> Unit:
    """
    Find a unit by exact, case-sensitive unit number within a society.

    Raises:
        UnitNotFound: If no unit in the society has that number
    """
    unit = db.query(Unit).filter(
        Unit.society_id == society_id,
        Unit.unit_number == unit_number,
    ).first()
    if not unit:
        raise UnitNotFound(f"Unit {unit_number} not found")
    return unit


def find_host(db: Session, unit_id: str) -> Optional[str]:
    """Return the profile id of an active resident of the unit, if any."""
    role = db.query(UserRole).filter(
        UserRole.unit_id == unit_id,
        UserRole.role == RoleType.RESIDENT,
        UserRole.is_active.is_(True),
    ).order_by(UserRole.id).first()
    return role.profile_id if role else None


def owns_visit(context: SessionContext, visitor: Visitor) -> bool:
    """True if the actor is a resident of the visitor's destination unit."""
    return context.role == RoleType.RESIDENT and context.unit_id == visitor.unit_id


def get_visitor(db: Session, context: SessionContext, visitor_id: str) -> Visitor:
    """
    Load a visitor the actor is allowed to see.

    Visitors of other societies are reported as missing; residents may only
    see visitors of their own unit.
    """
    if context.society_id is None:
        raise PermissionDenied("Please select a role first")

    visitor = db.get(Visitor, visitor_id)
    if visitor is None or visitor.society_id != context.society_id:
        raise VisitorNotFound()

    if context.role == RoleType.RESIDENT and not owns_visit(context, visitor):
        raise PermissionDenied()

    return visitor


def _resident_unit(context: SessionContext) -> str:
    if not context.unit_id:
        raise PermissionDenied("No unit is linked to this role")
    return context.unit_id


def _checked_otp(otp: str) -> str:
    try:
        return validate_otp_format(otp)
    except ValueError as exc:
        raise ValidationFailed(str(exc))


def _create(
    db: Session,
    visitor: Visitor,
    action: str,
    actor_id: Optional[str],
    notify_host: bool = False,
) -> Visitor:
    try:
        db.add(visitor)
        db.flush()
        record_creation(db, visitor, action, actor_id)
        if notify_host:
            stage_visitor_waiting(db, visitor)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(visitor)
    return visitor


def pre_approve_visitor(
    db: Session,
    context: SessionContext,
    visitor_name: str,
    visitor_phone: Optional[str] = None,
    visitor_type: VisitorType = VisitorType.GUEST,
    expected_date: Optional[date] = None,
    expected_time: Optional[time] = None,
    purpose: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Visitor, str]:
    """
    Create a visitor already approved by the host, with a gate OTP.

    Returns:
        Tuple of (visitor, otp). The OTP is valid for VISITOR_OTP_TTL_HOURS.
    """
    context.require_role(RoleType.RESIDENT)
    unit_id = _resident_unit(context)
    current = _now(now)
    today = local_today(_society_tz(), current)

    if visitor_type == VisitorType.WALK_IN:
        raise ValidationFailed("Walk-in visitors are registered at the gate")

    if expected_date is not None and expected_date < today:
        raise ValidationFailed("Expected date cannot be in the past")

    otp, otp_expires_at = visitor_otp_policy().issue(current)

    visitor = Visitor(
        society_id=context.society_id,
        unit_id=unit_id,
        host_id=context.profile_id,
        visitor_name=visitor_name,
        visitor_phone=visitor_phone,
        visitor_type=visitor_type,
        purpose=purpose,
        expected_date=expected_date or today,
        expected_time=expected_time,
        status=VisitorStatus.APPROVED,
        otp=otp,
        otp_expires_at=otp_expires_at,
        created_at=current,
        updated_at=current,
    )
    visitor = _create(db, visitor, "pre_approve", context.profile_id)

    logger.info("visitor_pre_approved", visitor_id=visitor.id, unit_id=unit_id)
    return visitor, otp


def request_visitor(
    db: Session,
    context: SessionContext,
    visitor_name: str,
    unit_number: Optional[str] = None,
    visitor_phone: Optional[str] = None,
    visitor_type: VisitorType = VisitorType.WALK_IN,
    purpose: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Visitor:
    """
    Create a pending visit that waits for the host resident's decision.

    Guards name the destination unit; residents always request for their own
    unit. The host is sent a "visitor waiting" notification in the same
    transaction.
    """
    context.require_role(RoleType.RESIDENT, RoleType.GUARD)
    current = _now(now)

    if context.role == RoleType.RESIDENT:
        unit_id = _resident_unit(context)
        host_id = context.profile_id
    else:
        if not unit_number:
            raise ValidationFailed("Unit number is required")
        unit_id = resolve_unit(db, context.society_id, unit_number).id
        host_id = find_host(db, unit_id)

    visitor = Visitor(
        society_id=context.society_id,
        unit_id=unit_id,
        host_id=host_id,
        visitor_name=visitor_name,
        visitor_phone=visitor_phone,
        visitor_type=visitor_type,
        purpose=purpose,
        expected_date=local_today(_society_tz(), current),
        status=VisitorStatus.PENDING,
        created_at=current,
        updated_at=current,
    )
    # No notice when the host files the request themselves
    visitor = _create(
        db, visitor, "request", context.profile_id,
        notify_host=host_id is not None and host_id != context.profile_id,
    )

    logger.info("visitor_requested", visitor_id=visitor.id, unit_id=unit_id, host_id=host_id)
    return visitor


def register_walk_in(
    db: Session,
    context: SessionContext,
    unit_number: str,
    visitor_name: str,
    visitor_phone: Optional[str] = None,
    purpose: Optional[str] = None,
    visitor_type: VisitorType = VisitorType.WALK_IN,
    now: Optional[datetime] = None,
) -> Visitor:
    """
    Register a visitor at the gate directly in checked-in status.

    There is no pending or approved step; the record is born inside.

    Raises:
        UnitNotFound: If ``unit_number`` does not exactly match a unit in the society
    """
    context.require_role(*GATE_ROLES)
    current = _now(now)
    unit = resolve_unit(db, context.society_id, unit_number)

    visitor = Visitor(
        society_id=context.society_id,
        unit_id=unit.id,
        host_id=find_host(db, unit.id),
        visitor_name=visitor_name,
        visitor_phone=visitor_phone,
        visitor_type=visitor_type,
        purpose=purpose,
        expected_date=local_today(_society_tz(), current),
        status=VisitorStatus.CHECKED_IN,
        checked_in_at=current,
        checked_in_by=context.profile_id,
        created_at=current,
        updated_at=current,
    )
    visitor = _create(db, visitor, "walk_in", context.profile_id)

    logger.info("visitor_walked_in", visitor_id=visitor.id, unit_id=unit.id, guard_id=context.profile_id)
    return visitor


def approve(db: Session, context: SessionContext, visitor_id: str, now: Optional[datetime] = None) -> Visitor:
    """Approve a pending visitor (resident of the destination unit)."""
    context.require_role(RoleType.RESIDENT)
    get_visitor(db, context, visitor_id)
    return transition(
        db, visitor_id,
        VisitorStatus.PENDING, VisitorStatus.APPROVED,
        action="approve",
        actor_id=context.profile_id,
        now=_now(now),
    )


def deny(
    db: Session,
    context: SessionContext,
    visitor_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Visitor:
    """Deny a pending visitor (resident of the destination unit)."""
    context.require_role(RoleType.RESIDENT)
    get_visitor(db, context, visitor_id)
    return transition(
        db, visitor_id,
        VisitorStatus.PENDING, VisitorStatus.DENIED,
        action="deny",
        actor_id=context.profile_id,
        fields={"rejection_reason": reason or DEFAULT_DENY_REASON},
        now=_now(now),
    )


def cancel(db: Session, context: SessionContext, visitor_id: str, now: Optional[datetime] = None) -> Visitor:
    """
    Cancel an upcoming approved visit.

    The outstanding OTP is cleared with the status change.

    Raises:
        ValidationFailed: If the visit's expected date is already past
    """
    context.require_role(RoleType.RESIDENT)
    visitor = get_visitor(db, context, visitor_id)
    current = _now(now)

    if visitor.expected_date is not None and visitor.expected_date < local_today(_society_tz(), current):
        raise ValidationFailed("Only upcoming visits can be cancelled")

    return transition(
        db, visitor_id,
        VisitorStatus.APPROVED, VisitorStatus.DENIED,
        action="cancel",
        actor_id=context.profile_id,
        fields={
            "rejection_reason": DEFAULT_CANCEL_REASON,
            "otp": None,
            "otp_expires_at": None,
        },
        now=current,
    )


def _check_manual_entry(visitor: Visitor, today: date, current: datetime) -> None:
    """Manual check-in is for approved visitors on today's expected list only."""
    if visitor.status != VisitorStatus.APPROVED:
        return
    if visitor.otp and is_expired(visitor.otp_expires_at, current):
        raise OtpExpired()
    if visitor.expected_date != today:
        raise ValidationFailed("Visitor is not expected today")


def check_in(
    db: Session,
    context: SessionContext,
    visitor_id: str,
    otp: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Visitor:
    """
    Check in an approved visitor at the gate.

    With ``otp`` the code must match and be unexpired, and the same UPDATE
    that flips the status re-checks both and clears the code, so a code can
    never be used twice. Without ``otp`` this is the guard's manual check-in
    from the expected list: the visit must be expected today and any pass
    issued for it must still be live.

    Raises:
        OtpInvalid / OtpExpired: On the OTP path, or a lapsed pass on the manual path
        ValidationFailed: Manual check-in of a visitor not expected today
        TransitionConflict: If the visitor is no longer approved
    """
    context.require_role(RoleType.GUARD)
    visitor = get_visitor(db, context, visitor_id)
    current = _now(now)

    if otp is not None:
        otp = _checked_otp(otp)
        if visitor.status == VisitorStatus.APPROVED:
            verify_visitor_otp(otp, visitor, current)
        extra_predicates = (Visitor.otp == otp, Visitor.otp_expires_at > current)
    else:
        today = local_today(_society_tz(), current)
        _check_manual_entry(visitor, today, current)
        extra_predicates = (
            Visitor.expected_date == today,
            or_(Visitor.otp.is_(None), Visitor.otp_expires_at > current),
        )

    try:
        visitor = transition(
            db, visitor_id,
            VisitorStatus.APPROVED, VisitorStatus.CHECKED_IN,
            action="check_in",
            actor_id=context.profile_id,
            fields={
                "checked_in_at": current,
                "checked_in_by": context.profile_id,
                "otp": None,
                "otp_expires_at": None,
            },
            extra_predicates=extra_predicates,
            now=current,
        )
    except TransitionConflict as exc:
        # Still approved means an extra predicate lost, not the status one
        if exc.actual == VisitorStatus.APPROVED.value:
            fresh = db.get(Visitor, visitor_id)
            if otp is not None:
                verify_visitor_otp(otp, fresh, current)
            else:
                _check_manual_entry(fresh, today, current)
        raise

    logger.info(
        "visitor_checked_in",
        visitor_id=visitor_id,
        guard_id=context.profile_id,
        method="otp" if otp else "manual",
    )
    return visitor


def check_in_by_otp(db: Session, context: SessionContext, otp: str, now: Optional[datetime] = None) -> Visitor:
    """
    Check in whichever approved visitor of the society holds ``otp``.

    Raises:
        OtpInvalid: If no approved visitor holds the code
        OtpExpired: If the holder's code has expired
    """
    context.require_role(RoleType.GUARD)
    otp = _checked_otp(otp)

    visitor = find_visitor_by_otp(db, context.society_id, otp)
    if visitor is None:
        logger.info("otp_checkin_no_match", society_id=context.society_id)
        raise OtpInvalid()

    return check_in(db, context, visitor.id, otp=otp, now=now)


def build_qr_payload(visitor: Visitor, otp: str) -> str:
    """Payload encoded in a visitor's QR pass."""
    return json.dumps({
        "visitorId": visitor.id,
        "otp": otp,
        "visitorName": visitor.visitor_name,
    })


def check_in_by_qr(db: Session, context: SessionContext, payload: str, now: Optional[datetime] = None) -> Visitor:
    """
    Check in the visitor named by a scanned QR pass.

    Raises:
        ValidationFailed: If the payload is not a visitor pass
        VisitorNotFound: If the pass names an unknown visitor
    """
    context.require_role(RoleType.GUARD)
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        raise ValidationFailed("Could not read QR code")

    if not isinstance(data, dict) or not data.get("visitorId") or not data.get("otp"):
        raise ValidationFailed("Invalid QR code format")

    try:
        return check_in(db, context, str(data["visitorId"]), otp=str(data["otp"]), now=now)
    except VisitorNotFound:
        raise VisitorNotFound("Visitor not found or invalid QR code")


def check_out(db: Session, context: SessionContext, visitor_id: str, now: Optional[datetime] = None) -> Visitor:
    """Check out a visitor who is currently inside."""
    context.require_role(RoleType.GUARD)
    get_visitor(db, context, visitor_id)
    current = _now(now)
    return transition(
        db, visitor_id,
        VisitorStatus.CHECKED_IN, VisitorStatus.CHECKED_OUT,
        action="check_out",
        actor_id=context.profile_id,
        fields={
            "checked_out_at": current,
            "checked_out_by": context.profile_id,
        },
        now=current,
    )


def list_visitors(
    db: Session,
    context: SessionContext,
    bucket: str,
    now: Optional[datetime] = None,
) -> List[Visitor]:
    """
    List the visitors in one bucket of the actor's view.

    Buckets:
        pending: awaiting approval
        approved: approved, not yet inside
        active: currently checked in
        expected: approved for today (guard's expected list)

    Residents only ever see their own unit.
    """
    if bucket not in BUCKETS:
        raise ValidationFailed(f"Unknown bucket '{bucket}'")
    if context.society_id is None:
        raise PermissionDenied("Please select a role first")

    query = db.query(Visitor).filter(Visitor.society_id == context.society_id)

    if bucket == "pending":
        query = query.filter(Visitor.status == VisitorStatus.PENDING)
    elif bucket == "approved":
        query = query.filter(Visitor.status == VisitorStatus.APPROVED)
    elif bucket == "active":
        query = query.filter(Visitor.status == VisitorStatus.CHECKED_IN)
    else:
        query = query.filter(
            Visitor.status == VisitorStatus.APPROVED,
            Visitor.expected_date == local_today(_society_tz(), _now(now)),
        )

    if context.role == RoleType.RESIDENT:
        query = query.filter(Visitor.unit_id == _resident_unit(context))

    return query.order_by(Visitor.created_at.desc()).all()


def list_expected_visitors(db: Session, context: SessionContext, now: Optional[datetime] = None) -> List[Visitor]:
    """Approved visitors expected today, for the gate."""
    context.require_role(*GATE_ROLES)
    return list_visitors(db, context, "expected", now=now)


def list_active_visitors(db: Session, context: SessionContext) -> List[Visitor]:
    """Visitors currently inside."""
    context.require_role(*GATE_ROLES)
    return list_visitors(db, context, "active")


def lookup_visitor_by_phone(
    db: Session,
    context: SessionContext,
    phone: str,
    now: Optional[datetime] = None,
) -> dict:
    """
    Look up previous visits by phone for the walk-in form.

    Returns the most recent name (for auto-fill), whether the visitor is
    already inside today (duplicate warning) and the last visit time.
    """
    context.require_role(*GATE_ROLES)
    tz = _society_tz()
    today = local_today(tz, _now(now))

    visits = db.query(Visitor).filter(
        Visitor.society_id == context.society_id,
        Visitor.visitor_phone == phone,
    ).order_by(Visitor.created_at.desc()).limit(10).all()

    if not visits:
        return {"name": None, "is_checked_in_today": False, "last_visit": None}

    checked_in_today = any(
        v.status == VisitorStatus.CHECKED_IN
        and v.checked_in_at is not None
        and to_timezone(v.checked_in_at, tz).date() == today
        for v in visits
    )
    most_recent = visits[0]
    last_visit = most_recent.checked_in_at or most_recent.created_at

    return {
        "name": most_recent.visitor_name,
        "is_checked_in_today": checked_in_today,
        "last_visit": to_utc(last_visit) if last_visit else None,
    }


def get_visitor_pass(db: Session, context: SessionContext, visitor_id: str, now: Optional[datetime] = None):
    """
    Render the QR pass the host shares with an approved visitor.

    Returns:
        io.BytesIO holding the SVG image
    """
    context.require_role(RoleType.RESIDENT)
    visitor = get_visitor(db, context, visitor_id)

    if visitor.status != VisitorStatus.APPROVED or not visitor.otp:
        raise ValidationFailed("A pass is only available for approved visitors")
    verify_visitor_otp(visitor.otp, visitor, _now(now))

    return generate_qr_code(build_qr_payload(visitor, visitor.otp))
