"""Phone login and role selection."""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from gatepass.core import config
from gatepass.core.constants import MAX_LOGIN_OTP_ATTEMPTS
from gatepass.core.exceptions import AuthenticationFailed, OtpExpired, OtpInvalid, PermissionDenied
from gatepass.core.logging_config import get_logger
from gatepass.core.sanitization import mask_phone
from gatepass.core.security import create_access_token, get_password_hash, verify_password
from gatepass.core.utils import is_expired, to_utc, utcnow
from gatepass.db.models import AuthOtp, Profile, UserRole
from gatepass.schemas.auth import SessionContext
from gatepass.services.otp import login_otp_policy

logger = get_logger(__name__)


class OtpSender:
    """
    Delivery channel for login codes.

    The default implementation only logs; an SMS gateway plugs in by
    overriding ``send``.
    """

    def send(self, phone: str, code: str) -> None:
        extra = {"otp": code} if config.settings.ENVIRONMENT == "development" else {}
        logger.info("login_otp_sent", phone=mask_phone(phone[-10:]), **extra)


def send_login_otp(
    db: Session,
    phone: str,
    sender: Optional[OtpSender] = None,
    now: Optional[datetime] = None,
) -> datetime:
    """
    Issue a fresh login code for ``phone`` and hand it to ``sender``.

    Any earlier code for the phone is replaced. Only the Argon2 hash is stored.

    Returns:
        The expiry of the new code
    """
    current = to_utc(now) if now else utcnow()
    code, expires_at = login_otp_policy().issue(current)

    record = db.query(AuthOtp).filter(AuthOtp.phone == phone).first()
    if record is None:
        record = AuthOtp(phone=phone)
        db.add(record)

    record.otp_hash = get_password_hash(code)
    record.verified = False
    record.attempts = 0
    record.expires_at = expires_at
    record.created_at = current

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    (sender or OtpSender()).send(phone, code)
    return expires_at


def _consume_login_otp(db: Session, phone: str, otp: str, now: datetime) -> None:
    record = db.query(AuthOtp).filter(AuthOtp.phone == phone).first()
    if record is None or record.verified:
        raise OtpInvalid("Please request a new OTP")

    if record.attempts >= MAX_LOGIN_OTP_ATTEMPTS:
        raise OtpInvalid("Too many attempts. Please request a new OTP.")

    if is_expired(record.expires_at, now):
        raise OtpExpired("OTP has expired. Please request a new one.")

    if not verify_password(otp, record.otp_hash):
        # Counted in SQL so concurrent wrong guesses are all recorded
        result = db.execute(
            update(AuthOtp)
            .where(AuthOtp.id == record.id, AuthOtp.attempts < MAX_LOGIN_OTP_ATTEMPTS)
            .values(attempts=AuthOtp.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        if result.rowcount != 1:
            raise OtpInvalid("Too many attempts. Please request a new OTP.")
        logger.info("login_otp_mismatch", phone=mask_phone(phone[-10:]), attempts=record.attempts)
        raise OtpInvalid()

    # Single use: only one verifier can flip verified from False
    result = db.execute(
        update(AuthOtp)
        .where(AuthOtp.id == record.id, AuthOtp.verified.is_(False))
        .values(verified=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount != 1:
        raise OtpInvalid("Please request a new OTP")


def active_roles(db: Session, profile_id: str) -> List[UserRole]:
    """All active roles of a profile."""
    return db.query(UserRole).filter(
        UserRole.profile_id == profile_id,
        UserRole.is_active.is_(True),
    ).order_by(UserRole.id).all()


def _context_for(profile: Profile, role: Optional[UserRole]) -> SessionContext:
    if role is None:
        return SessionContext(profile_id=profile.id)
    return SessionContext(
        profile_id=profile.id,
        role_id=role.id,
        role=role.role,
        society_id=role.society_id,
        unit_id=role.unit_id,
    )


def verify_login_otp(
    db: Session,
    phone: str,
    otp: str,
    now: Optional[datetime] = None,
) -> Tuple[Profile, List[UserRole], Optional[UserRole], str]:
    """
    Verify a login code and open a session.

    A profile is created on first login. A user holding exactly one role is
    placed in it straight away; otherwise the role must be chosen with
    ``select_role``.

    Returns:
        Tuple of (profile, roles, current_role, access_token)

    Raises:
        OtpInvalid: Wrong, used or missing code, or too many attempts
        OtpExpired: Code past its 10-minute window
        AuthenticationFailed: Profile is deactivated
    """
    current = to_utc(now) if now else utcnow()
    _consume_login_otp(db, phone, otp, current)

    profile = db.query(Profile).filter(Profile.phone == phone).first()
    if profile is None:
        profile = Profile(phone=phone)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        logger.info("profile_created", profile_id=profile.id)
    elif not profile.is_active:
        raise AuthenticationFailed("This account has been deactivated")

    roles = active_roles(db, profile.id)
    current_role = roles[0] if len(roles) == 1 else None
    token = create_access_token(_context_for(profile, current_role).to_claims())

    logger.info("login_succeeded", profile_id=profile.id, roles=len(roles))
    return profile, roles, current_role, token


def select_role(db: Session, context: SessionContext, role_id: str) -> Tuple[UserRole, str]:
    """
    Switch the session to one of the profile's roles.

    Returns:
        Tuple of (role, new access_token)
    """
    role = db.get(UserRole, role_id)
    if role is None or role.profile_id != context.profile_id or not role.is_active:
        raise PermissionDenied("This role is not available to you")

    profile = db.get(Profile, context.profile_id)
    if profile is None or not profile.is_active:
        raise AuthenticationFailed("This account has been deactivated")

    token = create_access_token(_context_for(profile, role).to_claims())
    logger.info("role_selected", profile_id=profile.id, role=role.role.value, society_id=role.society_id)
    return role, token


def confirm_session_role(db: Session, context: SessionContext) -> SessionContext:
    """
    Check that the role named in a session token is still held.

    Tokens outlive role changes, so the role row must still exist, belong to
    the profile, be active and match the society and unit in the claims.

    Raises:
        AuthenticationFailed: If the role was revoked or the claims disagree
    """
    if context.role_id is None:
        if context.role is not None or context.society_id is not None:
            raise AuthenticationFailed("Invalid token")
        return context

    role = db.get(UserRole, context.role_id)
    if (
        role is None
        or not role.is_active
        or role.profile_id != context.profile_id
        or role.role != context.role
        or role.society_id != context.society_id
        or role.unit_id != context.unit_id
    ):
        logger.warning("session_role_rejected", profile_id=context.profile_id, role_id=context.role_id)
        raise AuthenticationFailed("Your role is no longer active. Please log in again.")
    return context


def get_current_profile(db: Session, context: SessionContext) -> Tuple[Profile, List[UserRole]]:
    """The signed-in profile and its active roles."""
    profile = db.get(Profile, context.profile_id)
    if profile is None or not profile.is_active:
        raise AuthenticationFailed("Session is no longer valid")
    return profile, active_roles(db, profile.id)
