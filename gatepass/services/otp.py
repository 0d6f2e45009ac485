"""OTP generation, expiry policy and visitor OTP verification."""
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from gatepass.core import config
from gatepass.core.constants import OTP_MAX_VALUE, OTP_MIN_VALUE
from gatepass.core.exceptions import OtpExpired, OtpInvalid
from gatepass.core.utils import is_expired, utcnow
from gatepass.db.models import Visitor, VisitorStatus


def generate_otp() -> str:
    """Generate a 6-digit code uniformly distributed over [100000, 999999]."""
    return str(OTP_MIN_VALUE + secrets.randbelow(OTP_MAX_VALUE - OTP_MIN_VALUE + 1))


class OtpPolicy:
    """
    How long a freshly generated code stays valid.

    Visitor pre-approval codes and login codes share the generator and differ
    only in lifetime and delivery channel.
    """

    def __init__(self, ttl: timedelta):
        self.ttl = ttl

    def issue(self, now: Optional[datetime] = None) -> Tuple[str, datetime]:
        """Return a new ``(code, expires_at)`` pair."""
        issued_at = now or utcnow()
        return generate_otp(), issued_at + self.ttl


def visitor_otp_policy() -> OtpPolicy:
    """Policy for pre-approved visitor codes (24 hours by default)."""
    return OtpPolicy(timedelta(hours=config.settings.VISITOR_OTP_TTL_HOURS))


def login_otp_policy() -> OtpPolicy:
    """Policy for phone-verification codes (10 minutes by default)."""
    return OtpPolicy(timedelta(minutes=config.settings.LOGIN_OTP_TTL_MINUTES))


def verify_visitor_otp(candidate: str, visitor: Visitor, now: Optional[datetime] = None) -> None:
    """
    Verify a code presented at the gate against a visitor record.

    A mismatch is reported as invalid regardless of expiry; a match whose
    window has closed is reported as expired. Verification does not consume
    the code; the check-in transition clears it.

    Raises:
        OtpInvalid: If the visitor has no code or ``candidate`` differs from it
        OtpExpired: If the code matches but ``now`` is at or past its expiry
    """
    if not visitor.otp or not secrets.compare_digest(candidate, visitor.otp):
        raise OtpInvalid()

    if is_expired(visitor.otp_expires_at, now):
        raise OtpExpired()


def find_visitor_by_otp(db: Session, society_id: str, otp: str) -> Optional[Visitor]:
    """
    Find the approved visitor holding ``otp`` in a society.

    Codes are not globally unique; when more than one approved visitor holds
    the same code the one with the latest expiry wins, so a live code is
    preferred over a stale one.
    """
    return (
        db.query(Visitor)
        .filter(
            Visitor.society_id == society_id,
            Visitor.status == VisitorStatus.APPROVED,
            Visitor.otp == otp,
        )
        .order_by(Visitor.otp_expires_at.desc())
        .first()
    )
