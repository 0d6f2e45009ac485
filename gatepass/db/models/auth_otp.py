"""Login OTP model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Boolean, Column, Integer, String, DateTime

from gatepass.db.base import Base


class AuthOtp(Base):
    """One outstanding phone-verification code per phone number."""

    __tablename__ = "auth_otps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone = Column(String(16), unique=True, nullable=False, index=True)
    otp_hash = Column(String(128), nullable=False)  # Argon2 hash, never the code itself
    verified = Column(Boolean, nullable=False, default=False)
    attempts = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
