"""Shared API dependencies."""
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from gatepass.core.exceptions import AuthenticationFailed
from gatepass.core.security import verify_session_token
from gatepass.db import get_db
from gatepass.schemas.auth import SessionContext
from gatepass.services.auth import OtpSender, confirm_session_role


def get_session_context(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    """Resolve the acting profile and role from the bearer token."""
    try:
        payload = verify_session_token(request)
    except HTTPException as exc:
        raise AuthenticationFailed(str(exc.detail))
    return confirm_session_role(db, SessionContext.from_claims(payload))


def get_otp_sender() -> OtpSender:
    """Delivery channel for login codes."""
    return OtpSender()


__all__ = ["get_db", "get_session_context", "get_otp_sender"]
