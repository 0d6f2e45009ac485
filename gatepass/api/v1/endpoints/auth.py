"""Authentication endpoints."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from gatepass.api.deps import get_db, get_otp_sender, get_session_context
from gatepass.core.rate_limit import limiter, RATE_LIMITS
from gatepass.schemas import (
    OtpSendRequest,
    OtpVerifyRequest,
    ProfileRead,
    RoleRead,
    RoleSelectRequest,
    SessionContext,
    TokenResponse,
)
from gatepass.services.auth import OtpSender, get_current_profile, select_role, send_login_otp, verify_login_otp

router = APIRouter()


class OtpSentResponse(BaseModel):
    success: bool = True
    message: str
    expires_at: datetime


class MeResponse(BaseModel):
    profile: ProfileRead
    roles: List[RoleRead]
    current_role_id: Optional[str] = None


@router.post("/otp/send", response_model=OtpSentResponse)
@limiter.limit(RATE_LIMITS["otp_send"])
def send_otp_endpoint(
    request: Request,
    body: OtpSendRequest,
    db: Session = Depends(get_db),
    sender: OtpSender = Depends(get_otp_sender),
):
    """
    Send a login OTP to a phone number.

    Any earlier code for the same phone stops working. The code is valid for
    10 minutes and can be used once.

    Example:
        Request:
            POST /api/v1/auth/otp/send
            {"phone": "98765 43210"}

        Response (200):
            {"success": true, "message": "OTP sent", "expires_at": "..."}
    """
    expires_at = send_login_otp(db, body.phone, sender=sender)
    return OtpSentResponse(message="OTP sent", expires_at=expires_at)


@router.post("/otp/verify", response_model=TokenResponse)
@limiter.limit(RATE_LIMITS["otp_verify"])
def verify_otp_endpoint(
    request: Request,
    body: OtpVerifyRequest,
    db: Session = Depends(get_db),
):
    """
    Exchange a login OTP for a bearer token.

    Users with a single role are signed straight into it (``current_role``
    is set); others must call ``POST /auth/role`` next.

    Raises:
        400 otp_invalid: Wrong, used or missing code
        410 otp_expired: Code older than 10 minutes
    """
    profile, roles, current_role, token = verify_login_otp(db, body.phone, body.otp)
    return TokenResponse(
        access_token=token,
        profile=ProfileRead.model_validate(profile),
        roles=[RoleRead.model_validate(r) for r in roles],
        current_role=RoleRead.model_validate(current_role) if current_role else None,
    )


@router.post("/role", response_model=TokenResponse)
def select_role_endpoint(
    body: RoleSelectRequest,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Switch the session to another of the user's roles and reissue the token."""
    role, token = select_role(db, context, body.role_id)
    profile, roles = get_current_profile(db, context)
    return TokenResponse(
        access_token=token,
        profile=ProfileRead.model_validate(profile),
        roles=[RoleRead.model_validate(r) for r in roles],
        current_role=RoleRead.model_validate(role),
    )


@router.get("/me", response_model=MeResponse)
def me_endpoint(
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Current profile, available roles and the selected one."""
    profile, roles = get_current_profile(db, context)
    return MeResponse(
        profile=ProfileRead.model_validate(profile),
        roles=[RoleRead.model_validate(r) for r in roles],
        current_role_id=context.role_id,
    )
