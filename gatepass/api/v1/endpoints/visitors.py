"""Visitor endpoints."""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from gatepass.api.deps import get_db, get_session_context
from gatepass.core.exceptions import ValidationFailed
from gatepass.core.rate_limit import limiter, RATE_LIMITS
from gatepass.core.sanitization import sanitize_phone
from gatepass.schemas import (
    CheckInRequest,
    DenyRequest,
    OtpCheckInRequest,
    PreApproveRequest,
    PreApproveResponse,
    QrCheckInRequest,
    SessionContext,
    VisitorLookupResponse,
    VisitorRead,
    VisitRequestCreate,
    WalkInRequest,
)
from gatepass.services import visitors as visitor_service

router = APIRouter()


def _read(context: SessionContext, visitor) -> VisitorRead:
    return VisitorRead.from_visitor(visitor, masked=not visitor_service.owns_visit(context, visitor))


@router.get("", response_model=List[VisitorRead])
def list_visitors_endpoint(
    bucket: Literal["pending", "approved", "active", "expected"] = Query(...),
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    List visitors in one bucket.

    Residents see their own unit's ``pending`` and ``approved`` visitors;
    guards use ``expected`` (approved for today) and ``active`` (inside).
    Phone numbers are masked unless the caller is a resident of the unit.
    """
    visitors = visitor_service.list_visitors(db, context, bucket)
    return [_read(context, v) for v in visitors]


@router.get("/lookup", response_model=VisitorLookupResponse)
def lookup_visitor_endpoint(
    phone: str = Query(..., min_length=1, max_length=20),
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    Previous visits for a phone number (walk-in form auto-fill).

    ``is_checked_in_today`` warns the guard the visitor is already inside.
    """
    try:
        phone = sanitize_phone(phone)
    except ValueError as e:
        raise ValidationFailed(str(e))
    return VisitorLookupResponse(**visitor_service.lookup_visitor_by_phone(db, context, phone))


@router.post("/pre-approve", response_model=PreApproveResponse, status_code=201)
def pre_approve_endpoint(
    body: PreApproveRequest,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    Pre-approve an expected visitor (resident only).

    The returned OTP and QR payload are shown once to the resident to share
    with the visitor; the OTP is valid for 24 hours.
    """
    visitor, otp = visitor_service.pre_approve_visitor(
        db, context,
        visitor_name=body.visitor_name,
        visitor_phone=body.visitor_phone,
        visitor_type=body.visitor_type,
        expected_date=body.expected_date,
        expected_time=body.expected_time,
        purpose=body.purpose,
    )
    return PreApproveResponse(
        visitor=_read(context, visitor),
        otp=otp,
        otp_expires_at=visitor.otp_expires_at,
        qr_payload=visitor_service.build_qr_payload(visitor, otp),
    )


@router.post("/requests", response_model=VisitorRead, status_code=201)
def request_visit_endpoint(
    body: VisitRequestCreate,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Create a pending visit awaiting the host resident's approval."""
    visitor = visitor_service.request_visitor(
        db, context,
        visitor_name=body.visitor_name,
        unit_number=body.unit_number,
        visitor_phone=body.visitor_phone,
        visitor_type=body.visitor_type,
        purpose=body.purpose,
    )
    return _read(context, visitor)


@router.post("/walk-in", response_model=VisitorRead, status_code=201)
def walk_in_endpoint(
    body: WalkInRequest,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    Register a walk-in visitor who is let in immediately (guard or manager).

    Raises:
        404 unit_not_found: Unit number does not exactly match a unit
    """
    visitor = visitor_service.register_walk_in(
        db, context,
        unit_number=body.unit_number,
        visitor_name=body.visitor_name,
        visitor_phone=body.visitor_phone,
        purpose=body.purpose,
        visitor_type=body.visitor_type,
    )
    return _read(context, visitor)


@router.post("/check-in/otp", response_model=VisitorRead)
@limiter.limit(RATE_LIMITS["otp_checkin"])
def check_in_by_otp_endpoint(
    request: Request,
    body: OtpCheckInRequest,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    Check in the visitor holding a typed OTP (guard only).

    Raises:
        400 otp_invalid: No approved visitor holds this code
        410 otp_expired: The code matched but has expired
    """
    visitor = visitor_service.check_in_by_otp(db, context, body.otp)
    return _read(context, visitor)


@router.post("/check-in/qr", response_model=VisitorRead)
@limiter.limit(RATE_LIMITS["otp_checkin"])
def check_in_by_qr_endpoint(
    request: Request,
    body: QrCheckInRequest,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Check in the visitor named by a scanned QR pass (guard only)."""
    visitor = visitor_service.check_in_by_qr(db, context, body.payload)
    return _read(context, visitor)


@router.get("/{visitor_id}", response_model=VisitorRead)
def get_visitor_endpoint(
    visitor_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Authoritative state of a single visitor."""
    return _read(context, visitor_service.get_visitor(db, context, visitor_id))


@router.get("/{visitor_id}/pass.svg")
def visitor_pass_endpoint(
    visitor_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """QR pass image for an approved visitor (host resident only)."""
    buffer = visitor_service.get_visitor_pass(db, context, visitor_id)
    return Response(content=buffer.getvalue(), media_type="image/svg+xml")


@router.post("/{visitor_id}/approve", response_model=VisitorRead)
def approve_endpoint(
    visitor_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    Approve a pending visitor.

    Raises:
        409 conflict: The visitor was already approved, denied or checked in
    """
    return _read(context, visitor_service.approve(db, context, visitor_id))


@router.post("/{visitor_id}/deny", response_model=VisitorRead)
def deny_endpoint(
    visitor_id: str,
    body: Optional[DenyRequest] = None,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Deny a pending visitor with an optional reason."""
    reason = body.reason if body else None
    return _read(context, visitor_service.deny(db, context, visitor_id, reason))


@router.post("/{visitor_id}/cancel", response_model=VisitorRead)
def cancel_endpoint(
    visitor_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Cancel an upcoming approved visit; its OTP stops working."""
    return _read(context, visitor_service.cancel(db, context, visitor_id))


@router.post("/{visitor_id}/check-in", response_model=VisitorRead)
def check_in_endpoint(
    visitor_id: str,
    body: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    Check in an approved visitor, optionally verifying their OTP.

    Raises:
        409 conflict: Visitor is no longer approved (e.g. already checked in)
    """
    otp = body.otp if body else None
    return _read(context, visitor_service.check_in(db, context, visitor_id, otp=otp))


@router.post("/{visitor_id}/check-out", response_model=VisitorRead)
def check_out_endpoint(
    visitor_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Check out a visitor who is inside."""
    return _read(context, visitor_service.check_out(db, context, visitor_id))
