"""Emergency alert endpoints."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gatepass.api.deps import get_db, get_session_context
from gatepass.core.rate_limit import limiter, RATE_LIMITS
from gatepass.schemas import AnnouncementRead, EmergencyAlertRequest, SessionContext
from gatepass.services.alerts import send_emergency_alert

router = APIRouter()


@router.post("/emergency", response_model=AnnouncementRead, status_code=201)
@limiter.limit(RATE_LIMITS["alert"])
def emergency_alert_endpoint(
    request: Request,
    body: EmergencyAlertRequest,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """
    Raise an emergency alert to the society's managers (guard only).

    Visitor records are never touched.
    """
    return send_emergency_alert(db, context, notes=body.notes, location=body.location)
