"""Notification inbox endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gatepass.api.deps import get_db, get_session_context
from gatepass.schemas import MarkedReadResponse, NotificationList, NotificationRead, SessionContext
from gatepass.services import notifications as notification_service

router = APIRouter()


@router.get("", response_model=NotificationList)
def list_notifications_endpoint(
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """The caller's newest notifications with the number still unread."""
    return NotificationList(
        notifications=[
            NotificationRead.model_validate(n) for n in notification_service.list_notifications(db, context)
        ],
        unread_count=notification_service.count_unread(db, context),
    )


@router.post("/read-all", response_model=MarkedReadResponse)
def mark_all_read_endpoint(
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    return MarkedReadResponse(updated=notification_service.mark_all_read(db, context))


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_read_endpoint(
    notification_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    return notification_service.mark_read(db, context, notification_id)
