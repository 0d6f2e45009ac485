"""Per-user notification inbox."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from gatepass.core.constants import NOTIFICATION_LIST_LIMIT, VISITOR_WAITING_TITLE
from gatepass.core.exceptions import NotFound
from gatepass.core.logging_config import get_logger
from gatepass.core.utils import to_utc, utcnow
from gatepass.db.models import Notification, Visitor
from gatepass.schemas.auth import SessionContext

logger = get_logger(__name__)


def stage_visitor_waiting(db: Session, visitor: Visitor) -> Optional[Notification]:
    """
    Add a "visitor waiting" notification for the host to the open transaction.

    The caller commits; the notice is written together with the pending
    visitor or not at all.
    """
    if not visitor.host_id:
        return None

    notification = Notification(
        user_id=visitor.host_id,
        society_id=visitor.society_id,
        title=VISITOR_WAITING_TITLE,
        message=f"{visitor.visitor_name} is at the gate for {visitor.purpose or 'a visit'}. "
                "Approve or deny entry.",
        type="visitor",
        visitor_id=visitor.id,
        action_required=True,
        created_at=visitor.created_at,
        updated_at=visitor.created_at,
    )
    db.add(notification)
    return notification


def list_notifications(db: Session, context: SessionContext) -> List[Notification]:
    """The caller's newest notifications, most recent first."""
    return db.query(Notification).filter(
        Notification.user_id == context.profile_id,
    ).order_by(Notification.created_at.desc()).limit(NOTIFICATION_LIST_LIMIT).all()


def count_unread(db: Session, context: SessionContext) -> int:
    return db.query(Notification).filter(
        Notification.user_id == context.profile_id,
        Notification.read.is_(False),
    ).count()


def mark_read(
    db: Session,
    context: SessionContext,
    notification_id: str,
    now: Optional[datetime] = None,
) -> Notification:
    """
    Mark one of the caller's notifications as read.

    Notifications addressed to someone else are reported as missing.

    Raises:
        NotFound: If the caller has no notification with that id
    """
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != context.profile_id:
        raise NotFound("Notification not found")

    if not notification.read:
        notification.read = True
        notification.updated_at = to_utc(now) if now else utcnow()
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, context: SessionContext, now: Optional[datetime] = None) -> int:
    """Mark every unread notification of the caller as read; returns how many changed."""
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == context.profile_id, Notification.read.is_(False))
        .values(read=True, updated_at=to_utc(now) if now else utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    logger.info("notifications_marked_read", user_id=context.profile_id, count=result.rowcount)
    return result.rowcount
