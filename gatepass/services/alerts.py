"""Emergency alerts raised from the gate."""
from typing import Optional

from sqlalchemy.orm import Session

from gatepass.core.logging_config import get_logger
from gatepass.db.models import Announcement, RoleType
from gatepass.schemas.auth import SessionContext

logger = get_logger(__name__)


def send_emergency_alert(
    db: Session,
    context: SessionContext,
    notes: Optional[str] = None,
    location: str = "Main Gate",
) -> Announcement:
    """
    Post an emergency announcement addressed to the society's managers.

    Never touches visitor records. Failures propagate so the guard sees that
    the alert did not go out.
    """
    context.require_role(RoleType.GUARD)

    message = f"Guard has raised an emergency alert at {location}."
    if notes:
        message = f"{message} Notes: {notes}"

    announcement = Announcement(
        society_id=context.society_id,
        title="Emergency Alert",
        message=message,
        target_role=RoleType.MANAGER.value,
        created_by=context.profile_id,
    )
    try:
        db.add(announcement)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("emergency_alert_failed", society_id=context.society_id, exc_info=True)
        raise
    db.refresh(announcement)

    logger.warning("emergency_alert_sent", society_id=context.society_id, guard_id=context.profile_id)
    return announcement
