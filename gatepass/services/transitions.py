"""Guarded visitor status transitions.

Every status change is a single conditional UPDATE:

    UPDATE visitors SET status = :target, ... WHERE id = :id AND status = :source

The row count is the verdict. One row means this caller won; zero rows means
the record is missing or another actor already moved it, and the caller gets
a typed error instead of a silent overwrite. No locks or multi-row
transactions are involved beyond the audit row committed alongside.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from gatepass.core.exceptions import TransitionConflict, VisitorNotFound
from gatepass.core.logging_config import get_logger
from gatepass.core.utils import utcnow
from gatepass.db.models import Visitor, VisitorLog, VisitorStatus
from gatepass.db.models.visitor import is_valid_transition

logger = get_logger(__name__)

# Message shown to the losing caller, keyed by the status it found
CONFLICT_MESSAGES = {
    VisitorStatus.PENDING: "Visitor is still awaiting approval",
    VisitorStatus.APPROVED: "Visitor was already approved",
    VisitorStatus.DENIED: "Visitor was already denied",
    VisitorStatus.CHECKED_IN: "Visitor already checked in",
    VisitorStatus.CHECKED_OUT: "Visitor already checked out",
}


def guarded_update(
    db: Session,
    visitor_id: str,
    source: VisitorStatus,
    patch: Dict[str, Any],
    extra_predicates: tuple = (),
) -> int:
    """
    Issue the conditional UPDATE and return the number of rows affected.

    Does not commit. ``patch`` must include the new ``status``.
    """
    stmt = (
        update(Visitor)
        .where(Visitor.id == visitor_id, Visitor.status == source, *extra_predicates)
        .values(**patch)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    return result.rowcount


def transition(
    db: Session,
    visitor_id: str,
    source: VisitorStatus,
    target: VisitorStatus,
    action: str,
    actor_id: Optional[str] = None,
    fields: Optional[Dict[str, Any]] = None,
    extra_predicates: tuple = (),
    now: Optional[datetime] = None,
) -> Visitor:
    """
    Move a visitor from ``source`` to ``target`` if it is still in ``source``.

    The audit row is written in the same transaction, so either both land or
    neither does.

    Args:
        db: Database session
        visitor_id: Visitor to transition
        source: Status the caller believes the visitor is in
        target: Status to move to
        action: Audit action name (approve, deny, check_in, ...)
        actor_id: Profile performing the action
        fields: Additional columns to set with the status
        extra_predicates: Additional WHERE clauses (e.g. OTP still matches)
        now: Timestamp to record (defaults to current UTC time)

    Returns:
        The freshly loaded visitor row

    Raises:
        ValueError: If ``source -> target`` is not an edge of the state machine
        VisitorNotFound: If no visitor has this id
        TransitionConflict: If the visitor was no longer in ``source``
    """
    if not is_valid_transition(source, target):
        raise ValueError(f"Invalid transition {source.value} -> {target.value}")

    timestamp = now or utcnow()
    patch = dict(fields or {})
    patch["status"] = target
    patch["updated_at"] = timestamp

    try:
        rows = guarded_update(db, visitor_id, source, patch, extra_predicates)
        if rows == 1:
            db.add(VisitorLog(
                visitor_id=visitor_id,
                action=action,
                from_status=source.value,
                to_status=target.value,
                actor_id=actor_id,
                created_at=timestamp,
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    if rows != 1:
        raise _classify_failure(db, visitor_id, source, action)

    visitor = db.get(Visitor, visitor_id, populate_existing=True)
    logger.info(
        "visitor_transitioned",
        visitor_id=visitor_id,
        action=action,
        from_status=source.value,
        to_status=target.value,
        actor_id=actor_id,
    )
    return visitor


def _classify_failure(db: Session, visitor_id: str, source: VisitorStatus, action: str) -> Exception:
    """Re-read the authoritative row to explain why zero rows matched."""
    visitor = db.get(Visitor, visitor_id, populate_existing=True)
    if visitor is None:
        return VisitorNotFound()

    actual = VisitorStatus(visitor.status)
    logger.warning(
        "transition_conflict",
        visitor_id=visitor_id,
        action=action,
        expected_status=source.value,
        actual_status=actual.value,
    )
    message = CONFLICT_MESSAGES.get(actual) if actual != source else None
    return TransitionConflict(
        message,
        visitor_id=visitor_id,
        expected=source.value,
        actual=actual.value,
    )


def record_creation(db: Session, visitor: Visitor, action: str, actor_id: Optional[str]) -> None:
    """Stage the audit row for a visitor created directly in an initial state."""
    db.add(VisitorLog(
        visitor_id=visitor.id,
        action=action,
        from_status=None,
        to_status=VisitorStatus(visitor.status).value,
        actor_id=actor_id,
        created_at=visitor.created_at,
    ))
