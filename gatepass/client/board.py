"""Local projection of visitor lists."""
from typing import Dict, Iterable, List, Optional

from gatepass.db.models.visitor import VisitorStatus
from gatepass.schemas.visitor import VisitorRead

# Which local bucket shows a visitor in each status; terminal ones are dropped
BUCKET_FOR_STATUS = {
    VisitorStatus.PENDING: "pending",
    VisitorStatus.APPROVED: "approved",
    VisitorStatus.CHECKED_IN: "inside",
}


class VisitorBoard:
    """
    In-memory buckets backing the role screens.

    Only called after the server confirmed a change, so each projection
    moves a visitor to where the committed status says it belongs.
    """

    BUCKETS = ("pending", "approved", "inside")

    def __init__(self):
        self._buckets: Dict[str, Dict[str, VisitorRead]] = {name: {} for name in self.BUCKETS}

    @property
    def pending(self) -> List[VisitorRead]:
        return list(self._buckets["pending"].values())

    @property
    def approved(self) -> List[VisitorRead]:
        return list(self._buckets["approved"].values())

    @property
    def inside(self) -> List[VisitorRead]:
        return list(self._buckets["inside"].values())

    def bucket_of(self, visitor_id: str) -> Optional[str]:
        for name, bucket in self._buckets.items():
            if visitor_id in bucket:
                return name
        return None

    def replace(self, bucket: str, visitors: Iterable[VisitorRead]) -> None:
        """Swap a whole bucket for a freshly fetched list."""
        self._buckets[bucket] = {v.id: v for v in visitors}

    def _remove(self, visitor_id: str) -> None:
        for bucket in self._buckets.values():
            bucket.pop(visitor_id, None)

    def sync(self, visitor: VisitorRead) -> None:
        """Place a visitor according to its authoritative status."""
        self._remove(visitor.id)
        bucket = BUCKET_FOR_STATUS.get(visitor.status)
        if bucket:
            self._buckets[bucket][visitor.id] = visitor

    def apply_approved(self, visitor: VisitorRead) -> None:
        self._buckets["pending"].pop(visitor.id, None)
        self._buckets["approved"][visitor.id] = visitor.model_copy(update={"status": VisitorStatus.APPROVED})

    def apply_denied(self, visitor: VisitorRead) -> None:
        self._buckets["pending"].pop(visitor.id, None)
        self._buckets["approved"].pop(visitor.id, None)

    def apply_checked_in(self, visitor: VisitorRead) -> None:
        self._buckets["approved"].pop(visitor.id, None)
        self._buckets["inside"][visitor.id] = visitor.model_copy(update={"status": VisitorStatus.CHECKED_IN})

    def apply_checked_out(self, visitor: VisitorRead) -> None:
        self._buckets["inside"].pop(visitor.id, None)

    def apply_created(self, visitor: VisitorRead) -> None:
        self.sync(visitor)
