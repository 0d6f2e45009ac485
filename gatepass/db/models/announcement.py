"""Announcement model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index

from gatepass.db.base import Base
from gatepass.core.utils import new_id


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String(36), primary_key=True, default=new_id)
    society_id = Column(String(36), ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    target_role = Column(String(20), nullable=True)  # null means everyone
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    __table_args__ = (
        Index("idx_announcements_society", "society_id"),
    )
