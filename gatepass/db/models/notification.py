"""In-app notification model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Boolean, Column, String, Text, DateTime, ForeignKey, Index

from gatepass.db.base import Base
from gatepass.core.utils import new_id


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    society_id = Column(String(36), ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="visitor")
    visitor_id = Column(String(36), ForeignKey("visitors.id", ondelete="CASCADE"), nullable=True)
    action_required = Column(Boolean, nullable=False, default=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )
