"""Notification schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    message: str
    type: str
    visitor_id: Optional[str] = None
    action_required: bool
    read: bool
    created_at: datetime


class NotificationList(BaseModel):
    notifications: List[NotificationRead]
    unread_count: int


class MarkedReadResponse(BaseModel):
    updated: int
