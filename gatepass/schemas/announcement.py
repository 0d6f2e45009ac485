"""Announcement schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gatepass.core.constants import MAX_ALERT_NOTES_LENGTH
from gatepass.core.sanitization import sanitize_text


class EmergencyAlertRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=MAX_ALERT_NOTES_LENGTH)
    location: str = Field("Main Gate", max_length=100)

    @field_validator('notes', 'location')
    @classmethod
    def sanitize_text_fields(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return sanitize_text(v, max_length=MAX_ALERT_NOTES_LENGTH)


class AnnouncementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    society_id: str
    title: str
    message: str
    target_role: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
