"""Visitor schemas."""
from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gatepass.core.constants import MAX_REJECTION_REASON_LENGTH
from gatepass.core.sanitization import (
    mask_phone,
    sanitize_phone,
    sanitize_purpose,
    sanitize_text,
    sanitize_unit_number,
    sanitize_visitor_name,
    validate_otp_format,
)
from gatepass.db.models.visitor import VisitorStatus, VisitorType


class VisitorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    society_id: str
    unit_id: str
    unit_number: Optional[str] = None
    host_id: Optional[str] = None
    visitor_name: str
    visitor_phone: Optional[str] = None
    visitor_type: VisitorType
    purpose: Optional[str] = None
    expected_date: Optional[date] = None
    expected_time: Optional[time] = None
    status: VisitorStatus
    rejection_reason: Optional[str] = None
    created_at: datetime
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    checked_out_at: Optional[datetime] = None
    checked_out_by: Optional[str] = None

    @classmethod
    def from_visitor(cls, visitor, masked: bool = False) -> "VisitorRead":
        """Build from an ORM row; ``masked`` hides the phone from non-owning roles."""
        read = cls.model_validate(visitor)
        read.unit_number = visitor.unit.unit_number if visitor.unit is not None else None
        if masked:
            read.visitor_phone = mask_phone(read.visitor_phone)
        return read


class _VisitorDetails(BaseModel):
    visitor_name: str = Field(..., min_length=1, max_length=100)
    visitor_phone: Optional[str] = Field(None, max_length=20)
    purpose: Optional[str] = Field(None, max_length=200)

    @field_validator('visitor_name')
    @classmethod
    def sanitize_name_field(cls, v: str) -> str:
        return sanitize_visitor_name(v)

    @field_validator('visitor_phone')
    @classmethod
    def sanitize_phone_field(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return sanitize_phone(v)

    @field_validator('purpose')
    @classmethod
    def sanitize_purpose_field(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_purpose(v)


class PreApproveRequest(_VisitorDetails):
    visitor_type: VisitorType = VisitorType.GUEST
    expected_date: Optional[date] = None  # defaults to today in the society's timezone
    expected_time: Optional[time] = None

    @field_validator('visitor_type')
    @classmethod
    def reject_walk_in(cls, v: VisitorType) -> VisitorType:
        if v == VisitorType.WALK_IN:
            raise ValueError("Walk-in visitors are registered at the gate")
        return v


class PreApproveResponse(BaseModel):
    visitor: VisitorRead
    otp: str
    otp_expires_at: datetime
    qr_payload: str


class VisitRequestCreate(_VisitorDetails):
    """A visit that waits for the host resident's approval."""

    unit_number: Optional[str] = Field(None, max_length=20)  # guards name the unit; residents default to their own
    visitor_type: VisitorType = VisitorType.WALK_IN

    @field_validator('unit_number')
    @classmethod
    def sanitize_unit_field(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return sanitize_unit_number(v)


class WalkInRequest(_VisitorDetails):
    unit_number: str = Field(..., min_length=1, max_length=20)
    visitor_type: VisitorType = VisitorType.WALK_IN

    @field_validator('unit_number')
    @classmethod
    def sanitize_unit_field(cls, v: str) -> str:
        return sanitize_unit_number(v)


class DenyRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=MAX_REJECTION_REASON_LENGTH)

    @field_validator('reason')
    @classmethod
    def sanitize_reason_field(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return sanitize_text(v, max_length=MAX_REJECTION_REASON_LENGTH) or None


class CheckInRequest(BaseModel):
    otp: Optional[str] = Field(None, max_length=10)

    @field_validator('otp')
    @classmethod
    def validate_otp_field(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_otp_format(v)


class OtpCheckInRequest(BaseModel):
    otp: str = Field(..., min_length=1, max_length=10)

    @field_validator('otp')
    @classmethod
    def validate_otp_field(cls, v: str) -> str:
        return validate_otp_format(v)


class QrCheckInRequest(BaseModel):
    payload: str = Field(..., min_length=1, max_length=500)


class VisitorLookupResponse(BaseModel):
    name: Optional[str] = None
    is_checked_in_today: bool = False
    last_visit: Optional[datetime] = None
