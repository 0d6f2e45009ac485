"""Pydantic schemas for request/response validation."""
from gatepass.schemas.auth import (
    OtpSendRequest,
    OtpVerifyRequest,
    ProfileRead,
    RoleRead,
    RoleSelectRequest,
    SessionContext,
    TokenResponse,
)
from gatepass.schemas.visitor import (
    CheckInRequest,
    DenyRequest,
    OtpCheckInRequest,
    PreApproveRequest,
    PreApproveResponse,
    QrCheckInRequest,
    VisitorLookupResponse,
    VisitorRead,
    VisitRequestCreate,
    WalkInRequest,
)
from gatepass.schemas.announcement import AnnouncementRead, EmergencyAlertRequest
from gatepass.schemas.notification import MarkedReadResponse, NotificationList, NotificationRead
from gatepass.schemas.errors import ErrorDetail, ErrorResponse

__all__ = [
    "OtpSendRequest",
    "OtpVerifyRequest",
    "ProfileRead",
    "RoleRead",
    "RoleSelectRequest",
    "SessionContext",
    "TokenResponse",
    "CheckInRequest",
    "DenyRequest",
    "OtpCheckInRequest",
    "PreApproveRequest",
    "PreApproveResponse",
    "QrCheckInRequest",
    "VisitorLookupResponse",
    "VisitorRead",
    "VisitRequestCreate",
    "WalkInRequest",
    "AnnouncementRead",
    "EmergencyAlertRequest",
    "MarkedReadResponse",
    "NotificationList",
    "NotificationRead",
    "ErrorResponse",
    "ErrorDetail",
]
