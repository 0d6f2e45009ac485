"""Database models."""
from gatepass.db.models.society import Society, Unit
from gatepass.db.models.profile import Profile, RoleType, UserRole
from gatepass.db.models.visitor import Visitor, VisitorLog, VisitorStatus, VisitorType
from gatepass.db.models.auth_otp import AuthOtp
from gatepass.db.models.announcement import Announcement
from gatepass.db.models.notification import Notification

__all__ = [
    "Society",
    "Unit",
    "Profile",
    "RoleType",
    "UserRole",
    "Visitor",
    "VisitorLog",
    "VisitorStatus",
    "VisitorType",
    "AuthOtp",
    "Announcement",
    "Notification",
]
