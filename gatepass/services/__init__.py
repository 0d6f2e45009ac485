from .alerts import send_emergency_alert
from .notifications import list_notifications, mark_all_read, mark_read, stage_visitor_waiting
from .auth import (
    OtpSender,
    confirm_session_role,
    get_current_profile,
    select_role,
    send_login_otp,
    verify_login_otp,
)
from .otp import find_visitor_by_otp, generate_otp, verify_visitor_otp
from .transitions import transition
from .visitors import (
    approve,
    cancel,
    check_in,
    check_in_by_otp,
    check_in_by_qr,
    check_out,
    deny,
    get_visitor,
    get_visitor_pass,
    list_active_visitors,
    list_expected_visitors,
    list_visitors,
    lookup_visitor_by_phone,
    pre_approve_visitor,
    register_walk_in,
    request_visitor,
)
from .utils import generate_qr_code

__all__ = [
    # alerts
    "send_emergency_alert",
    # notifications
    "list_notifications",
    "mark_all_read",
    "mark_read",
    "stage_visitor_waiting",
    # auth
    "OtpSender",
    "confirm_session_role",
    "get_current_profile",
    "select_role",
    "send_login_otp",
    "verify_login_otp",
    # otp
    "find_visitor_by_otp",
    "generate_otp",
    "verify_visitor_otp",
    # transitions
    "transition",
    # visitors
    "approve",
    "cancel",
    "check_in",
    "check_in_by_otp",
    "check_in_by_qr",
    "check_out",
    "deny",
    "get_visitor",
    "get_visitor_pass",
    "list_active_visitors",
    "list_expected_visitors",
    "list_visitors",
    "lookup_visitor_by_phone",
    "pre_approve_visitor",
    "register_walk_in",
    "request_visitor",
    # utils
    "generate_qr_code",
]
