"""Domain errors raised by the service layer.

Every error subclasses ValueError so callers that only care about "the
request was rejected" can keep catching ValueError, while the API layer and
the client action surface can tell the categories apart by ``code``.
"""
from typing import Optional


class GatepassError(ValueError):
    """Base class for user-facing domain errors."""

    code = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(GatepassError):
    code = "validation_error"
    status_code = 422
    default_message = "Invalid input"


class NotFound(GatepassError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class UnitNotFound(NotFound):
    code = "unit_not_found"
    default_message = "Unit not found"


class VisitorNotFound(NotFound):
    code = "visitor_not_found"
    default_message = "Visitor not found"


class TransitionConflict(GatepassError):
    """The visitor was no longer in the expected state at write time."""

    code = "conflict"
    status_code = 409
    default_message = "Visitor was already processed"

    def __init__(
        self,
        message: Optional[str] = None,
        visitor_id: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ):
        self.visitor_id = visitor_id
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class OtpInvalid(GatepassError):
    code = "otp_invalid"
    status_code = 400
    default_message = "Invalid OTP. Please check and try again."


class OtpExpired(GatepassError):
    code = "otp_expired"
    status_code = 410
    default_message = "OTP has expired. Please ask the resident to generate a new one."


class PermissionDenied(GatepassError):
    code = "forbidden"
    status_code = 403
    default_message = "You do not have permission to perform this action."


class AuthenticationFailed(GatepassError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Your session has expired. Please log in again."


# Lookup used by the client to rebuild typed errors from API error bodies
ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        GatepassError,
        ValidationFailed,
        NotFound,
        UnitNotFound,
        VisitorNotFound,
        TransitionConflict,
        OtpInvalid,
        OtpExpired,
        PermissionDenied,
        AuthenticationFailed,
    )
}
