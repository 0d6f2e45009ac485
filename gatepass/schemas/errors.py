"""Error envelope returned by every failed API call."""
from pydantic import BaseModel

from gatepass.core.exceptions import GatepassError


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """``{"success": false, "error": {"code": ..., "message": ...}}``"""

    success: bool = False
    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=code, message=message))

    @classmethod
    def for_error(cls, exc: GatepassError) -> "ErrorResponse":
        return cls.build(exc.code, exc.message)
