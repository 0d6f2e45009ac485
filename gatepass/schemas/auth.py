"""Authentication and session schemas."""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gatepass.core.exceptions import PermissionDenied
from gatepass.core.sanitization import normalize_login_phone, validate_otp_format
from gatepass.db.models.profile import RoleType


class OtpSendRequest(BaseModel):
    phone: str = Field(..., min_length=1, max_length=20)

    @field_validator('phone')
    @classmethod
    def normalize_phone_field(cls, v: str) -> str:
        """Normalize phone to +91XXXXXXXXXX."""
        return normalize_login_phone(v)


class OtpVerifyRequest(OtpSendRequest):
    otp: str = Field(..., min_length=1, max_length=10)

    @field_validator('otp')
    @classmethod
    def validate_otp_field(cls, v: str) -> str:
        return validate_otp_format(v)


class RoleSelectRequest(BaseModel):
    role_id: str = Field(..., min_length=1, max_length=36)


class RoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: RoleType
    society_id: str
    unit_id: Optional[str] = None


class ProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    phone: str
    full_name: Optional[str] = None


class SessionContext(BaseModel):
    """
    Who is acting, and in which role.

    Built from the bearer token on the server and held by the client's
    SessionStore; every service call that depends on the actor receives one
    explicitly.
    """

    profile_id: str
    role_id: Optional[str] = None
    role: Optional[RoleType] = None
    society_id: Optional[str] = None
    unit_id: Optional[str] = None

    def require_role(self, *roles: RoleType) -> None:
        """Raise PermissionDenied unless the current role is one of ``roles``."""
        if self.role is None or self.society_id is None:
            raise PermissionDenied("Please select a role first")
        if self.role not in roles:
            raise PermissionDenied()

    def to_claims(self) -> dict:
        """Token claims for this context."""
        return {
            "sub": self.profile_id,
            "role_id": self.role_id,
            "role": self.role.value if self.role else None,
            "society_id": self.society_id,
            "unit_id": self.unit_id,
        }

    @classmethod
    def from_claims(cls, claims: dict) -> "SessionContext":
        return cls(
            profile_id=claims["sub"],
            role_id=claims.get("role_id"),
            role=claims.get("role"),
            society_id=claims.get("society_id"),
            unit_id=claims.get("unit_id"),
        )


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    profile: ProfileRead
    roles: List[RoleRead]
    current_role: Optional[RoleRead] = None
