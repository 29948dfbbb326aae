"""
API request and response models for ExamBank REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format uses camelCase (realName, lastLogin, lastLoginIp); Python code
uses snake_case. populate_by_name lets tests and internal callers build the
models with either spelling.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import UserProfile
from core.schema import USER_ROLES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_MIN_LENGTH = 2
PASSWORD_MIN_LENGTH = 8
REAL_NAME_MIN_LENGTH = 2

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register.

    Length rules are checked in field validators rather than Field(min_length)
    so each failure carries a message written for end users; the 422 handler
    in api/main.py surfaces them per field.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(max_length=255)
    password: str = Field(max_length=128)
    real_name: str = Field(alias="realName", max_length=255)
    role: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        if len(value) < USERNAME_MIN_LENGTH:
            raise ValueError(f"Username must be at least {USERNAME_MIN_LENGTH} characters.")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
        return value

    @field_validator("real_name")
    @classmethod
    def validate_real_name(cls, value: str) -> str:
        if len(value) < REAL_NAME_MIN_LENGTH:
            raise ValueError(f"Real name must be at least {REAL_NAME_MIN_LENGTH} characters.")
        return value

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        if value not in USER_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(USER_ROLES)}.")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /auth/login. No length rules -- any mismatch is a 401."""

    username: str
    password: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    """Client-facing user profile. Never carries the password hash."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    username: str
    role: str
    real_name: str = Field(alias="realName")
    last_login: Optional[str] = Field(default=None, alias="lastLogin")
    last_login_ip: Optional[str] = Field(default=None, alias="lastLoginIp")

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "ProfileResponse":
        """Build the wire model from the cached domain profile."""
        return cls(
            id=profile.id,
            username=profile.username,
            role=profile.role,
            real_name=profile.real_name,
            last_login=profile.last_login,
            last_login_ip=profile.last_login_ip,
        )


class MessageResponse(BaseModel):
    """Success envelope with a human-readable message and no payload."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: ProfileResponse


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: ProfileResponse


class ErrorResponse(BaseModel):
    """Envelope returned on every handled 4xx/5xx.

    errors is only present on validation failures: field name -> message.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    errors: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
