"""
usermanagement shared data models.

These models define the structure of all data passed between
components in the system.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

# bcrypt only considers the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72

NAME_PATTERN = "^[a-zA-Z]+$"

# Enums


class Role(str, Enum):
    """Role of a registered principal."""

    USER = "USER"
    ADMIN = "ADMIN"

    def satisfies(self, required: Optional["Role"]) -> bool:
        """Check whether this role meets a requirement (None means any role)."""
        if required is None or self is Role.ADMIN:
            return True
        return self is required


class AuditAction(str, Enum):
    """Security-relevant actions recorded in the audit trail."""

    USER_REGISTERED = "USER_REGISTERED"
    ADMIN_REGISTERED = "ADMIN_REGISTERED"
    LOGIN_SUCCEEDED = "LOGIN_SUCCEEDED"
    LOGIN_FAILED = "LOGIN_FAILED"
    USER_UPDATED = "USER_UPDATED"
    EMAIL_UPDATED = "EMAIL_UPDATED"
    ROLE_CHANGED = "ROLE_CHANGED"
    USER_DELETED = "USER_DELETED"


CRITICAL_ACTIONS = {AuditAction.USER_DELETED, AuditAction.ROLE_CHANGED}


def normalize_email(email: str) -> str:
    """Canonical form of an identifier: stripped and lower-cased."""
    return email.strip().lower()


def _check_password_length(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
    return v


# Request Models (API Input)


class RegisterRequest(BaseModel):
    """Registration request payload."""

    first_name: str = Field(..., min_length=2, max_length=50, pattern=NAME_PATTERN)
    last_name: str = Field(..., min_length=2, max_length=50, pattern=NAME_PATTERN)
    email: EmailStr = Field(..., max_length=100, description="User email, used as login")
    password: str = Field(..., min_length=6, description="User password (min 6 characters)")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password_length(v)


class LoginRequest(BaseModel):
    """Login request payload."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdateRequest(BaseModel):
    """Profile update payload."""

    first_name: str = Field(..., min_length=2, max_length=50, pattern=NAME_PATTERN)
    last_name: str = Field(..., min_length=2, max_length=50, pattern=NAME_PATTERN)
    email: EmailStr = Field(..., max_length=100)


class RoleChangeRequest(BaseModel):
    """Role change payload (admin only)."""

    role: Role


# Internal Models (Used between modules)


class UserSummary(BaseModel):
    """Non-secret view of a credential record."""

    id: Optional[int] = None
    email: str
    first_name: str = ""
    last_name: str = ""
    role: Role = Role.USER
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CredentialRecord(BaseModel):
    """One registered principal, as persisted by a credential store."""

    id: Optional[int] = None
    email: str = Field(..., min_length=1, max_length=100)
    password_hash: str = Field(..., min_length=1)
    role: Role = Role.USER
    first_name: str = ""
    last_name: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Store identifiers in canonical form so uniqueness is case-insensitive."""
        v = normalize_email(v)
        if not v:
            raise ValueError("email must not be blank")
        return v

    def summary(self) -> UserSummary:
        """Project to the non-secret summary (drops the password hash)."""
        return UserSummary(**self.model_dump(exclude={"password_hash"}))


class Principal(BaseModel):
    """The verified caller of a request."""

    user_id: int
    email: str
    role: Role


class AuthResult(BaseModel):
    """Successful registration or login."""

    token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserSummary


class AuditEvent(BaseModel):
    """One entry of the audit trail."""

    action: AuditAction
    user_id: Optional[int] = None
    details: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_critical(self) -> bool:
        return self.action in CRITICAL_ACTIONS


# Response Models (API Output)


class AuthResponse(BaseModel):
    """Authentication response with JWT token."""

    token: str
    token_type: str = "Bearer"
    expires_in: int
    user_id: Optional[int]
    email: str
    first_name: str
    last_name: str
    role: Role

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            token=result.token,
            token_type=result.token_type,
            expires_in=result.expires_in,
            user_id=result.user.id,
            email=result.user.email,
            first_name=result.user.first_name,
            last_name=result.user.last_name,
            role=result.user.role,
        )


class ErrorResponse(BaseModel):
    """Uniform error payload."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: int
    error: str
    message: str
    path: str
    field_errors: Optional[Dict[str, str]] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status", pattern="^(healthy|unhealthy|degraded)$")
    redis: str = Field(..., description="Redis connection status")
    version: str = Field(default="1.0.0", description="API version")
