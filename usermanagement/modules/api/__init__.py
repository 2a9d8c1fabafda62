"""
API Module - Black Box Interface

Purpose: Shared request, response and internal data models
Interface: pydantic models
Hidden: Validation rules

The API layer only orchestrates - it contains no business logic.
All logic is delegated to appropriate modules.
"""

from .models import (
    AuditAction,
    AuditEvent,
    AuthResponse,
    AuthResult,
    CredentialRecord,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    Principal,
    RegisterRequest,
    Role,
    RoleChangeRequest,
    UserSummary,
    UserUpdateRequest,
)

__all__ = [
    "AuditAction",
    "AuditEvent",
    "AuthResponse",
    "AuthResult",
    "CredentialRecord",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "Principal",
    "RegisterRequest",
    "Role",
    "RoleChangeRequest",
    "UserSummary",
    "UserUpdateRequest",
]
