"""
Authentication Module - Black Box Interface

Purpose: Issue and verify session tokens, register and log in users,
         authorize requests
Interface: TokenService.issue()/verify()/extract_subject(),
           AuthModule.register()/register_admin()/login(),
           AuthorizationService.authorize()
Hidden: Signing key, token format, password hashing scheme

This module can be completely replaced with any other auth implementation
(OAuth, external identity provider) without affecting other modules.
"""

from .auth import AuthModule
from .errors import (
    AuthError,
    DuplicateIdentifier,
    Forbidden,
    InvalidCredentials,
    InvalidSignature,
    InvalidSubject,
    MalformedToken,
    TokenError,
    TokenExpired,
    Unauthenticated,
    UserNotFound,
    ValidationFailed,
)
from .passwords import PasswordHasher
from .service import AuthorizationService, extract_bearer_token
from .tokens import TokenService

__all__ = [
    "AuthModule",
    "AuthorizationService",
    "PasswordHasher",
    "TokenService",
    "extract_bearer_token",
    "AuthError",
    "DuplicateIdentifier",
    "Forbidden",
    "InvalidCredentials",
    "InvalidSignature",
    "InvalidSubject",
    "MalformedToken",
    "TokenError",
    "TokenExpired",
    "Unauthenticated",
    "UserNotFound",
    "ValidationFailed",
]
