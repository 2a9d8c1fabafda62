"""
Authentication error taxonomy.

Token errors are internal: the token service raises them, and verify() and
the authorization check turn them into a boolean or Unauthenticated.
Every error carries a message that is safe to show to the caller.
"""

from typing import Dict, Optional


class AuthError(Exception):
    """Base class for all authentication and authorization errors."""

    code = "auth_error"
    default_message = "Authentication error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class TokenError(AuthError):
    """A token could not be issued or did not verify."""

    code = "invalid_token"
    default_message = "Invalid token"


class InvalidSubject(TokenError):
    code = "invalid_subject"
    default_message = "Token subject must not be empty"


class MalformedToken(TokenError):
    code = "malformed_token"
    default_message = "Token could not be parsed"


class InvalidSignature(TokenError):
    code = "invalid_signature"
    default_message = "Token signature is invalid"


class TokenExpired(TokenError):
    code = "token_expired"
    default_message = "Token has expired"


class DuplicateIdentifier(AuthError):
    """Registration attempted with an identifier that already exists."""

    code = "duplicate_identifier"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Email already registered: {identifier}")

    @property
    def field_errors(self) -> Dict[str, str]:
        return {"email": "Email already registered"}


class InvalidCredentials(AuthError):
    """Login failed. Deliberately does not say why."""

    code = "invalid_credentials"
    default_message = "Invalid email or password"


class Unauthenticated(AuthError):
    code = "unauthenticated"
    default_message = "Authentication required"


class Forbidden(AuthError):
    code = "forbidden"
    default_message = "Insufficient role for this operation"


class ValidationFailed(AuthError):
    """Business validation error on a single field."""

    code = "validation_failed"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)

    @property
    def field_errors(self) -> Dict[str, str]:
        return {self.field: self.message}


class UserNotFound(AuthError):
    code = "user_not_found"

    def __init__(self, value, field: str = "id"):
        self.value = value
        super().__init__(f"User not found with {field}: {value}")
