"""Authentication interfaces following Black Box Design principles."""
from typing import Any, Dict, Optional, Protocol

from ..api.models import AuthResult


class TokenIssuer(Protocol):
    """Protocol for token issuing/verification - allows swappable implementations."""

    @property
    def lifetime_seconds(self) -> int:
        ...

    def issue(self, subject: str, extra_claims: Optional[Dict[str, Any]] = None) -> str:
        """
        Issue a signed token for a subject.

        Raises:
            InvalidSubject: If the subject is empty
        """
        ...

    def extract_subject(self, token: str) -> str:
        """
        Return the subject of a correctly signed token.

        Raises:
            MalformedToken, InvalidSignature
        """
        ...

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Return the claims of a correctly signed, unexpired token.

        Raises:
            MalformedToken, InvalidSignature, TokenExpired
        """
        ...

    def verify(self, token: str, expected_subject: str) -> bool:
        ...


class PasswordHasher(Protocol):
    """Protocol for one-way password hashing."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...


class Authenticator(Protocol):
    """Protocol for the component allowed to mint tokens for real identities."""

    async def register(
        self, email: str, password: str, first_name: str = "", last_name: str = ""
    ) -> AuthResult:
        ...

    async def register_admin(
        self, email: str, password: str, first_name: str = "", last_name: str = ""
    ) -> AuthResult:
        ...

    async def login(self, email: str, password: str) -> AuthResult:
        ...
