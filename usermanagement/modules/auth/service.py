"""
Authorization Service Facade following Black Box Design principles.

This module provides:
- The request-time authorization check used by the API layer
- A standardized principal for downstream logic
- Distinct failures for "not authenticated" and "insufficient role"
"""

import logging
from typing import Optional

from .errors import Forbidden, TokenError, Unauthenticated
from .interfaces import TokenIssuer
from ..api.models import Principal, Role
from ..storage.credentials import CredentialStore

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an Authorization header value.

    Accepts "Bearer <token>" (scheme is case-insensitive) or a bare token.
    """
    if not authorization:
        return None

    value = authorization.strip()
    scheme, _, rest = value.partition(" ")
    if rest and scheme.lower() == "bearer":
        value = rest.strip()
    elif rest:
        # Some other scheme (Basic, Digest, ...)
        return None

    return value or None


class AuthorizationService:
    """
    Authorization check for inbound requests.

    The role is always re-read from the credential store rather than trusted
    from the token, so a demotion or deletion takes effect on the next request.
    """

    def __init__(self, token_service: TokenIssuer, store: CredentialStore):
        """
        Initialize with injected dependencies.

        Args:
            token_service: Verifies token signature and expiry
            store: Credential store used to re-fetch the principal
        """
        self._tokens = token_service
        self._store = store

    async def authorize(
        self,
        authorization: Optional[str],
        required_role: Optional[Role] = None,
    ) -> Principal:
        """
        Authorize a request.

        Args:
            authorization: Authorization header value (or bare token)
            required_role: Role the caller must hold; None for any authenticated principal

        Returns:
            The verified principal

        Raises:
            Unauthenticated: No token, invalid/expired token, or unknown subject
            Forbidden: Valid principal without the required role
        """
        token = extract_bearer_token(authorization)
        if not token:
            raise Unauthenticated()

        try:
            claims = self._tokens.decode(token)
        except TokenError as e:
            logger.debug(f"Rejected bearer token: {e.code}")
            raise Unauthenticated("Invalid or expired token") from e

        record = await self._store.find_by_identifier(claims["sub"])
        if record is None:
            logger.info("Token subject no longer exists")
            raise Unauthenticated("Invalid or expired token")

        if not record.role.satisfies(required_role):
            logger.info(f"User {record.id} lacks role {required_role.value}")
            raise Forbidden()

        return Principal(user_id=record.id, email=record.email, role=record.role)
