"""
Session token service implementing the TokenIssuer interface.

This module follows Black Box Design principles:
- Accepts its signing configuration via dependency injection
- Holds the only reference to the signing key
- No direct environment variable access
"""

import base64
import binascii
import logging
import time
from typing import Any, Callable, Dict, Optional

import jwt

from .errors import InvalidSignature, InvalidSubject, MalformedToken, TokenError, TokenExpired
from ...config.provider import TokenConfig

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Registered claims always come from the service, never from extra claims
RESERVED_CLAIMS = ("sub", "iat", "exp")


class TokenService:
    """
    Issues and verifies HS256-signed bearer tokens.

    This class is a black box that:
    - Signs claim sets with the process-wide secret
    - Rejects tampered, non-canonical or foreign-algorithm tokens
    - Checks expiry against an injectable clock
    """

    def __init__(self, config: TokenConfig, clock: Callable[[], float] = time.time):
        """
        Initialize token service with injected config.

        Args:
            config: Token configuration (decoded secret and lifetime)
            clock: Returns the current time in seconds since the epoch
        """
        self._key = config.secret_key
        self._lifetime = config.lifetime_seconds
        self._clock = clock

    @property
    def lifetime_seconds(self) -> int:
        """Configured token lifetime in seconds."""
        return self._lifetime

    def issue(self, subject: str, extra_claims: Optional[Dict[str, Any]] = None) -> str:
        """
        Issue a signed token for a subject.

        Args:
            subject: Identifier the token is issued for
            extra_claims: Additional claims to embed in the payload

        Returns:
            Compact JWT string

        Raises:
            InvalidSubject: If the subject is empty
        """
        if not isinstance(subject, str) or not subject.strip():
            raise InvalidSubject()

        now = int(self._clock())
        claims = {k: v for k, v in (extra_claims or {}).items() if k not in RESERVED_CLAIMS}
        claims.update({"sub": subject, "iat": now, "exp": now + self._lifetime})

        return jwt.encode(claims, self._key, algorithm=ALGORITHM)

    def extract_subject(self, token: str) -> str:
        """
        Return the subject of a correctly signed token. Expiry is not checked.

        Raises:
            MalformedToken: If the token cannot be parsed
            InvalidSignature: If the signature does not match
        """
        return self._verified_claims(token)["sub"]

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Return the claims of a correctly signed, unexpired token.

        Raises:
            MalformedToken: If the token cannot be parsed or lacks iat/exp
            InvalidSignature: If the signature does not match
            TokenExpired: If the current time is at or past the expiry
        """
        claims = self._verified_claims(token)

        exp = claims.get("exp")
        iat = claims.get("iat")
        if not _is_timestamp(exp) or not _is_timestamp(iat):
            raise MalformedToken("Token is missing issued-at or expiry")

        if self._clock() >= exp:
            raise TokenExpired()

        return claims

    def verify(self, token: str, expected_subject: str) -> bool:
        """
        Check that a token is valid, unexpired and issued for a subject.

        Never raises for bad input.

        Returns:
            True if valid, False otherwise
        """
        if not expected_subject:
            return False
        try:
            claims = self.decode(token)
        except TokenError as e:
            logger.debug(f"Token rejected: {e.code}")
            return False
        return claims["sub"] == expected_subject

    def _verified_claims(self, token: str) -> Dict[str, Any]:
        """Check structure and signature, then return the raw claims."""
        _check_segments(token)

        try:
            claims = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                options={
                    "verify_signature": True,
                    # Time-based claims are checked against our own clock
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    # Extra claims are opaque payload
                    "verify_aud": False,
                    "verify_jti": False,
                    "require": ["sub"],
                },
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignature() from e
        except jwt.InvalidAlgorithmError as e:
            raise InvalidSignature(f"Token algorithm not accepted: {e}") from e
        except jwt.InvalidTokenError as e:
            raise MalformedToken() from e

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise MalformedToken("Token subject is empty")

        return claims


def _check_segments(token: str) -> None:
    """
    Require exactly three canonical base64url segments.

    Decoders ignore the unused low bits of the final character, so a
    non-canonical segment could differ from the signed one and still
    decode to the same bytes.
    """
    if not isinstance(token, str) or not token:
        raise MalformedToken()

    segments = token.split(".")
    if len(segments) != 3 or not all(segments):
        raise MalformedToken()

    for segment in segments:
        try:
            raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        except (binascii.Error, ValueError) as e:
            raise MalformedToken() from e
        if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != segment:
            raise MalformedToken()


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
