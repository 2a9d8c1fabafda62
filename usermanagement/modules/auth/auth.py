"""
Authentication module for the user management API.

This module coordinates registration and login: it checks credentials
against the credential store and is the only place that mints tokens for
real identities. It's designed as a black box that can be replaced with any
auth system without affecting other modules.
"""

import asyncio
import logging
from typing import Optional

from .errors import DuplicateIdentifier, InvalidCredentials, ValidationFailed
from .interfaces import PasswordHasher, TokenIssuer
from ..api.models import (
    MAX_PASSWORD_BYTES,
    AuditAction,
    AuthResult,
    CredentialRecord,
    Role,
    normalize_email,
)
from ..audit import AuditModule
from ..cache import USERS_LIST, CacheModule, evicts
from ..storage.credentials import CredentialStore, StoreConflict

logger = logging.getLogger(__name__)

# Verified against when the email is unknown so both failure paths cost one bcrypt check
_DUMMY_PASSWORD = "not-a-real-password"


class AuthModule:
    """
    Authentication orchestrator.

    Registers principals (uniqueness check, bcrypt hash, persist, issue token)
    and logs them in (verify password, issue token). Password hashing runs in
    a worker thread so the event loop keeps serving other requests.
    """

    def __init__(
        self,
        store: CredentialStore,
        token_service: TokenIssuer,
        password_hasher: PasswordHasher,
        audit: Optional[AuditModule] = None,
        cache: Optional[CacheModule] = None,
    ):
        """
        Initialize with injected dependencies.

        Args:
            store: Credential store adapter
            token_service: Token issuer holding the signing key
            password_hasher: One-way password hasher
            audit: Optional audit trail
            cache: Cache whose user list goes stale on registration
        """
        self.store = store
        self.tokens = token_service
        self.passwords = password_hasher
        self.audit = audit or AuditModule()
        self.cache = cache or CacheModule()
        self._dummy_hash: Optional[str] = None

    async def register(
        self, email: str, password: str, first_name: str = "", last_name: str = ""
    ) -> AuthResult:
        """
        Register a new USER and return a token for it.

        Raises:
            DuplicateIdentifier: If the email is already registered
            ValidationFailed: If email or password is unusable
        """
        return await self._register(email, password, first_name, last_name, Role.USER)

    async def register_admin(
        self, email: str, password: str, first_name: str = "", last_name: str = ""
    ) -> AuthResult:
        """
        Register a new ADMIN and return a token for it.

        Callers must have checked that the requester already holds ADMIN.

        Raises:
            DuplicateIdentifier: If the email is already registered
            ValidationFailed: If email or password is unusable
        """
        return await self._register(email, password, first_name, last_name, Role.ADMIN)

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Verify credentials and return a fresh token.

        Unknown email and wrong password raise the same error.

        Raises:
            InvalidCredentials: If the credentials do not match a record
        """
        record = await self.store.find_by_identifier(email) if email else None

        if record is None:
            await self._verify_password(password or "", await self._get_dummy_hash())
            await self.audit.log_event(AuditAction.LOGIN_FAILED, details="unknown email")
            raise InvalidCredentials()

        if not await self._verify_password(password or "", record.password_hash):
            await self.audit.log_event(
                AuditAction.LOGIN_FAILED, user_id=record.id, details="wrong password"
            )
            raise InvalidCredentials()

        token = self.tokens.issue(record.email)
        await self.audit.log_event(AuditAction.LOGIN_SUCCEEDED, user_id=record.id)

        return self._build_result(record, token)

    @evicts(USERS_LIST)
    async def _register(
        self, email: str, password: str, first_name: str, last_name: str, role: Role
    ) -> AuthResult:
        email = normalize_email(email or "")
        if not email:
            raise ValidationFailed("email", "Email is required")
        if not password:
            raise ValidationFailed("password", "Password is required")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationFailed(
                "password", f"Password must not exceed {MAX_PASSWORD_BYTES} bytes"
            )

        if await self.store.exists_by_identifier(email):
            raise DuplicateIdentifier(email)

        password_hash = await asyncio.to_thread(self.passwords.hash, password)
        record = CredentialRecord(
            email=email,
            password_hash=password_hash,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )

        try:
            saved = await self.store.save(record)
        except StoreConflict as e:
            # Lost a race with a concurrent registration of the same email
            raise DuplicateIdentifier(email) from e

        token = self.tokens.issue(saved.email)

        action = AuditAction.ADMIN_REGISTERED if role is Role.ADMIN else AuditAction.USER_REGISTERED
        await self.audit.log_event(action, user_id=saved.id, new_value=saved.email)
        logger.info(f"Registered {role.value} user {saved.id}")

        return self._build_result(saved, token)

    async def _verify_password(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.passwords.verify, password, password_hash)

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(self.passwords.hash, _DUMMY_PASSWORD)
        return self._dummy_hash

    def _build_result(self, record: CredentialRecord, token: str) -> AuthResult:
        return AuthResult(
            token=token,
            token_type="Bearer",
            expires_in=self.tokens.lifetime_seconds,
            user=record.summary(),
        )
