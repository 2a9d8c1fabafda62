"""User management operations over the credential store."""

import logging
from typing import List, Optional

from ..api.models import AuditAction, Role, UserSummary, normalize_email
from ..audit import AuditModule
from ..auth.errors import DuplicateIdentifier, UserNotFound
from ..cache import USER_BY_EMAIL, USERS, USERS_LIST, CacheModule, cached, evicts
from ..storage.credentials import CredentialStore, StoreConflict

logger = logging.getLogger(__name__)


class UserModule:
    """
    User CRUD over the credential store.

    Reads are cache-aside; every mutation evicts the entry it touched plus
    the list and by-email namespaces. Only summaries are cached, never
    password hashes.
    """

    def __init__(
        self,
        store: CredentialStore,
        cache: Optional[CacheModule] = None,
        audit: Optional[AuditModule] = None,
    ):
        """
        Initialize user module.

        Args:
            store: Credential store adapter
            cache: Cache for reads (disabled if None)
            audit: Audit trail (log-only if None)
        """
        self.store = store
        self.cache = cache or CacheModule()
        self.audit = audit or AuditModule()

    @cached(USERS, key=lambda user_id: user_id, model=UserSummary)
    async def get_user(self, user_id: int) -> UserSummary:
        """
        Get a user by id.

        Raises:
            UserNotFound: If no such user exists
        """
        record = await self.store.find_by_id(user_id)
        if record is None:
            raise UserNotFound(user_id)
        return record.summary()

    @cached(USER_BY_EMAIL, key=lambda email: normalize_email(email), model=UserSummary)
    async def get_user_by_email(self, email: str) -> UserSummary:
        """
        Get a user by email.

        Raises:
            UserNotFound: If no such user exists
        """
        record = await self.store.find_by_identifier(email)
        if record is None:
            raise UserNotFound(email, field="email")
        return record.summary()

    @cached(USERS_LIST, key=lambda: "all", model=List[UserSummary])
    async def list_users(self) -> List[UserSummary]:
        """Get all users ordered by id."""
        return [record.summary() for record in await self.store.list_all()]

    @evicts(USERS, key=lambda user_id, *args, **kwargs: user_id)
    @evicts(USERS_LIST)
    @evicts(USER_BY_EMAIL)
    async def update_user(
        self, user_id: int, first_name: str, last_name: str, email: str
    ) -> UserSummary:
        """
        Update profile fields.

        Raises:
            UserNotFound: If no such user exists
            DuplicateIdentifier: If the new email belongs to another user
        """
        record = await self.store.find_by_id(user_id)
        if record is None:
            raise UserNotFound(user_id)

        old_email = record.email
        new_email = normalize_email(email)
        if new_email != old_email and await self.store.exists_by_identifier(new_email):
            raise DuplicateIdentifier(new_email)

        record.first_name = first_name
        record.last_name = last_name
        record.email = new_email

        try:
            saved = await self.store.save(record)
        except StoreConflict as e:
            raise DuplicateIdentifier(new_email) from e

        await self.audit.log_event(AuditAction.USER_UPDATED, user_id=user_id)
        if new_email != old_email:
            await self.audit.log_event(
                AuditAction.EMAIL_UPDATED,
                user_id=user_id,
                details="User email changed",
                old_value=old_email,
                new_value=new_email,
            )

        logger.info(f"User {user_id} updated")
        return saved.summary()

    @evicts(USERS, key=lambda user_id, *args, **kwargs: user_id)
    @evicts(USERS_LIST)
    @evicts(USER_BY_EMAIL)
    async def change_role(self, user_id: int, role: Role) -> UserSummary:
        """
        Change a user's role.

        Raises:
            UserNotFound: If no such user exists
        """
        record = await self.store.find_by_id(user_id)
        if record is None:
            raise UserNotFound(user_id)

        old_role = record.role
        if old_role is role:
            return record.summary()

        record.role = role
        saved = await self.store.save(record)

        await self.audit.log_event(
            AuditAction.ROLE_CHANGED,
            user_id=user_id,
            old_value=old_role.value,
            new_value=role.value,
        )
        return saved.summary()

    @evicts(USERS, key=lambda user_id: user_id)
    @evicts(USERS_LIST)
    @evicts(USER_BY_EMAIL)
    async def delete_user(self, user_id: int) -> None:
        """
        Delete a user.

        Raises:
            UserNotFound: If no such user exists
        """
        if not await self.store.delete(user_id):
            raise UserNotFound(user_id)

        await self.audit.log_event(AuditAction.USER_DELETED, user_id=user_id)
        logger.info(f"User {user_id} deleted")
