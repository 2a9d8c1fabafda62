"""
Credential store adapters.

The auth module only depends on the CredentialStore protocol. Two adapters
are provided: an in-process store for tests and single-node runs, and a
Redis-backed store whose uniqueness guarantee comes from SET NX on the
email index key.
"""

import asyncio
import itertools
import logging
from datetime import UTC, datetime
from typing import Dict, List, Optional, Protocol

from ..api.models import CredentialRecord, normalize_email

logger = logging.getLogger(__name__)


class StoreConflict(Exception):
    """Another record already owns this identifier."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Identifier already taken: {identifier}")


class CredentialStore(Protocol):
    """Protocol for credential persistence - allows swappable implementations."""

    async def find_by_identifier(self, identifier: str) -> Optional[CredentialRecord]:
        ...

    async def find_by_id(self, user_id: int) -> Optional[CredentialRecord]:
        ...

    async def exists_by_identifier(self, identifier: str) -> bool:
        ...

    async def save(self, record: CredentialRecord) -> CredentialRecord:
        """
        Persist a record.

        Assigns id and created_at on first save and refreshes updated_at.

        Raises:
            StoreConflict: If another record owns the record's email
        """
        ...

    async def delete(self, user_id: int) -> bool:
        ...

    async def list_all(self) -> List[CredentialRecord]:
        ...


class InMemoryCredentialStore:
    """Dict-backed store. Records handed out are copies."""

    def __init__(self):
        self._records: Dict[int, CredentialRecord] = {}
        self._by_email: Dict[str, int] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def find_by_identifier(self, identifier: str) -> Optional[CredentialRecord]:
        user_id = self._by_email.get(normalize_email(identifier))
        if user_id is None:
            return None
        return await self.find_by_id(user_id)

    async def find_by_id(self, user_id: int) -> Optional[CredentialRecord]:
        record = self._records.get(user_id)
        return record.model_copy(deep=True) if record else None

    async def exists_by_identifier(self, identifier: str) -> bool:
        return normalize_email(identifier) in self._by_email

    async def save(self, record: CredentialRecord) -> CredentialRecord:
        async with self._lock:
            now = datetime.now(UTC)
            owner = self._by_email.get(record.email)
            if owner is not None and owner != record.id:
                raise StoreConflict(record.email)

            stored = record.model_copy(deep=True)
            if stored.id is None:
                stored.id = next(self._ids)
                stored.created_at = now
            else:
                previous = self._records.get(stored.id)
                if previous is not None and previous.email != stored.email:
                    del self._by_email[previous.email]
            stored.updated_at = now

            self._records[stored.id] = stored
            self._by_email[stored.email] = stored.id
            return stored.model_copy(deep=True)

    async def delete(self, user_id: int) -> bool:
        async with self._lock:
            record = self._records.pop(user_id, None)
            if record is None:
                return False
            self._by_email.pop(record.email, None)
            return True

    async def list_all(self) -> List[CredentialRecord]:
        return [self._records[i].model_copy(deep=True) for i in sorted(self._records)]


class RedisCredentialStore:
    """
    Redis-backed credential store.

    Keys:
    - user:{id}           record JSON
    - user:email:{email}  id of the record owning the email (claimed with SET NX)
    - user:id:seq         id sequence
    - users:all           set of ids
    """

    def __init__(self, redis_client):
        """
        Initialize store.

        Args:
            redis_client: Async Redis client
        """
        self.redis = redis_client

    async def find_by_identifier(self, identifier: str) -> Optional[CredentialRecord]:
        user_id = await self.redis.get(self._email_key(identifier))
        if user_id is None:
            return None
        return await self.find_by_id(int(user_id))

    async def find_by_id(self, user_id: int) -> Optional[CredentialRecord]:
        data = await self.redis.get(f"user:{user_id}")
        if not data:
            return None
        return CredentialRecord.model_validate_json(data)

    async def exists_by_identifier(self, identifier: str) -> bool:
        return await self.redis.exists(self._email_key(identifier)) > 0

    async def save(self, record: CredentialRecord) -> CredentialRecord:
        now = datetime.now(UTC)
        stored = record.model_copy(deep=True)

        if stored.id is None:
            stored.id = int(await self.redis.incr("user:id:seq"))
            stored.created_at = now
            await self._claim_email(stored.email, stored.id)
        else:
            previous = await self.find_by_id(stored.id)
            if previous is None or previous.email != stored.email:
                await self._claim_email(stored.email, stored.id)
                if previous is not None:
                    await self.redis.delete(self._email_key(previous.email))

        stored.updated_at = now
        await self.redis.set(f"user:{stored.id}", stored.model_dump_json())
        await self.redis.sadd("users:all", stored.id)

        logger.debug(f"Saved user {stored.id}")
        return stored

    async def delete(self, user_id: int) -> bool:
        record = await self.find_by_id(user_id)
        if record is None:
            return False

        await self.redis.delete(f"user:{user_id}", self._email_key(record.email))
        await self.redis.srem("users:all", user_id)
        return True

    async def list_all(self) -> List[CredentialRecord]:
        user_ids = await self.redis.smembers("users:all")

        records = []
        for user_id in sorted(int(i) for i in user_ids):
            record = await self.find_by_id(user_id)
            if record:
                records.append(record)
            else:
                # Clean up stale entry
                await self.redis.srem("users:all", user_id)

        return records

    async def _claim_email(self, email: str, user_id: int) -> None:
        """Take ownership of an email, or raise StoreConflict if it is taken."""
        claimed = await self.redis.set(self._email_key(email), user_id, nx=True)
        if not claimed:
            raise StoreConflict(email)

    @staticmethod
    def _email_key(identifier: str) -> str:
        return f"user:email:{normalize_email(identifier)}"
