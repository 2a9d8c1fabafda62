"""
Audit trail for security-relevant actions.

Events are always logged; with Redis they are also kept on capped lists,
one global and one per user. Redis failures never fail the audited action.
"""

import logging
from typing import List, Optional

from redis.exceptions import RedisError

from ..api.models import AuditAction, AuditEvent

logger = logging.getLogger(__name__)

# Keep last 10000 events per list
MAX_EVENTS = 10000


class AuditModule:
    def __init__(self, redis_client=None):
        """
        Initialize audit module.

        Args:
            redis_client: Async Redis client, or None to only log events
        """
        self.redis = redis_client

    async def log_event(
        self,
        action: AuditAction,
        user_id: Optional[int] = None,
        details: Optional[str] = None,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
    ) -> AuditEvent:
        """
        Record a security-relevant action.

        Args:
            action: What happened
            user_id: Affected user, if known
            details: Free-form description (never credentials)
            old_value: Previous value for changes
            new_value: New value for changes

        Returns:
            The recorded event
        """
        event = AuditEvent(
            action=action,
            user_id=user_id,
            details=details,
            old_value=old_value,
            new_value=new_value,
        )

        level = logging.WARNING if event.is_critical else logging.INFO
        logger.log(level, f"Audit: {action.value} user={user_id} {details or ''}".rstrip())

        if self.redis:
            payload = event.model_dump_json()
            try:
                await self.redis.lpush("audit:events", payload)
                await self.redis.ltrim("audit:events", 0, MAX_EVENTS - 1)

                if user_id is not None:
                    user_key = f"audit:user:{user_id}"
                    await self.redis.lpush(user_key, payload)
                    await self.redis.ltrim(user_key, 0, MAX_EVENTS - 1)
            except RedisError as e:
                logger.error(f"Failed to store audit event {action.value} user={user_id}: {e}")

        return event

    async def get_events(self, user_id: Optional[int] = None, limit: int = 100) -> List[AuditEvent]:
        """
        Get recorded events, newest first.

        Args:
            user_id: Only events for this user
            limit: Maximum number of events

        Returns:
            List of audit events
        """
        if not self.redis:
            return []

        key = f"audit:user:{user_id}" if user_id is not None else "audit:events"
        raw_events = await self.redis.lrange(key, 0, limit - 1)

        events = []
        for raw in raw_events:
            try:
                events.append(AuditEvent.model_validate_json(raw))
            except ValueError:
                logger.warning(f"Skipping unreadable audit entry in {key}")
        return events
