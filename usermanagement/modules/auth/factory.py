"""
Authentication Factory following Black Box Design principles.

This factory:
- Constructs the authentication stack based on configuration
- Wires dependencies together
- Returns only the public interfaces
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .auth import AuthModule
from .interfaces import Authenticator
from .passwords import PasswordHasher
from .service import AuthorizationService
from .tokens import TokenService
from ..audit import AuditModule
from ..cache import CacheModule
from ..storage.credentials import CredentialStore, InMemoryCredentialStore, RedisCredentialStore
from ..users import UserModule
from ...config.provider import ConfigProvider

logger = logging.getLogger(__name__)


@dataclass
class AuthStack:
    """The wired modules the API layer talks to."""
    auth: Authenticator
    authorization: AuthorizationService
    users: UserModule
    audit: AuditModule
    tokens: TokenService
    store: CredentialStore


class AuthFactory:
    """
    Factory for building the authentication stack.

    This is the composition root that:
    - Creates all auth components
    - Wires them together via dependency injection
    - Returns only the public interfaces
    """

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        redis_client: Optional[Any] = None,
        store: Optional[CredentialStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> AuthStack:
        """
        Build the complete authentication stack.

        Args:
            config_provider: Configuration provider
            redis_client: Optional Redis client for store, cache and audit trail
            store: Explicit credential store (overrides the configured backend)
            clock: Time source for token issuance and expiry

        Returns:
            AuthStack with every public module wired
        """
        token_config = config_provider.get_token_config()
        password_config = config_provider.get_password_config()
        storage_config = config_provider.get_storage_config()

        if store is None:
            if storage_config.backend == "redis" and redis_client is not None:
                logger.info("Using Redis credential store")
                store = RedisCredentialStore(redis_client)
            else:
                logger.info("Using in-memory credential store")
                store = InMemoryCredentialStore()

        if redis_client is None:
            logger.info("No Redis client - caching disabled, audit trail is log-only")

        tokens = TokenService(token_config, clock=clock)
        passwords = PasswordHasher(rounds=password_config.bcrypt_rounds)
        audit = AuditModule(redis_client)
        cache = CacheModule(redis_client, default_ttl=storage_config.cache_ttl_seconds)

        return AuthStack(
            auth=AuthModule(store, tokens, passwords, audit=audit, cache=cache),
            authorization=AuthorizationService(tokens, store),
            users=UserModule(store, cache=cache, audit=audit),
            audit=audit,
            tokens=tokens,
            store=store,
        )
