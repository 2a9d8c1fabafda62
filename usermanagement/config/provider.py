"""Configuration provider following Black Box Design principles."""
import base64
import binascii
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from ..modules.api.models import MAX_PASSWORD_BYTES

# HS256 keys shorter than the digest size weaken the MAC
MIN_SECRET_BYTES = 32


@dataclass(frozen=True)
class TokenConfig:
    """Signing configuration for session tokens."""
    secret_key: bytes
    lifetime_seconds: int = 86400

    @classmethod
    def from_base64(cls, secret: str, lifetime_seconds: int = 86400) -> "TokenConfig":
        """
        Build a token config from a base64-encoded secret.

        Raises:
            ValueError: If the secret is not valid base64 or is too short
        """
        try:
            key = base64.b64decode(secret, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"JWT_SECRET is not valid base64: {e}") from e
        if len(key) < MIN_SECRET_BYTES:
            raise ValueError(
                f"JWT_SECRET must decode to at least {MIN_SECRET_BYTES} bytes "
                f"(got {len(key)})"
            )
        if lifetime_seconds <= 0:
            raise ValueError("JWT_EXPIRATION_SECONDS must be positive")
        return cls(secret_key=key, lifetime_seconds=lifetime_seconds)


@dataclass
class PasswordConfig:
    """Password hashing configuration."""
    bcrypt_rounds: int = 12


@dataclass
class StorageConfig:
    """Storage and cache configuration."""
    backend: str
    redis_url: Optional[str]
    cache_ttl_seconds: int

    @property
    def redis_enabled(self) -> bool:
        """Check if a Redis connection is configured."""
        return bool(self.redis_url)


@dataclass
class AdminSeedConfig:
    """First administrator created at startup when no account owns the email."""
    email: str
    password: str


@dataclass
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    log_level: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_token_config(self) -> TokenConfig:
        """Get token signing configuration."""
        ...

    def get_password_config(self) -> PasswordConfig:
        """Get password hashing configuration."""
        ...

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...

    def get_admin_seed_config(self) -> Optional[AdminSeedConfig]:
        """Get the bootstrap administrator, if configured."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_token_config(self) -> TokenConfig:
        """Get token configuration from environment variables."""
        # Signing secret is required - no default for security
        secret = os.getenv("JWT_SECRET")
        if not secret:
            raise ValueError(
                "JWT_SECRET environment variable is required. "
                "Generate one with: openssl rand -base64 32"
            )

        return TokenConfig.from_base64(
            secret,
            lifetime_seconds=int(os.getenv("JWT_EXPIRATION_SECONDS", "86400")),
        )

    def get_password_config(self) -> PasswordConfig:
        """Get password hashing configuration from environment variables."""
        return PasswordConfig(bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")))

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration from environment variables."""
        redis_url = os.getenv("REDIS_URL") or None
        backend = os.getenv("STORE_BACKEND", "redis" if redis_url else "memory").lower()
        if backend not in ("memory", "redis"):
            raise ValueError(f"STORE_BACKEND must be 'memory' or 'redis', got {backend!r}")
        if backend == "redis" and not redis_url:
            raise ValueError("STORE_BACKEND=redis requires REDIS_URL")

        return StorageConfig(
            backend=backend,
            redis_url=redis_url,
            cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "600")),
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=int(os.getenv("API_PORT", "8080")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=os.getenv("API_DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def get_admin_seed_config(self) -> Optional[AdminSeedConfig]:
        """Get the bootstrap administrator from environment variables."""
        email = os.getenv("ADMIN_EMAIL")
        password = os.getenv("ADMIN_PASSWORD")
        if not email or not password:
            return None
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"ADMIN_PASSWORD must not exceed {MAX_PASSWORD_BYTES} bytes")
        return AdminSeedConfig(email=email, password=password)
