"""
Shared pytest fixtures for user management tests.

This module provides common fixtures including:
- Redis mocks, plain and with in-memory data storage
- A static configuration provider
- FastAPI test client utilities
"""

import os
import sys
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from usermanagement.config.provider import (
    AdminSeedConfig,
    APIConfig,
    PasswordConfig,
    StorageConfig,
    TokenConfig,
)
from usermanagement.main import create_app

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-secret"


# =============================================================================
# Configuration
# =============================================================================

class StaticConfigProvider:
    """In-code configuration for tests."""

    def __init__(
        self,
        backend: str = "memory",
        admin_seed: Optional[AdminSeedConfig] = None,
        lifetime_seconds: int = 3600,
    ):
        self.backend = backend
        self.admin_seed = admin_seed
        self.lifetime_seconds = lifetime_seconds

    def get_token_config(self) -> TokenConfig:
        return TokenConfig(secret_key=b"t" * 32, lifetime_seconds=self.lifetime_seconds)

    def get_password_config(self) -> PasswordConfig:
        # Lowest bcrypt cost keeps the suite fast
        return PasswordConfig(bcrypt_rounds=4)

    def get_storage_config(self) -> StorageConfig:
        return StorageConfig(backend=self.backend, redis_url=None, cache_ttl_seconds=600)

    def get_api_config(self) -> APIConfig:
        return APIConfig(port=8080, host="127.0.0.1", debug=False, log_level="DEBUG")

    def get_admin_seed_config(self) -> Optional[AdminSeedConfig]:
        return self.admin_seed


@pytest.fixture
def config_provider():
    return StaticConfigProvider(
        admin_seed=AdminSeedConfig(email=ADMIN_EMAIL, password=ADMIN_PASSWORD)
    )


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis():
    """Create a mock Redis client for async operations."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.setex = AsyncMock()
    redis.delete = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)
    redis.sadd = AsyncMock()
    redis.srem = AsyncMock()
    redis.smembers = AsyncMock(return_value=set())
    redis.lpush = AsyncMock()
    redis.ltrim = AsyncMock()
    redis.lrange = AsyncMock(return_value=[])
    redis.ping = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    This allows testing code that reads back what it writes. Values are
    stored as strings, like a client created with decode_responses=True.
    """
    storage = {}

    redis = AsyncMock()

    async def mock_get(key):
        value = storage.get(key)
        return value if isinstance(value, str) else None

    async def mock_set(key, value, nx=False, ex=None, **kwargs):
        if nx and key in storage:
            return None
        storage[key] = str(value)
        return True

    async def mock_setex(key, ttl, value):
        storage[key] = str(value)
        return True

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                count += 1
        return count

    async def mock_exists(*keys):
        return sum(1 for k in keys if k in storage)

    async def mock_incr(key):
        value = int(storage.get(key, 0)) + 1
        storage[key] = str(value)
        return value

    async def mock_sadd(key, *members):
        members_set = storage.setdefault(key, set())
        before = len(members_set)
        members_set.update(str(m) for m in members)
        return len(members_set) - before

    async def mock_srem(key, *members):
        members_set = storage.get(key, set())
        removed = sum(1 for m in members if str(m) in members_set)
        members_set.difference_update(str(m) for m in members)
        if not members_set:
            storage.pop(key, None)
        return removed

    async def mock_smembers(key):
        return set(storage.get(key, set()))

    async def mock_lpush(key, *values):
        items = storage.setdefault(key, [])
        for value in values:
            items.insert(0, str(value))
        return len(items)

    async def mock_ltrim(key, start, end):
        if key in storage:
            storage[key] = storage[key][start:end + 1]
        return True

    async def mock_lrange(key, start, end):
        items = storage.get(key, [])
        return list(items[start:end + 1] if end >= 0 else items[start:])

    redis.get = mock_get
    redis.set = mock_set
    redis.setex = mock_setex
    redis.delete = mock_delete
    redis.exists = mock_exists
    redis.incr = mock_incr
    redis.sadd = mock_sadd
    redis.srem = mock_srem
    redis.smembers = mock_smembers
    redis.lpush = mock_lpush
    redis.ltrim = mock_ltrim
    redis.lrange = mock_lrange
    redis.ping = AsyncMock(return_value=True)
    redis._storage = storage  # Expose for test assertions

    return redis


# =============================================================================
# FastAPI Test Client
# =============================================================================

@pytest.fixture
def client(config_provider, mock_redis_with_data):
    """Test client backed by the Redis mock, with a seeded administrator."""
    app = create_app(config_provider, redis_client=mock_redis_with_data)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    """Authorization headers for the seeded administrator."""
    response = client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def register_user(client):
    """Register a user through the API and return the response."""

    def _register(email="john@example.com", password="secret1", first_name="John", last_name="Doe"):
        payload = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "password": password,
        }
        return client.post("/api/auth/register", json=payload)

    return _register


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring infrastructure"
    )
