"""
Cache Module - Black Box Interface

Purpose: Cache-aside reads and explicit invalidation on writes
Interface: CacheModule, @cached, @evicts
Hidden: Key layout, serialization, TTL handling

Replaceable with any key-value cache; a module built without a client is a no-op.
"""

from .cache import USER_BY_EMAIL, USERS, USERS_LIST, CacheModule, cached, evicts

__all__ = ["CacheModule", "cached", "evicts", "USERS", "USER_BY_EMAIL", "USERS_LIST"]
