"""
Users Module - Black Box Interface

Purpose: User profile CRUD
Interface: get_user(), get_user_by_email(), list_users(), update_user(),
           change_role(), delete_user()
Hidden: Cache keys and invalidation scope, store access

Replaceable with any user directory that honours the same interface.
"""

from .users import UserModule

__all__ = ["UserModule"]
