"""
Audit Module - Black Box Interface

Purpose: Record security-relevant actions (registrations, logins, changes)
Interface: log_event(), get_events()
Hidden: Storage layout, retention

Replaceable with any audit sink (database table, log shipper).
"""

from .audit import AuditModule

__all__ = ["AuditModule"]
