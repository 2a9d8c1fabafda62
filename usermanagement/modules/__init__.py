"""
usermanagement Modules - Black Box Architecture

api      shared pydantic models (no logic)
auth     tokens, passwords, register/login, request authorization
storage  credential store protocol and adapters
cache    cache-aside decorators over Redis
users    user CRUD
audit    audit trail

Modules talk to each other only through the names exported from their
__init__.py; auth.factory wires them together.
"""
