"""
usermanagement - User Management Backend

Registration, login and bearer-token authorization over a small user store.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All collaborators are passed in through constructors

Modules:
- auth: Token issuance/verification, password hashing, registration/login,
  request-time authorization
- storage: Credential store adapters (in-memory, Redis)
- users: User CRUD with cache-aside reads
- cache: Explicit cache-aside / eviction decorators
- audit: Audit trail of security-relevant actions
- api: Request/response models
"""

__version__ = "1.0.0"
