#!/usr/bin/env python3
"""
usermanagement - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as redis
import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from usermanagement import __version__
from usermanagement.config.provider import ConfigProvider, EnvConfigProvider
from usermanagement.logging_config import get_logging_config
from usermanagement.modules.api import (
    AuditEvent,
    AuthResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    Principal,
    RegisterRequest,
    Role,
    RoleChangeRequest,
    UserSummary,
    UserUpdateRequest,
)
from usermanagement.modules.auth import (
    AuthError,
    DuplicateIdentifier,
    Forbidden,
    InvalidCredentials,
    TokenError,
    Unauthenticated,
    UserNotFound,
    ValidationFailed,
)
from usermanagement.modules.auth.factory import AuthFactory, AuthStack
from usermanagement.modules.storage import CredentialStore, StorageModule

logger = logging.getLogger(__name__)

# Status code and error title per error kind
ERROR_STATUS = {
    DuplicateIdentifier: (400, "Validation Error"),
    ValidationFailed: (400, "Validation Error"),
    InvalidCredentials: (401, "Unauthorized"),
    Unauthenticated: (401, "Unauthorized"),
    TokenError: (401, "Unauthorized"),
    Forbidden: (403, "Forbidden"),
    UserNotFound: (404, "Not Found"),
}


async def seed_admin(stack: AuthStack, config_provider: ConfigProvider) -> None:
    """Create the bootstrap administrator if configured and missing."""
    seed = config_provider.get_admin_seed_config()
    if seed is None:
        return
    if await stack.store.exists_by_identifier(seed.email):
        return
    try:
        await stack.auth.register_admin(seed.email, seed.password, "Admin", "Admin")
        logger.info("Bootstrap administrator created")
    except DuplicateIdentifier:
        # Another instance seeded it first
        pass


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    redis_client: Optional[Any] = None,
    store: Optional[CredentialStore] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config_provider: Configuration provider (environment by default)
        redis_client: Redis client to use instead of connecting from REDIS_URL
        store: Credential store overriding the configured backend
        clock: Time source for token issuance and expiry
    """
    config_provider = config_provider or EnvConfigProvider()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - initialize and cleanup resources.
        """
        logger.info("Starting user management API...")

        storage = None
        client = redis_client
        storage_config = config_provider.get_storage_config()
        if client is None and storage_config.redis_enabled:
            storage = StorageModule(storage_config.redis_url)
            client = await storage.connect()

        # Build modules via factory (dependency injection)
        app.state.redis = client
        app.state.stack = AuthFactory.build(
            config_provider, redis_client=client, store=store, clock=clock
        )
        await seed_admin(app.state.stack, config_provider)

        logger.info("User management API started successfully")

        yield

        logger.info("Shutting down user management API...")
        if storage:
            await storage.disconnect()
        logger.info("User management API shutdown complete")

    app = FastAPI(
        title="User Management API",
        description="User registration, login and token-based authorization",
        version=__version__,
        lifespan=lifespan,
    )
    register_error_handlers(app)
    register_routes(app)
    return app


# Dependency injection helpers


def get_stack(request: Request) -> AuthStack:
    """Get the wired modules."""
    stack = getattr(request.app.state, "stack", None)
    if stack is None:
        raise HTTPException(503, "Service not initialized")
    return stack


async def require_auth(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token for authentication"),
) -> Principal:
    """Require any authenticated principal."""
    return await get_stack(request).authorization.authorize(authorization)


def require_role(role: Role):
    """Build a dependency requiring the caller to hold a role."""

    async def dependency(
        request: Request,
        authorization: Optional[str] = Header(None, description="Bearer token for authentication"),
    ) -> Principal:
        return await get_stack(request).authorization.authorize(authorization, required_role=role)

    return dependency


require_admin = require_role(Role.ADMIN)


def register_routes(app: FastAPI) -> None:
    """Attach all endpoints."""

    # Authentication Endpoints

    @app.post("/api/auth/register", response_model=AuthResponse, status_code=201, tags=["auth"])
    async def register(payload: RegisterRequest, stack: AuthStack = Depends(get_stack)):
        """
        Register a new user with USER role and return a token.

        Returns:
            201: Registered
            400: Validation error or email already registered
        """
        result = await stack.auth.register(
            payload.email, payload.password, payload.first_name, payload.last_name
        )
        return AuthResponse.from_result(result)

    @app.post("/api/auth/login", response_model=AuthResponse, tags=["auth"])
    async def login(payload: LoginRequest, stack: AuthStack = Depends(get_stack)):
        """
        Authenticate with email and password.

        Returns:
            200: Token issued
            401: Invalid email or password
        """
        result = await stack.auth.login(payload.email, payload.password)
        return AuthResponse.from_result(result)

    @app.post(
        "/api/auth/register-admin", response_model=AuthResponse, status_code=201, tags=["auth"]
    )
    async def register_admin(
        payload: RegisterRequest,
        principal: Principal = Depends(require_admin),
        stack: AuthStack = Depends(get_stack),
    ):
        """
        Register a new administrator. Requires ADMIN.

        Returns:
            201: Registered
            400: Validation error or email already registered
            401: Not authenticated
            403: Caller is not an administrator
        """
        logger.info(f"Administrator {principal.user_id} registering a new administrator")
        result = await stack.auth.register_admin(
            payload.email, payload.password, payload.first_name, payload.last_name
        )
        return AuthResponse.from_result(result)

    # User Endpoints

    @app.get("/api/users/me", response_model=UserSummary, tags=["users"])
    async def get_current_user(
        principal: Principal = Depends(require_auth), stack: AuthStack = Depends(get_stack)
    ):
        """Get the authenticated user's profile."""
        return await stack.users.get_user(principal.user_id)

    @app.get("/api/users", response_model=List[UserSummary], tags=["users"])
    async def list_users(
        principal: Principal = Depends(require_auth), stack: AuthStack = Depends(get_stack)
    ):
        """List all users."""
        return await stack.users.list_users()

    @app.get("/api/users/email/{email}", response_model=UserSummary, tags=["users"])
    async def get_user_by_email(
        email: str,
        principal: Principal = Depends(require_auth),
        stack: AuthStack = Depends(get_stack),
    ):
        """Get a user by email."""
        return await stack.users.get_user_by_email(email)

    @app.get("/api/users/{user_id}", response_model=UserSummary, tags=["users"])
    async def get_user(
        user_id: int,
        principal: Principal = Depends(require_auth),
        stack: AuthStack = Depends(get_stack),
    ):
        """Get a user by id."""
        return await stack.users.get_user(user_id)

    @app.put("/api/users/{user_id}", response_model=UserSummary, tags=["users"])
    async def update_user(
        user_id: int,
        payload: UserUpdateRequest,
        principal: Principal = Depends(require_auth),
        stack: AuthStack = Depends(get_stack),
    ):
        """
        Update a profile. Users may update themselves; administrators anyone.

        Returns:
            200: Updated
            400: Email already registered
            403: Not the owner and not an administrator
            404: No such user
        """
        if principal.user_id != user_id and principal.role is not Role.ADMIN:
            raise Forbidden("You can only update your own profile")
        return await stack.users.update_user(
            user_id, payload.first_name, payload.last_name, payload.email
        )

    @app.put("/api/users/{user_id}/role", response_model=UserSummary, tags=["users"])
    async def change_role(
        user_id: int,
        payload: RoleChangeRequest,
        principal: Principal = Depends(require_admin),
        stack: AuthStack = Depends(get_stack),
    ):
        """Change a user's role. Requires ADMIN."""
        return await stack.users.change_role(user_id, payload.role)

    @app.delete("/api/users/{user_id}", status_code=204, tags=["users"])
    async def delete_user(
        user_id: int,
        principal: Principal = Depends(require_admin),
        stack: AuthStack = Depends(get_stack),
    ):
        """Delete a user. Requires ADMIN."""
        await stack.users.delete_user(user_id)
        return Response(status_code=204)

    # Audit Endpoints

    @app.get("/api/audit-logs", response_model=List[AuditEvent], tags=["audit"])
    async def get_audit_logs(
        limit: int = Query(100, ge=1, le=1000),
        principal: Principal = Depends(require_admin),
        stack: AuthStack = Depends(get_stack),
    ):
        """Get the most recent audit events. Requires ADMIN."""
        return await stack.audit.get_events(limit=limit)

    @app.get("/api/audit-logs/user/{user_id}", response_model=List[AuditEvent], tags=["audit"])
    async def get_user_audit_logs(
        user_id: int,
        limit: int = Query(100, ge=1, le=1000),
        principal: Principal = Depends(require_admin),
        stack: AuthStack = Depends(get_stack),
    ):
        """Get audit events for one user. Requires ADMIN."""
        return await stack.audit.get_events(user_id=user_id, limit=limit)

    # Health

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            Service health status
        """
        client = getattr(request.app.state, "redis", None)
        if client is None:
            return HealthResponse(status="healthy", redis="disabled", version=__version__)
        try:
            await client.ping()
            return HealthResponse(status="healthy", redis="connected", version=__version__)
        except redis.RedisError as e:
            logger.error(f"Health check failed: {e}")
            return HealthResponse(status="degraded", redis="disconnected", version=__version__)


# Error handlers


def _error_response(
    request: Request,
    status: int,
    error: str,
    message: str,
    field_errors: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status,
        error=error,
        message=message,
        path=request.url.path,
        field_errors=field_errors,
    )
    return JSONResponse(status_code=status, content=body.model_dump(mode="json"), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto uniform HTTP error responses."""

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        """Handle authentication, authorization and domain errors."""
        status, error = next(
            (v for k, v in ERROR_STATUS.items() if isinstance(exc, k)), (400, "Bad Request")
        )
        headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
        return _error_response(
            request,
            status,
            error,
            exc.message,
            field_errors=getattr(exc, "field_errors", None),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Handle request body/parameter validation errors."""
        field_errors = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ())[1:]) or "request"
            field_errors[field] = err.get("msg", "Invalid value")
        return _error_response(
            request,
            400,
            "Validation Failed",
            "One or more fields have validation errors",
            field_errors=field_errors,
        )

    @app.exception_handler(redis.ConnectionError)
    async def redis_error_handler(request: Request, exc: redis.ConnectionError):
        """Handle Redis connection errors."""
        logger.error(f"Redis connection error: {exc}")
        return _error_response(request, 503, "Service Unavailable", "Storage is unavailable")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        """Handle everything else without leaking details."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(
            request, 500, "Internal Server Error", "An unexpected error occurred"
        )


app = create_app()


if __name__ == "__main__":
    api_config = EnvConfigProvider().get_api_config()
    log_config.dictConfig(get_logging_config(api_config.log_level))

    # Use dict config for logging, not file path
    uvicorn.run(
        "usermanagement.main:app",
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        reload=api_config.debug,
        log_config=get_logging_config(api_config.log_level),
    )
