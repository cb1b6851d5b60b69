"""
Shared Route Dependencies
=========================

Authentication, tenant context, role checks and rate limiting, wired into
routes with FastAPI's Depends().

Request pipeline for a tenant route:

    get_current_user  → bearer JWT verified (HS256, issuer + audience)
    get_tenant_id     → X-Tenant-ID header, bound to the token's tenant
    RateLimit(...)    → token bucket keyed by tenant, user and path
    require_*         → role / permission checks

FastAPI caches each dependency per request, so the token is decoded once
even when several dependencies ask for the principal.

Usage:
------
    orders_limit = RateLimit(max_requests=30, window_ms=60_000)

    @router.get("", dependencies=[Depends(orders_limit)])
    async def list_orders(
        user: Principal = Depends(get_current_user),
        tenant_id: str = Depends(get_tenant_id),
    ): ...
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.core.config import get_settings
from restohub.database import get_db
from restohub.errors import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError
from restohub.models import Tenant, TenantStatus
from restohub.services.rate_limit import BaseRateLimitStore, build_key, get_rate_limit_store
from restohub.services.tenant_config import TenantConfigCache, get_tenant_config_cache

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({"admin", "OWNER", "STAFF", "SUPER_ADMIN", "PLATFORM_ADMIN"})
PLATFORM_ROLES = frozenset({"SUPER_ADMIN", "PLATFORM_ADMIN"})
DELIVERY_AGENT = "DELIVERY_AGENT"
ORDER_STATUS_UPDATE = "order.status.update"
WILDCARD_PERMISSION = "*"

_bearer = HTTPBearer(auto_error=False)


# =============================================================================
# AUTHENTICATION
# =============================================================================

@dataclass
class Principal:
    """The verified caller, built from JWT claims."""
    sub: str
    typ: Optional[str] = None
    tenant_id: Optional[str] = None
    roles: list[str] = field(default_factory=list)
    perms: list[str] = field(default_factory=list)

    @property
    def user_id(self) -> str:
        return self.sub

    @property
    def is_admin(self) -> bool:
        return any(role in ADMIN_ROLES for role in self.roles)

    @property
    def is_platform_admin(self) -> bool:
        return any(role in PLATFORM_ROLES for role in self.roles)

    @property
    def is_delivery_agent(self) -> bool:
        return DELIVERY_AGENT in self.roles

    def has_permission(self, perm: str) -> bool:
        return WILDCARD_PERMISSION in self.perms or perm in self.perms

    @property
    def can_update_status(self) -> bool:
        return self.is_admin or self.is_delivery_agent or self.has_permission(ORDER_STATUS_UPDATE)

    @property
    def sees_all_orders(self) -> bool:
        """Staff and delivery agents see every order of the tenant."""
        return self.is_admin or self.is_delivery_agent


def _as_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def decode_token(token: str) -> Principal:
    """
    Verify a bearer token and map its claims.

    Raises:
        UnauthorizedError: bad signature, expired, wrong issuer/audience, or no subject
    """
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.debug(f"Token rejected: {e}")
        raise UnauthorizedError("Invalid token")

    sub = claims.get("sub")
    if not sub:
        raise UnauthorizedError("Invalid token")

    roles = _as_list(claims.get("roles"))
    if not roles and claims.get("role"):
        roles = [str(claims["role"])]

    return Principal(
        sub=str(sub),
        typ=claims.get("typ"),
        tenant_id=claims.get("tenant_id"),
        roles=roles,
        perms=_as_list(claims.get("perms")),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Missing bearer token")
    return decode_token(credentials.credentials)


# =============================================================================
# TENANT CONTEXT
# =============================================================================

async def get_tenant_id(
    request: Request,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> str:
    """
    Resolve the tenant for this request from X-Tenant-ID.

    A token bound to one tenant cannot act on another unless it holds the
    wildcard permission. Unknown or suspended tenants are 404.
    """
    tenant_id = (request.headers.get("x-tenant-id") or "").strip()
    if not tenant_id:
        raise BadRequestError("Missing X-Tenant-ID header")

    if user.tenant_id != tenant_id and not user.has_permission(WILDCARD_PERMISSION):
        logger.warning(f"User {user.sub} (tenant {user.tenant_id}) denied access to tenant {tenant_id}")
        raise ForbiddenError()

    tenant = await db.get(Tenant, tenant_id)
    if tenant is None or tenant.status != TenantStatus.ACTIVE.value:
        raise NotFoundError("Tenant not found")

    return tenant_id


# =============================================================================
# ROLE CHECKS
# =============================================================================

async def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_admin:
        raise ForbiddenError()
    return user


async def require_platform_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_platform_admin:
        raise ForbiddenError()
    return user


def require_permission(perm: str):
    """Dependency factory: caller must hold `perm` (or the wildcard)."""

    async def _check(user: Principal = Depends(get_current_user)) -> Principal:
        if not user.has_permission(perm):
            raise ForbiddenError()
        return user

    return _check


# =============================================================================
# RATE LIMITING
# =============================================================================

class RateLimit:
    """
    Token-bucket limiter as a route dependency.

    Args:
        max_requests: Bucket capacity; None reads the tenant's
            limits.intentsPerMin from the config cache
        window_ms: Window length in milliseconds

    The X-RateLimit-* headers are set on every call. A rejected call raises
    429 carrying the same headers.
    """

    def __init__(self, max_requests: Optional[int] = None, window_ms: int = 60_000):
        self.max_requests = max_requests
        self.window_ms = window_ms

    async def __call__(
        self,
        request: Request,
        response: Response,
        user: Principal = Depends(get_current_user),
        tenant_id: str = Depends(get_tenant_id),
        db: AsyncSession = Depends(get_db),
        store: BaseRateLimitStore = Depends(get_rate_limit_store),
        config_cache: TenantConfigCache = Depends(get_tenant_config_cache),
    ) -> None:
        max_requests = self.max_requests
        if max_requests is None:
            config = await config_cache.get_config(db, tenant_id)
            max_requests = config.limits.intents_per_min

        key = build_key(tenant_id, user.sub, request.url.path)
        result = await store.check_limit(key, self.window_ms, max_requests)

        headers = result.headers()
        response.headers.update(headers)
        # Error handlers build a fresh response; they copy these back on.
        request.state.rate_limit_headers = headers

        if not result.allowed:
            logger.info(f"Rate limit hit: {key} ({result.limit}/{self.window_ms}ms)")
            raise HTTPException(status_code=429, detail="Too Many Requests", headers=headers)
