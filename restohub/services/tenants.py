"""
Tenant Service

Tenant lookup for the public endpoints and lifecycle for platform admins.
Tenants are never hard-deleted; suspension hides them from public reads.
"""

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.errors import BadRequestError, ConflictError, NotFoundError
from restohub.models import Tenant, TenantStatus

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "CA$",
    "AUD": "A$",
    "CHF": "CHF",
    "CNY": "¥",
    "INR": "₹",
}


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get(code, code)


async def find_public_tenant(
    db: AsyncSession,
    tenant_id: Optional[str] = None,
    domain: Optional[str] = None,
    identifier: Optional[str] = None,
) -> Tenant:
    """
    Resolve an active tenant by domain, id, or identifier.

    `identifier` matches the tenant id exactly or any case-insensitive
    fragment of the name. Domain wins when several are given.

    Raises:
        NotFoundError: no match, or the tenant is suspended
    """
    query = select(Tenant)
    if domain:
        query = query.where(Tenant.domain == domain)
    elif tenant_id:
        query = query.where(Tenant.tenant_id == tenant_id)
    elif identifier:
        query = query.where(or_(
            Tenant.tenant_id == identifier,
            func.lower(Tenant.name).contains(identifier.lower(), autoescape=True),
        ))
    else:
        raise BadRequestError("Domain or identifier required")

    result = await db.execute(query.order_by(Tenant.created_at).limit(1))
    tenant = result.scalar_one_or_none()
    if tenant is None or tenant.status != TenantStatus.ACTIVE.value:
        raise NotFoundError("Tenant not found")
    return tenant


async def list_tenants(db: AsyncSession, status: Optional[TenantStatus] = None) -> list[Tenant]:
    query = select(Tenant).order_by(Tenant.created_at.desc())
    if status is not None:
        query = query.where(Tenant.status == status.value)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_tenant(db: AsyncSession, name: str, domain: Optional[str], currency_code: str) -> Tenant:
    if domain:
        existing = await db.execute(select(Tenant.tenant_id).where(Tenant.domain == domain))
        if existing.first() is not None:
            raise ConflictError("Domain already in use")

    tenant = Tenant(name=name, domain=domain, currency_code=currency_code, status=TenantStatus.ACTIVE.value)
    db.add(tenant)
    await db.commit()
    logger.info(f"Tenant created: {tenant.tenant_id} ({name})")
    return tenant


async def set_status(db: AsyncSession, tenant_id: str, status: TenantStatus) -> tuple[Tenant, str]:
    """Returns the tenant and its previous status."""
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")

    previous = tenant.status
    tenant.status = status.value
    await db.commit()
    logger.info(f"Tenant {tenant_id}: {previous} → {status.value}")
    return tenant, previous
