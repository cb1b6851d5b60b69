"""
Audit Log Writer

Best-effort, append-only record of state-changing actions. Each write uses
its own session, so it is not transactional with the operation it
describes; callers write after their business commit. Failures are logged
and never reach the caller.
"""

import logging
from functools import lru_cache
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from restohub.database import async_session_maker
from restohub.models import AuditLog

logger = logging.getLogger(__name__)


class AuditLogWriter:
    """Appends AuditLog rows through a dedicated session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def write(
        self,
        tenant_id: str,
        user_id: Optional[str],
        entity_type: str,
        entity_id: str,
        action_type: str,
        change_summary: Optional[dict[str, Any]] = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                session.add(AuditLog(
                    tenant_id=tenant_id,
                    user_id=user_id,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    action_type=action_type,
                    change_summary=change_summary,
                ))
                await session.commit()
        except Exception as e:
            logger.exception(
                f"AuditLog failed ({entity_type}:{entity_id} {action_type}): {e}"
            )


@lru_cache()
def get_audit_writer() -> AuditLogWriter:
    return AuditLogWriter(async_session_maker)
