"""
Audit trail helpers.

Audit rows are written in a savepoint after the mutation they describe has
been committed. A failed audit write rolls back only that savepoint and is
logged; it never undoes the mutation.
"""

import logging
import uuid
from typing import Any

from fastapi import Request
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.models.audit import AuditLog

logger = logging.getLogger(__name__)


def _client_ip(request: Request | None) -> str | None:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def record_audit(
    db: AsyncSession,
    actor_id: uuid.UUID | None,
    action: str,
    resource_type: str | None = None,
    resource_id: Any = None,
    metadata: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog | None:
    """Append one audit record. Returns None when the write failed."""
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent") if request else None,
        metadata_attributes=metadata or {},
    )
    try:
        async with db.begin_nested():
            db.add(entry)
            await db.flush()
    except SQLAlchemyError:
        # only the savepoint is rolled back, loaded objects stay usable
        logger.exception(f"Failed to write audit log for action {action}")
        await db.commit()
        return None
    await db.commit()
    return entry


async def list_audit_logs(
    db: AsyncSession,
    action: str | None = None,
    resource_type: str | None = None,
    actor_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    conditions = []
    if action:
        conditions.append(AuditLog.action == action)
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)
    if actor_id:
        conditions.append(AuditLog.actor_id == actor_id)

    result = await db.execute(
        select(AuditLog)
        .where(*conditions)
        .execution_options(populate_existing=True)
        .order_by(AuditLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_q = await db.execute(
        select(func.count(AuditLog.audit_log_id)).where(*conditions)
    )
    return list(result.scalars().all()), count_q.scalar() or 0
