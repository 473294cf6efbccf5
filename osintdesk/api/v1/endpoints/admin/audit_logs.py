from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.utils.common import iso, paginate, parse_uuid
from osintdesk.api.v1.helpers.authentication import require_admin
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core.audit import list_audit_logs
from osintdesk.db.session import get_db
from osintdesk.models.audit import AuditLog
from osintdesk.models.iam.users import Profile

router = APIRouter(prefix="/audit-logs")


class AuditLogOut(BaseModel):
    audit_log_id: str
    actor_id: str | None = None
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict
    created_at: str | None = None

    @classmethod
    def from_model(cls, entry: AuditLog) -> "AuditLogOut":
        return cls(
            audit_log_id=str(entry.audit_log_id),
            actor_id=str(entry.actor_id) if entry.actor_id else None,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            metadata=entry.metadata_attributes or {},
            created_at=iso(entry.created_at),
        )


@router.get("", response_model=APIResponse)
async def get_audit_logs(
    action: str | None = Query(None),
    resource_type: str | None = Query(None),
    actor_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail, newest first."""
    entries, total = await list_audit_logs(
        db,
        action=action,
        resource_type=resource_type,
        actor_id=parse_uuid(actor_id, "actor_id") if actor_id else None,
        limit=limit,
        offset=offset,
    )
    return success_response(
        data={
            "audit_logs": [AuditLogOut.from_model(e) for e in entries],
            "pagination": paginate(total, limit, offset),
        }
    )
