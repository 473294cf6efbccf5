"""
Admin dashboard: system-wide counts and daily usage analytics.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.helpers.authentication import require_admin
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core import analytics
from osintdesk.core.audit import record_audit
from osintdesk.db.session import get_db
from osintdesk.models.iam.users import Profile

router = APIRouter()


@router.get("/stats", response_model=APIResponse)
async def get_system_stats(
    request: Request,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    stats = await analytics.system_stats(db)
    await record_audit(db, admin.user_id, "view_system_stats", request=request)
    return success_response(data=stats)


@router.get("/analytics", response_model=APIResponse)
async def get_usage_analytics(
    request: Request,
    days: int = Query(30, ge=1, le=365),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Per-day activity for the last ``days`` days, with totals, averages and growth."""
    data = await analytics.usage_analytics(db, days=days)
    await record_audit(
        db, admin.user_id, "view_analytics", metadata={"days": days}, request=request
    )
    return success_response(data=data)
