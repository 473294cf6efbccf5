"""
Admin monitoring: dependency health and per-tool usage.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.utils.common import paginate
from osintdesk.api.v1.helpers.authentication import require_admin
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core import analytics
from osintdesk.core.audit import record_audit
from osintdesk.core.monitoring import system_health
from osintdesk.db.session import get_db
from osintdesk.models.iam.users import Profile

router = APIRouter(prefix="/monitoring")

ToolSortField = Literal[
    "total_executions", "avg_execution_time_ms", "total_users", "executions_today"
]


@router.get("/health", response_model=APIResponse)
async def get_system_health(
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=await system_health(db))


@router.get("/tools", response_model=APIResponse)
async def get_tool_usage(
    request: Request,
    tool_name: str | None = Query(None),
    min_executions: int = Query(0, ge=0),
    sort_by: ToolSortField = Query("total_executions"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Execution counts, success rates and average run time per tool."""
    tools, total = await analytics.tool_usage(
        db,
        tool_name=tool_name,
        min_executions=min_executions,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    await record_audit(
        db,
        admin.user_id,
        "view_tool_stats",
        metadata={"tool_name": tool_name, "min_executions": min_executions},
        request=request,
    )
    return success_response(
        data={"tools": tools, "pagination": paginate(total, limit, offset)}
    )
