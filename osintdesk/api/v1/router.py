"""
Router assembly for /api/v1.

Most routers declare their own auth dependencies per route: reports allow
anonymous reads of shared reports, the internal router authenticates the
tool worker by token, and the admin routers require the admin capability.
"""

from fastapi import APIRouter

from osintdesk.api.v1.endpoints import (
    batch,
    internal,
    investigations,
    jobs,
    reports,
    tools,
    webhooks,
)
from osintdesk.api.v1.endpoints.admin import audit_logs as admin_audit_logs
from osintdesk.api.v1.endpoints.admin import monitoring as admin_monitoring
from osintdesk.api.v1.endpoints.admin import stats as admin_stats
from osintdesk.api.v1.endpoints.admin import users as admin_users
from osintdesk.api.v1.endpoints.iam import users as iam_users

api_router = APIRouter()
api_router.include_router(tools.router, prefix="/tools", tags=["tools"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(
    investigations.router, prefix="/investigations", tags=["investigations"]
)
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(batch.router, prefix="/batch", tags=["batch"])

# Worker callbacks (X-Worker-Token)
api_router.include_router(internal.router, prefix="/internal", tags=["internal"])

# Admin (role == admin and not suspended)
api_router.include_router(admin_users.router, prefix="/admin", tags=["admin"])
api_router.include_router(admin_audit_logs.router, prefix="/admin", tags=["admin"])
api_router.include_router(admin_stats.router, prefix="/admin", tags=["admin"])
api_router.include_router(admin_monitoring.router, prefix="/admin", tags=["admin"])

# IAM (register/login are public, the rest need auth per endpoint)
api_router.include_router(iam_users.router, prefix="/iam", tags=["iam"])
