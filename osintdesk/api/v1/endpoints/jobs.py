"""
Jobs API - launch tool jobs and follow their progress.
"""

import logging
import uuid as _uuid
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.utils.common import iso, paginate, parse_uuid
from osintdesk.api.v1.helpers.authentication import get_current_user
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core import jobs as job_store
from osintdesk.core.audit import record_audit
from osintdesk.db.session import get_db
from osintdesk.models.enums import JobStatus
from osintdesk.models.iam.users import Profile
from osintdesk.models.jobs import Job

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class JobCreateRequest(BaseModel):
    tool_name: str
    input_data: dict[str, Any]
    investigation_id: _uuid.UUID | None = None
    priority: int = Field(default=0, ge=0, le=10)


class JobOut(BaseModel):
    job_id: str
    user_id: str
    investigation_id: str | None = None
    tool_name: str
    status: JobStatus
    progress: int
    priority: int
    input_data: dict[str, Any]
    output_data: Any | None = None
    error_message: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_model(cls, job: Job) -> "JobOut":
        return cls(
            job_id=str(job.job_id),
            user_id=str(job.user_id),
            investigation_id=str(job.investigation_id)
            if job.investigation_id
            else None,
            tool_name=job.tool_name,
            status=JobStatus(job.status),
            progress=job.progress,
            priority=job.priority,
            input_data=job.input_data or {},
            output_data=job.output_data,
            error_message=job.error_message,
            started_at=iso(job.started_at),
            completed_at=iso(job.completed_at),
            created_at=iso(job.created_at),
            updated_at=iso(job.updated_at),
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", response_model=APIResponse, status_code=201)
async def create_job(
    data: JobCreateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a pending job for one of the registered tools and queue it.

    ``input_data`` is checked against the tool's schema before anything is
    written. With ``investigation_id`` the job is linked into that
    investigation in the same transaction.
    """
    job = await job_store.create_job(
        db,
        user_id=user.user_id,
        tool_name=data.tool_name,
        input_data=data.input_data,
        investigation_id=data.investigation_id,
        priority=data.priority,
    )
    await record_audit(
        db,
        user.user_id,
        "job_created",
        "job",
        job.job_id,
        metadata={"tool_name": job.tool_name},
        request=request,
    )
    return success_response(data=JobOut.from_model(job), message="Job created")


@router.get("", response_model=APIResponse)
async def list_jobs(
    status: JobStatus | None = Query(None, description="Filter by status"),
    tool_name: str | None = Query(None, description="Filter by tool"),
    investigation_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's jobs, newest first."""
    inv_id = (
        parse_uuid(investigation_id, "investigation_id") if investigation_id else None
    )
    jobs, total = await job_store.list_jobs(
        db,
        user.user_id,
        status=status,
        tool_name=tool_name,
        investigation_id=inv_id,
        limit=limit,
        offset=offset,
    )
    return success_response(
        data={
            "jobs": [JobOut.from_model(j) for j in jobs],
            "pagination": paginate(total, limit, offset),
        }
    )


@router.get("/{job_id}", response_model=APIResponse)
async def get_job(
    job_id: str,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single job by ID."""
    jid = parse_uuid(job_id, "job_id")
    job = await job_store.get_job_or_404(db, user.user_id, jid)
    return success_response(data=JobOut.from_model(job))


@router.post("/{job_id}/retry", response_model=APIResponse, status_code=201)
async def retry_job(
    job_id: str,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Queue a new pending copy of a failed job."""
    jid = parse_uuid(job_id, "job_id")
    job = await job_store.retry_job(db, user.user_id, jid)
    await record_audit(
        db,
        user.user_id,
        "job_retried",
        "job",
        job.job_id,
        metadata={"original_job_id": str(jid), "tool_name": job.tool_name},
        request=request,
    )
    return success_response(data=JobOut.from_model(job), message="Job retried")
