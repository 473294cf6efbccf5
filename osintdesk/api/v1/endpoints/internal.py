"""
Worker callback API.

The external tool worker reports job progress and results here. Requests
carry the shared ``X-Worker-Token`` instead of a user JWT.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.jobs import JobOut
from osintdesk.api.v1.endpoints.utils.common import parse_uuid
from osintdesk.api.v1.helpers.authentication import require_worker_token
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core.jobs import transition_job
from osintdesk.db.session import get_db
from osintdesk.models.enums import JobStatus

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_worker_token)])


class JobTransitionRequest(BaseModel):
    status: JobStatus
    progress: int | None = Field(default=None, ge=0, le=100)
    output_data: Any | None = None
    error_message: str | None = None


@router.post("/jobs/{job_id}/transition", response_model=APIResponse)
async def transition(
    job_id: str,
    data: JobTransitionRequest,
    db: AsyncSession = Depends(get_db),
):
    """Move a job along pending -> running -> completed/failed."""
    jid = parse_uuid(job_id, "job_id")
    job = await transition_job(
        db,
        jid,
        data.status,
        progress=data.progress,
        output=data.output_data,
        error_message=data.error_message,
    )
    return success_response(data=JobOut.from_model(job))
