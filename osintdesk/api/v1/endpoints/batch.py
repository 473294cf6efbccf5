"""
Batch API - record a set of tool operations to be run together.
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
from osintdesk.core import batch as batch_store
from osintdesk.core.audit import record_audit
from osintdesk.db.session import get_db
from osintdesk.models.batch import BatchJob, BatchOperation
from osintdesk.models.enums import BatchJobStatus
from osintdesk.models.iam.users import Profile

logger = logging.getLogger(__name__)
router = APIRouter()


class BatchOperationRequest(BaseModel):
    tool_name: str
    input_data: dict[str, Any]
    priority: int = Field(default=0, ge=0, le=10)
    metadata: dict[str, Any] | None = None


class BatchCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    investigation_id: _uuid.UUID | None = None
    operations: list[BatchOperationRequest] = Field(min_length=1)
    options: batch_store.BatchOptions = Field(default_factory=batch_store.BatchOptions)


class BatchOperationOut(BaseModel):
    operation_id: str
    tool_name: str
    input_data: dict[str, Any]
    status: str
    priority: int
    metadata: dict[str, Any]
    error_message: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None

    @classmethod
    def from_model(cls, op: BatchOperation) -> "BatchOperationOut":
        return cls(
            operation_id=str(op.operation_id),
            tool_name=op.tool_name,
            input_data=op.input_data or {},
            status=op.status,
            priority=op.priority,
            metadata=op.metadata_attributes or {},
            error_message=op.error_message,
            started_at=iso(op.started_at),
            completed_at=iso(op.completed_at),
            created_at=iso(op.created_at),
        )


class BatchOut(BaseModel):
    batch_job_id: str
    user_id: str
    investigation_id: str | None = None
    name: str
    description: str | None = None
    status: BatchJobStatus
    total_operations: int
    options: dict[str, Any]
    progress: dict[str, int]
    operations: list[BatchOperationOut] | None = None
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_model(cls, batch: BatchJob, with_operations: bool = True) -> "BatchOut":
        return cls(
            batch_job_id=str(batch.batch_job_id),
            user_id=str(batch.user_id),
            investigation_id=str(batch.investigation_id)
            if batch.investigation_id
            else None,
            name=batch.name,
            description=batch.description,
            status=BatchJobStatus(batch.status),
            total_operations=batch.total_operations,
            options=batch.options or {},
            progress=batch_store.operation_counts(batch.operations),
            operations=[BatchOperationOut.from_model(op) for op in batch.operations]
            if with_operations
            else None,
            started_at=iso(batch.started_at),
            completed_at=iso(batch.completed_at),
            created_at=iso(batch.created_at),
            updated_at=iso(batch.updated_at),
        )


@router.post("", response_model=APIResponse, status_code=201)
async def create_batch(
    data: BatchCreateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Store a batch and its operations. Every operation is validated up front."""
    batch = await batch_store.create_batch(
        db,
        user.user_id,
        name=data.name,
        operations=[op.model_dump() for op in data.operations],
        description=data.description,
        investigation_id=data.investigation_id,
        options=data.options,
    )
    await record_audit(
        db,
        user.user_id,
        "batch_job.created",
        "batch_job",
        batch.batch_job_id,
        metadata={"name": batch.name, "total_operations": batch.total_operations},
        request=request,
    )
    return success_response(data=BatchOut.from_model(batch), message="Batch created")


@router.get("", response_model=APIResponse)
async def list_batches(
    investigation_id: str | None = Query(None),
    status: BatchJobStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    inv_id = (
        parse_uuid(investigation_id, "investigation_id") if investigation_id else None
    )
    batches, total = await batch_store.list_batches(
        db,
        user.user_id,
        investigation_id=inv_id,
        status=status,
        limit=limit,
        offset=offset,
    )
    return success_response(
        data={
            "batch_jobs": [
                BatchOut.from_model(b, with_operations=False) for b in batches
            ],
            "pagination": paginate(total, limit, offset),
        }
    )


@router.get("/{batch_job_id}", response_model=APIResponse)
async def get_batch(
    batch_job_id: str,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bid = parse_uuid(batch_job_id, "batch_job_id")
    batch = await batch_store.get_batch(db, user.user_id, bid)
    return success_response(data=BatchOut.from_model(batch))


@router.post("/{batch_job_id}/cancel", response_model=APIResponse)
async def cancel_batch(
    batch_job_id: str,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bid = parse_uuid(batch_job_id, "batch_job_id")
    batch = await batch_store.cancel_batch(db, user.user_id, bid)
    await record_audit(
        db,
        user.user_id,
        "batch_job.cancelled",
        "batch_job",
        bid,
        request=request,
    )
    return success_response(data=BatchOut.from_model(batch), message="Batch cancelled")


@router.post("/{batch_job_id}/retry", response_model=APIResponse)
async def retry_batch(
    batch_job_id: str,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Reset the batch's failed operations to pending."""
    bid = parse_uuid(batch_job_id, "batch_job_id")
    batch, retried = await batch_store.retry_failed_operations(db, user.user_id, bid)
    await record_audit(
        db,
        user.user_id,
        "batch_job.retried",
        "batch_job",
        bid,
        metadata={"name": batch.name, "retried_count": retried},
        request=request,
    )
    return success_response(
        data={"batch_job": BatchOut.from_model(batch), "retried_count": retried},
        message=f"Queued {retried} operations for retry",
    )
