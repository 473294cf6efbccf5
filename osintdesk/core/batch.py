"""
Batch orchestrator (storage side).

A batch records a set of tool operations and the options an executor would
run them with. No executor exists in this service: a batch stays pending
until it is cancelled, and retrying only resets failed operations to pending
for an executor to pick up.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from osintdesk.core.errors import InvalidStateError, NotFoundError, ValidationError
from osintdesk.core.jobs import get_owned_investigation
from osintdesk.core.tools import validate_tool_input
from osintdesk.models.batch import BatchJob, BatchOperation
from osintdesk.models.enums import BatchJobStatus

logger = logging.getLogger(__name__)


class BatchOptions(BaseModel):
    execute_parallel: bool = True
    max_parallel: int = Field(default=5, ge=1, le=10)
    stop_on_error: bool = False
    timeout_per_operation_ms: int = Field(default=300000, ge=1000)
    retry_failed: bool = True
    max_retries: int = Field(default=3, ge=0, le=5)


def operation_counts(operations: list[BatchOperation]) -> dict[str, int]:
    counts = {"pending": 0, "running": 0, "completed": 0, "failed": 0, "cancelled": 0}
    for op in operations:
        counts[op.status] = counts.get(op.status, 0) + 1
    counts["total"] = len(operations)
    return counts


async def create_batch(
    db: AsyncSession,
    user_id: uuid.UUID,
    name: str,
    operations: list[dict[str, Any]],
    description: str | None = None,
    investigation_id: uuid.UUID | None = None,
    options: BatchOptions | None = None,
) -> BatchJob:
    """
    Store a batch and all of its operations in one transaction.

    Every operation is validated against its tool's input schema first; one
    bad operation rejects the whole batch and nothing is written.
    """
    if not operations:
        raise ValidationError(
            "At least one operation is required",
            details=["operations: must not be empty"],
        )

    if investigation_id is not None:
        await get_owned_investigation(db, user_id, investigation_id)

    details = []
    validated = []
    for index, op in enumerate(operations):
        try:
            input_data = validate_tool_input(op["tool_name"], op.get("input_data") or {})
        except ValidationError as e:
            details.extend(f"operations.{index}.{d}" for d in e.details)
            continue
        validated.append((op, input_data))
    if details:
        raise ValidationError("Invalid batch operations", details=details)

    batch = BatchJob(
        user_id=user_id,
        investigation_id=investigation_id,
        name=name,
        description=description,
        status=BatchJobStatus.PENDING.value,
        total_operations=len(validated),
        options=(options or BatchOptions()).model_dump(),
    )
    batch.operations = [
        BatchOperation(
            tool_name=op["tool_name"],
            input_data=input_data,
            priority=op.get("priority") or 0,
            metadata_attributes=op.get("metadata") or {},
            status="pending",
        )
        for op, input_data in validated
    ]
    db.add(batch)
    await db.commit()

    logger.info(f"Created batch {batch.batch_job_id} with {len(validated)} operations")
    return await get_batch(db, user_id, batch.batch_job_id)


async def get_batch(
    db: AsyncSession, user_id: uuid.UUID, batch_job_id: uuid.UUID
) -> BatchJob:
    result = await db.execute(
        select(BatchJob)
        .options(selectinload(BatchJob.operations))
        .where(BatchJob.batch_job_id == batch_job_id, BatchJob.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    batch = result.scalar_one_or_none()
    if batch is None:
        raise NotFoundError("Batch job not found")
    return batch


async def list_batches(
    db: AsyncSession,
    user_id: uuid.UUID,
    investigation_id: uuid.UUID | None = None,
    status: BatchJobStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[BatchJob], int]:
    conditions = [BatchJob.user_id == user_id]
    if investigation_id:
        conditions.append(BatchJob.investigation_id == investigation_id)
    if status:
        conditions.append(BatchJob.status == status.value)

    result = await db.execute(
        select(BatchJob)
        .options(selectinload(BatchJob.operations))
        .where(*conditions)
        .execution_options(populate_existing=True)
        .order_by(BatchJob.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_q = await db.execute(
        select(func.count(BatchJob.batch_job_id)).where(*conditions)
    )
    return list(result.scalars().all()), count_q.scalar() or 0


async def cancel_batch(
    db: AsyncSession, user_id: uuid.UUID, batch_job_id: uuid.UUID
) -> BatchJob:
    batch = await get_batch(db, user_id, batch_job_id)
    if batch.status not in (
        BatchJobStatus.PENDING.value,
        BatchJobStatus.PROCESSING.value,
    ):
        raise InvalidStateError(f"Cannot cancel a {batch.status} batch")

    now = datetime.now(timezone.utc)
    await db.execute(
        update(BatchOperation)
        .where(
            BatchOperation.batch_job_id == batch_job_id,
            BatchOperation.status == "pending",
        )
        .values(status="cancelled")
        .execution_options(synchronize_session=False)
    )
    batch.status = BatchJobStatus.CANCELLED.value
    batch.completed_at = now
    await db.commit()

    logger.info(f"Cancelled batch {batch_job_id}")
    return await get_batch(db, user_id, batch_job_id)


async def retry_failed_operations(
    db: AsyncSession, user_id: uuid.UUID, batch_job_id: uuid.UUID
) -> tuple[BatchJob, int]:
    """
    Put a batch's failed operations back to pending and reopen the batch.

    Returns the batch and the number of operations reset. A cancelled batch
    stays cancelled.
    """
    batch = await get_batch(db, user_id, batch_job_id)
    if batch.status == BatchJobStatus.CANCELLED.value:
        raise InvalidStateError("Cannot retry a cancelled batch")

    failed = [op for op in batch.operations if op.status == "failed"]
    if not failed:
        raise InvalidStateError("No failed operations to retry")

    await db.execute(
        update(BatchOperation)
        .where(
            BatchOperation.batch_job_id == batch_job_id,
            BatchOperation.status == "failed",
        )
        .values(status="pending", error_message=None, started_at=None, completed_at=None)
        .execution_options(synchronize_session=False)
    )
    batch.status = BatchJobStatus.PENDING.value
    batch.completed_at = None
    await db.commit()

    logger.info(f"Reset {len(failed)} failed operations in batch {batch_job_id}")
    return await get_batch(db, user_id, batch_job_id), len(failed)
