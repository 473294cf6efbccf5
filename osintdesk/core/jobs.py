"""
Job entity store: creation, ownership-scoped reads and the status state machine.

Status changes go through ``transition_job`` only. It writes with a
compare-and-swap on the observed status (and, for progress updates, on
progress not having moved past the new value), so two writers racing on the
same job cannot both succeed.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.core.errors import (
    ConflictError,
    InternalError,
    InvalidStateError,
    NotFoundError,
)
from osintdesk.core.tools import validate_tool_input
from osintdesk.models.enums import JobStatus
from osintdesk.models.investigations import Investigation, InvestigationItem
from osintdesk.models.jobs import Job

logger = logging.getLogger(__name__)

# (from, to) pairs the state machine accepts. running -> running is a
# progress update.
ALLOWED_TRANSITIONS = frozenset(
    {
        (JobStatus.PENDING, JobStatus.RUNNING),
        (JobStatus.PENDING, JobStatus.FAILED),
        (JobStatus.RUNNING, JobStatus.RUNNING),
        (JobStatus.RUNNING, JobStatus.COMPLETED),
        (JobStatus.RUNNING, JobStatus.FAILED),
    }
)


async def get_owned_investigation(
    db: AsyncSession, user_id: uuid.UUID, investigation_id: uuid.UUID
) -> Investigation:
    result = await db.execute(
        select(Investigation)
        .where(
            Investigation.investigation_id == investigation_id,
            Investigation.user_id == user_id,
        )
        .execution_options(populate_existing=True)
    )
    investigation = result.scalar_one_or_none()
    if investigation is None:
        raise NotFoundError("Investigation not found")
    return investigation


async def get_job_or_404(
    db: AsyncSession, user_id: uuid.UUID, job_id: uuid.UUID
) -> Job:
    """Fetch a job owned by ``user_id``. Other users' jobs look absent."""
    result = await db.execute(
        select(Job)
        .where(Job.job_id == job_id, Job.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise NotFoundError("Job not found")
    return job


async def create_job(
    db: AsyncSession,
    user_id: uuid.UUID,
    tool_name: str,
    input_data: dict[str, Any],
    investigation_id: uuid.UUID | None = None,
    priority: int = 0,
    dispatch=None,
) -> Job:
    """
    Validate, persist and dispatch a new pending job.

    When ``investigation_id`` is given the job row and its investigation item
    are committed together. ``dispatch`` defaults to the Celery hand-off; if
    it raises, the job row is removed again and InternalError is raised.
    """
    normalised = validate_tool_input(tool_name, input_data)

    if investigation_id is not None:
        await get_owned_investigation(db, user_id, investigation_id)

    job = Job(
        job_id=uuid.uuid4(),
        user_id=user_id,
        tool_name=tool_name,
        input_data=normalised,
        priority=priority,
        status=JobStatus.PENDING.value,
        progress=0,
        investigation_id=investigation_id,
    )
    db.add(job)
    if investigation_id is not None:
        db.add(InvestigationItem(investigation_id=investigation_id, job_id=job.job_id))
    await db.commit()
    await db.refresh(job)

    if dispatch is None:
        from osintdesk.celery_app import dispatch_tool_job

        dispatch = dispatch_tool_job

    try:
        dispatch(job)
    except Exception as e:
        logger.error(f"Failed to dispatch job {job.job_id}: {e}")
        await db.execute(delete(Job).where(Job.job_id == job.job_id))
        await db.commit()
        raise InternalError("Failed to queue job")

    return job


async def list_jobs(
    db: AsyncSession,
    user_id: uuid.UUID,
    status: JobStatus | None = None,
    tool_name: str | None = None,
    investigation_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Job], int]:
    conditions = [Job.user_id == user_id]
    if status:
        conditions.append(Job.status == status.value)
    if tool_name:
        conditions.append(Job.tool_name == tool_name)
    if investigation_id:
        conditions.append(Job.investigation_id == investigation_id)

    result = await db.execute(
        select(Job)
        .where(*conditions)
        .execution_options(populate_existing=True)
        .order_by(Job.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_q = await db.execute(select(func.count(Job.job_id)).where(*conditions))
    return list(result.scalars().all()), count_q.scalar() or 0


def _check_transition(
    job: Job,
    new_status: JobStatus,
    progress: int | None,
    output: Any,
    error_message: str | None,
) -> dict[str, Any]:
    """Validate a transition against the observed row and build the update values."""
    current = JobStatus(job.status)

    if current.is_terminal:
        raise ConflictError(f"Job is already {current.value}")
    if (current, new_status) not in ALLOWED_TRANSITIONS:
        raise InvalidStateError(
            f"Cannot move job from {current.value} to {new_status.value}"
        )

    now = datetime.now(timezone.utc)
    values: dict[str, Any] = {"status": new_status.value, "updated_at": now}

    if new_status == JobStatus.RUNNING:
        if progress is not None:
            if progress < job.progress:
                raise InvalidStateError(
                    f"Progress cannot decrease ({job.progress} -> {progress})"
                )
            values["progress"] = progress
        if current == JobStatus.PENDING:
            values["started_at"] = now

    elif new_status == JobStatus.COMPLETED:
        if output is None:
            raise InvalidStateError("A completed job requires output")
        values.update(
            progress=100,
            output_data=output,
            error_message=None,
            completed_at=now,
        )

    elif new_status == JobStatus.FAILED:
        if not error_message:
            raise InvalidStateError("A failed job requires an error message")
        values.update(error_message=error_message, completed_at=now)
        if output is not None:
            values["output_data"] = output

    return values


async def transition_job(
    db: AsyncSession,
    job_id: uuid.UUID,
    new_status: JobStatus,
    progress: int | None = None,
    output: Any = None,
    error_message: str | None = None,
) -> Job:
    """
    Apply one status transition reported by the tool worker.

    Raises:
        NotFoundError: no such job.
        ConflictError: the job is terminal, or another writer changed its
            status or advanced its progress between our read and our write.
        InvalidStateError: the edge is not allowed or its payload is incomplete.
    """
    result = await db.execute(
        select(Job)
        .where(Job.job_id == job_id)
        .execution_options(populate_existing=True)
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise NotFoundError("Job not found")

    observed = job.status
    values = _check_transition(job, new_status, progress, output, error_message)

    conditions = [Job.job_id == job_id, Job.status == observed]
    if new_status == JobStatus.RUNNING and "progress" in values:
        # a stale writer must not move progress backwards
        conditions.append(Job.progress <= values["progress"])

    cas = await db.execute(
        update(Job)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if cas.rowcount == 0:
        await db.rollback()
        raise ConflictError("Job changed concurrently")
    await db.commit()

    await db.refresh(job)
    logger.info(f"Job {job_id} {observed} -> {new_status.value}")
    return job


async def retry_job(
    db: AsyncSession, user_id: uuid.UUID, job_id: uuid.UUID, dispatch=None
) -> Job:
    """Start a fresh pending copy of a failed job. The failed job is left untouched."""
    job = await get_job_or_404(db, user_id, job_id)
    if job.status != JobStatus.FAILED.value:
        raise InvalidStateError("Only failed jobs can be retried")

    investigation_id = job.investigation_id
    if investigation_id is not None:
        exists = await db.execute(
            select(Investigation.investigation_id).where(
                Investigation.investigation_id == investigation_id,
                Investigation.user_id == user_id,
            )
        )
        if exists.scalar_one_or_none() is None:
            investigation_id = None

    return await create_job(
        db,
        user_id=user_id,
        tool_name=job.tool_name,
        input_data=job.input_data,
        investigation_id=investigation_id,
        priority=job.priority,
        dispatch=dispatch,
    )
