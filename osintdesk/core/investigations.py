"""
Investigation aggregator and item linker.

Stats are derived from the linked jobs on every read and are never stored.
"""

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from osintdesk.core.errors import DuplicateItemError, NotFoundError
from osintdesk.core.jobs import get_job_or_404, get_owned_investigation
from osintdesk.models.enums import InvestigationStatus, JobStatus
from osintdesk.models.investigations import Investigation, InvestigationItem
from osintdesk.models.jobs import Job

logger = logging.getLogger(__name__)


def dedupe_tags(tags: Iterable[str] | None) -> list[str]:
    """Drop repeated tags, keeping the first occurrence and the original order."""
    return list(dict.fromkeys(tags or []))


def empty_stats() -> dict[str, int]:
    return {"total_items": 0, "completed_jobs": 0, "pending_jobs": 0, "failed_jobs": 0}


async def compute_stats(
    db: AsyncSession, investigation_ids: list[uuid.UUID]
) -> dict[uuid.UUID, dict[str, int]]:
    """Item counts per investigation, bucketed by the linked job's status."""
    stats = {inv_id: empty_stats() for inv_id in investigation_ids}
    if not investigation_ids:
        return stats

    pending_states = [JobStatus.PENDING.value, JobStatus.RUNNING.value]
    result = await db.execute(
        select(
            InvestigationItem.investigation_id,
            func.count(InvestigationItem.item_id),
            func.sum(case((Job.status == JobStatus.COMPLETED.value, 1), else_=0)),
            func.sum(case((Job.status.in_(pending_states), 1), else_=0)),
            func.sum(case((Job.status == JobStatus.FAILED.value, 1), else_=0)),
        )
        .join(Job, Job.job_id == InvestigationItem.job_id)
        .where(InvestigationItem.investigation_id.in_(investigation_ids))
        .group_by(InvestigationItem.investigation_id)
    )
    for inv_id, total, completed, pending, failed in result.all():
        stats[inv_id] = {
            "total_items": total or 0,
            "completed_jobs": completed or 0,
            "pending_jobs": pending or 0,
            "failed_jobs": failed or 0,
        }
    return stats


# ---------------------------------------------------------------------------
# Investigations
# ---------------------------------------------------------------------------


async def create_investigation(
    db: AsyncSession,
    user_id: uuid.UUID,
    name: str,
    description: str | None = None,
    tags: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> Investigation:
    investigation = Investigation(
        user_id=user_id,
        name=name,
        description=description,
        tags=dedupe_tags(tags),
        status=InvestigationStatus.ACTIVE.value,
        metadata_attributes=metadata or {},
    )
    db.add(investigation)
    await db.commit()
    await db.refresh(investigation)
    return investigation


async def list_investigations(
    db: AsyncSession,
    user_id: uuid.UUID,
    status: InvestigationStatus | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Investigation], int]:
    conditions = [Investigation.user_id == user_id]
    if status:
        conditions.append(Investigation.status == status.value)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                Investigation.name.ilike(pattern),
                Investigation.description.ilike(pattern),
            )
        )

    result = await db.execute(
        select(Investigation)
        .where(*conditions)
        .execution_options(populate_existing=True)
        .order_by(Investigation.updated_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_q = await db.execute(
        select(func.count(Investigation.investigation_id)).where(*conditions)
    )
    return list(result.scalars().all()), count_q.scalar() or 0


async def get_investigation_detail(
    db: AsyncSession, user_id: uuid.UUID, investigation_id: uuid.UUID
) -> tuple[Investigation, list[InvestigationItem], dict[str, int]]:
    """Investigation, its items (newest first, job loaded) and its stats."""
    investigation = await get_owned_investigation(db, user_id, investigation_id)

    result = await db.execute(
        select(InvestigationItem)
        .options(selectinload(InvestigationItem.job))
        .execution_options(populate_existing=True)
        .where(InvestigationItem.investigation_id == investigation_id)
        .order_by(InvestigationItem.created_at.desc())
    )
    items = list(result.scalars().all())
    stats = await compute_stats(db, [investigation_id])
    return investigation, items, stats[investigation_id]


async def update_investigation(
    db: AsyncSession,
    user_id: uuid.UUID,
    investigation_id: uuid.UUID,
    changes: dict[str, Any],
) -> Investigation:
    """Apply a partial update. Any status may move to any other status."""
    investigation = await get_owned_investigation(db, user_id, investigation_id)

    if changes.get("name") is not None:
        investigation.name = changes["name"]
    if "description" in changes:
        investigation.description = changes["description"]
    if changes.get("status") is not None:
        investigation.status = InvestigationStatus(changes["status"]).value
    if changes.get("tags") is not None:
        investigation.tags = dedupe_tags(changes["tags"])
    if changes.get("metadata") is not None:
        investigation.metadata_attributes = changes["metadata"]

    await db.commit()
    await db.refresh(investigation)
    return investigation


async def delete_investigation(
    db: AsyncSession, user_id: uuid.UUID, investigation_id: uuid.UUID
) -> None:
    """Delete an investigation and its items. Linked jobs survive, unlinked."""
    await get_owned_investigation(db, user_id, investigation_id)

    await db.execute(
        update(Job)
        .where(Job.investigation_id == investigation_id)
        .values(investigation_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(InvestigationItem).where(
            InvestigationItem.investigation_id == investigation_id
        )
    )
    await db.execute(
        delete(Investigation).where(Investigation.investigation_id == investigation_id)
    )
    await db.commit()
    logger.info(f"Deleted investigation {investigation_id}")


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


async def _get_item(
    db: AsyncSession, investigation_id: uuid.UUID, item_id: uuid.UUID
) -> InvestigationItem:
    result = await db.execute(
        select(InvestigationItem)
        .options(selectinload(InvestigationItem.job))
        .execution_options(populate_existing=True)
        .where(
            InvestigationItem.item_id == item_id,
            InvestigationItem.investigation_id == investigation_id,
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Investigation item not found")
    return item


async def add_item(
    db: AsyncSession,
    user_id: uuid.UUID,
    investigation_id: uuid.UUID,
    job_id: uuid.UUID,
    notes: str | None = None,
    tags: list[str] | None = None,
    is_favorite: bool = False,
) -> InvestigationItem:
    """
    Link a job into an investigation.

    The job's own ``investigation_id`` is set only when it is still empty, so
    the first investigation a job joins stays its primary one.

    Raises:
        NotFoundError: investigation or job missing or owned by someone else.
        DuplicateItemError: the job is already in this investigation
            (a ConflictError surfaced as HTTP 400).
    """
    await get_owned_investigation(db, user_id, investigation_id)
    await get_job_or_404(db, user_id, job_id)

    existing = await db.execute(
        select(InvestigationItem.item_id).where(
            InvestigationItem.investigation_id == investigation_id,
            InvestigationItem.job_id == job_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateItemError()

    item = InvestigationItem(
        investigation_id=investigation_id,
        job_id=job_id,
        notes=notes,
        tags=dedupe_tags(tags),
        is_favorite=is_favorite,
    )
    db.add(item)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateItemError()

    await db.execute(
        update(Job)
        .where(Job.job_id == job_id, Job.investigation_id.is_(None))
        .values(investigation_id=investigation_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    return await _get_item(db, investigation_id, item.item_id)


async def update_item(
    db: AsyncSession,
    user_id: uuid.UUID,
    investigation_id: uuid.UUID,
    item_id: uuid.UUID,
    changes: dict[str, Any],
) -> InvestigationItem:
    await get_owned_investigation(db, user_id, investigation_id)
    item = await _get_item(db, investigation_id, item_id)

    if "notes" in changes:
        item.notes = changes["notes"]
    if changes.get("tags") is not None:
        item.tags = dedupe_tags(changes["tags"])
    if changes.get("is_favorite") is not None:
        item.is_favorite = changes["is_favorite"]

    await db.commit()
    return await _get_item(db, investigation_id, item_id)


async def remove_item(
    db: AsyncSession,
    user_id: uuid.UUID,
    investigation_id: uuid.UUID,
    item_id: uuid.UUID,
) -> InvestigationItem:
    await get_owned_investigation(db, user_id, investigation_id)
    item = await _get_item(db, investigation_id, item_id)

    await db.execute(
        update(Job)
        .where(Job.job_id == item.job_id, Job.investigation_id == investigation_id)
        .values(investigation_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(item)
    await db.commit()
    return item
