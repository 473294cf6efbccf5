"""
Admin oversight: profile listing, usage lookups and role/suspension changes.

Self-protection checks run before anything is written. Each mutation is
followed by an audit record; see ``osintdesk.core.audit``.
"""

import logging
import uuid
from typing import Any

from fastapi import Request
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.core.audit import record_audit
from osintdesk.core.errors import NotFoundError, ValidationError
from osintdesk.models.iam.enums import UserRole
from osintdesk.models.iam.users import Profile
from osintdesk.models.investigations import Investigation
from osintdesk.models.jobs import Job
from osintdesk.models.reports import Report

logger = logging.getLogger(__name__)


async def get_profile_or_404(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    result = await db.execute(
        select(Profile)
        .where(Profile.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFoundError("User not found")
    return profile


async def usage_counts(db: AsyncSession, user_id: uuid.UUID) -> dict[str, int]:
    counts = {}
    for key, column, owner in (
        ("jobs", Job.job_id, Job.user_id),
        ("investigations", Investigation.investigation_id, Investigation.user_id),
        ("reports", Report.report_id, Report.user_id),
    ):
        result = await db.execute(select(func.count(column)).where(owner == user_id))
        counts[key] = result.scalar() or 0
    return counts


async def list_users(
    db: AsyncSession,
    role: UserRole | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Profile], int]:
    conditions = []
    if role:
        conditions.append(Profile.role == role.value)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(Profile.email.ilike(pattern), Profile.full_name.ilike(pattern))
        )

    result = await db.execute(
        select(Profile)
        .where(*conditions)
        .execution_options(populate_existing=True)
        .order_by(Profile.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_q = await db.execute(select(func.count(Profile.user_id)).where(*conditions))
    return list(result.scalars().all()), count_q.scalar() or 0


async def get_user_details(
    db: AsyncSession,
    admin: Profile,
    user_id: uuid.UUID,
    request: Request | None = None,
) -> tuple[Profile, dict[str, int]]:
    profile = await get_profile_or_404(db, user_id)
    usage = await usage_counts(db, user_id)
    await record_audit(
        db,
        admin.user_id,
        "view_user_details",
        "user",
        user_id,
        request=request,
    )
    return profile, usage


def _check_self_protection(admin: Profile, target_id: uuid.UUID, changes: dict) -> None:
    if admin.user_id != target_id:
        return
    if changes.get("is_suspended"):
        raise ValidationError("You cannot suspend your own account")
    role = changes.get("role")
    if role is not None and UserRole(role) != UserRole.ADMIN:
        raise ValidationError("You cannot remove your own admin role")


async def update_user(
    db: AsyncSession,
    admin: Profile,
    user_id: uuid.UUID,
    changes: dict[str, Any],
    request: Request | None = None,
) -> Profile:
    _check_self_protection(admin, user_id, changes)
    profile = await get_profile_or_404(db, user_id)

    if "full_name" in changes:
        profile.full_name = changes["full_name"]
    if changes.get("role") is not None:
        profile.role = UserRole(changes["role"]).value
    if changes.get("is_suspended") is not None:
        profile.is_suspended = changes["is_suspended"]
        if not profile.is_suspended:
            profile.suspension_reason = None
    if "suspension_reason" in changes and profile.is_suspended:
        profile.suspension_reason = changes["suspension_reason"]

    await db.commit()
    await db.refresh(profile)
    logger.info(f"Admin {admin.user_id} updated user {user_id}")

    await record_audit(
        db,
        admin.user_id,
        "update_user",
        "user",
        user_id,
        metadata={
            key: (value.value if isinstance(value, UserRole) else value)
            for key, value in changes.items()
        },
        request=request,
    )
    return profile


async def delete_user(
    db: AsyncSession,
    admin: Profile,
    user_id: uuid.UUID,
    request: Request | None = None,
) -> None:
    """Delete a profile. Everything it owns goes with it via ON DELETE CASCADE."""
    if admin.user_id == user_id:
        raise ValidationError("You cannot delete your own account")
    profile = await get_profile_or_404(db, user_id)
    email = profile.email

    await db.execute(delete(Profile).where(Profile.user_id == user_id))
    await db.commit()
    logger.info(f"Admin {admin.user_id} deleted user {user_id}")

    await record_audit(
        db,
        admin.user_id,
        "delete_user",
        "user",
        user_id,
        metadata={"email": email},
        request=request,
    )
