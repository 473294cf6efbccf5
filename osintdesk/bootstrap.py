"""
Bootstrap: provision a default admin profile on first startup when the
database has no profiles at all.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.helpers.authentication import hash_password
from osintdesk.config import settings
from osintdesk.models.iam.enums import UserRole
from osintdesk.models.iam.users import Profile

logger = logging.getLogger(__name__)


async def ensure_default_admin(db: AsyncSession) -> Profile | None:
    """Create the default admin on a fresh database.

    If *any* profile already exists the function returns None without
    touching anything, so the bootstrap runs only once.
    """
    result = await db.execute(select(Profile).limit(1))
    if result.scalar_one_or_none() is not None:
        return None

    admin = Profile(
        email=settings.default_admin_email,
        full_name="Admin",
        hashed_password=hash_password(settings.default_admin_password),
        role=UserRole.ADMIN.value,
        is_active=True,
    )
    db.add(admin)
    await db.commit()
    await db.refresh(admin)

    logger.info(
        f"Bootstrap complete: created admin {admin.email} ({admin.user_id}). "
        "Change the default password after first login."
    )
    return admin
