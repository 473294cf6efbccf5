"""
Admin user management.

Every route depends on ``require_admin``, which reloads the caller's profile
and checks role and suspension on each request.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.iam.users import ProfileOut
from osintdesk.api.v1.endpoints.utils.common import paginate, parse_uuid
from osintdesk.api.v1.helpers.authentication import require_admin
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core import admin as admin_service
from osintdesk.db.session import get_db
from osintdesk.models.iam.enums import UserRole
from osintdesk.models.iam.users import Profile

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users")


class UserUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, max_length=255)
    role: UserRole | None = None
    is_suspended: bool | None = None
    suspension_reason: str | None = Field(default=None, max_length=1000)


@router.get("", response_model=APIResponse)
async def list_users(
    role: UserRole | None = Query(None),
    search: str | None = Query(None, max_length=255),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users, total = await admin_service.list_users(
        db, role=role, search=search, limit=limit, offset=offset
    )
    return success_response(
        data={
            "users": [ProfileOut.from_model(u) for u in users],
            "pagination": paginate(total, limit, offset),
        }
    )


@router.get("/{user_id}", response_model=APIResponse)
async def get_user(
    user_id: str,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Profile plus counts of the jobs, investigations and reports it owns."""
    uid = parse_uuid(user_id, "user_id")
    profile, usage = await admin_service.get_user_details(db, admin, uid, request)
    return success_response(
        data={"user": ProfileOut.from_model(profile), "usage": usage}
    )


@router.patch("/{user_id}", response_model=APIResponse)
async def update_user(
    user_id: str,
    data: UserUpdateRequest,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change name, role or suspension. Admins cannot demote or suspend themselves."""
    uid = parse_uuid(user_id, "user_id")
    profile = await admin_service.update_user(
        db, admin, uid, data.model_dump(exclude_unset=True), request
    )
    return success_response(data=ProfileOut.from_model(profile), message="User updated")


@router.delete("/{user_id}", response_model=APIResponse)
async def delete_user(
    user_id: str,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    uid = parse_uuid(user_id, "user_id")
    await admin_service.delete_user(db, admin, uid, request)
    return success_response(data={"user_id": str(uid)}, message="User deleted")
