"""
IAM - registration, login, profile retrieval and password change.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.utils.common import iso
from osintdesk.api.v1.helpers.authentication import (
    authenticate_user,
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.config import settings
from osintdesk.core.errors import (
    ConflictError,
    ForbiddenError,
    UnauthorizedError,
    ValidationError,
)
from osintdesk.db.session import get_db
from osintdesk.models.iam.enums import UserRole
from osintdesk.models.iam.users import Profile

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


# ── request / response schemas ────────────────────────────────────────────


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    full_name: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=128)


class ProfileOut(BaseModel):
    user_id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    role: UserRole
    is_active: bool
    is_suspended: bool
    suspension_reason: str | None = None
    created_at: str | None = None
    last_login: str | None = None

    @classmethod
    def from_model(cls, profile: Profile) -> "ProfileOut":
        return cls(
            user_id=str(profile.user_id),
            email=profile.email,
            full_name=profile.full_name,
            avatar_url=profile.avatar_url,
            role=UserRole(profile.role),
            is_active=profile.is_active,
            is_suspended=profile.is_suspended,
            suspension_reason=profile.suspension_reason,
            created_at=iso(profile.created_at),
            last_login=iso(profile.last_login),
        )


# ── endpoints ─────────────────────────────────────────────────────────────


@router.post("/register", response_model=APIResponse, status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create a regular user profile."""
    email = request.email.lower()
    existing = await db.execute(select(Profile.user_id).where(Profile.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("An account with this email already exists")

    profile = Profile(
        email=email,
        full_name=request.full_name,
        hashed_password=hash_password(request.password),
        role=UserRole.USER.value,
        is_active=True,
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An account with this email already exists")
    await db.refresh(profile)

    logger.info(f"Registered user {profile.user_id}")
    return success_response(data=ProfileOut.from_model(profile), message="Registered")


@router.post("/login", response_model=APIResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with email + password and receive a JWT."""
    user = await authenticate_user(request.email.lower(), request.password, db)
    if not user or not user.is_active:
        raise UnauthorizedError("Invalid email or password")
    if user.is_suspended:
        raise ForbiddenError("Account suspended")

    user.last_login = datetime.now(timezone.utc)
    await db.commit()

    access_token = create_access_token(
        data={"sub": str(user.user_id)},
        expires_delta=timedelta(hours=settings.access_token_expire_hours),
    )
    return success_response(
        data={
            "access_token": access_token,
            "token_type": "bearer",
            "user": ProfileOut.from_model(user),
        }
    )


@router.get("/me", response_model=APIResponse)
async def get_me(current_user: Profile = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return success_response(data=ProfileOut.from_model(current_user))


@router.put("/me/password", response_model=APIResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the current user's password."""
    if not verify_password(request.current_password, current_user.hashed_password):
        raise ValidationError("Current password is incorrect")

    current_user.hashed_password = hash_password(request.new_password)
    await db.commit()
    return success_response(message="Password changed successfully")
