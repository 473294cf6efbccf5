"""
Authentication and authorization dependencies.

Users authenticate with a bearer JWT issued at login. The profile is reloaded
from the database on every request, so suspensions and role changes apply to
the very next call. The external tool worker authenticates with a shared
``X-Worker-Token`` header instead.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.config import settings
from osintdesk.core.errors import ForbiddenError, UnauthorizedError
from osintdesk.db.session import get_db
from osintdesk.models.iam.enums import UserRole
from osintdesk.models.iam.users import Profile

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode(
        "utf-8"
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.access_token_expire_hours)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


async def authenticate_user(email: str, password: str, db: AsyncSession):
    result = await db.execute(select(Profile).filter(Profile.email == email))
    user = result.scalar_one_or_none()
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def validate_jwt_token(jwt_token: str, db: AsyncSession) -> Profile:
    try:
        payload = jwt.decode(jwt_token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Invalid JWT")

    subject = payload.get("sub")
    if subject is None:
        raise UnauthorizedError("No user id found in token")
    try:
        user_id = uuid.UUID(subject)
    except ValueError:
        raise UnauthorizedError("Invalid JWT")

    result = await db.execute(
        select(Profile)
        .filter(Profile.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise UnauthorizedError("Invalid or inactive user")
    if user.is_suspended:
        raise ForbiddenError("Account suspended")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("No authentication method found")
    return await validate_jwt_token(credentials.credentials, db)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Profile | None:
    """Like get_current_user, but anonymous requests resolve to None."""
    if credentials is None:
        return None
    return await validate_jwt_token(credentials.credentials, db)


async def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    """Admin capability, checked against the freshly loaded profile."""
    if user.role != UserRole.ADMIN.value or user.is_suspended:
        raise ForbiddenError("Admin access required")
    return user


async def require_worker_token(request: Request) -> None:
    token = request.headers.get("X-Worker-Token")
    if not token or not secrets.compare_digest(token, settings.worker_token):
        logger.warning("Rejected worker callback with missing or bad token")
        raise UnauthorizedError("Invalid worker token")
