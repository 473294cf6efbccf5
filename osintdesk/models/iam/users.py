"""
Profile model.

One row per account. Role and suspension state are read from here on every
request, so a demotion or suspension takes effect immediately.
"""

from sqlalchemy import Column, String, Boolean, DateTime, CheckConstraint, Uuid
from osintdesk.db.base import Base, utcnow
from .enums import UserRole
import uuid


class Profile(Base):
    __tablename__ = "profiles"

    user_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        index=True,
        nullable=False,
        default=uuid.uuid4,
    )
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    role = Column(String, nullable=False, default=UserRole.USER.value)
    is_suspended = Column(Boolean, default=False, nullable=False)
    suspension_reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            role.in_([e.value for e in UserRole]),
            name="ck_profile_role",
        ),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value and not self.is_suspended
