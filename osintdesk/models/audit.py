"""
AuditLog model - append-only record of user and admin actions, keyed by actor.
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid

from osintdesk.db.base import Base, JSONType, utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    audit_log_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Kept after the actor's profile is deleted
    actor_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.user_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action = Column(String, nullable=False, index=True)
    resource_type = Column(String, nullable=True)
    resource_id = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    metadata_attributes = Column(JSONType, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
