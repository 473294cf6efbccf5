"""
Webhook model - delivery endpoints and per-user event subscriptions.

Delivery counters exist for the external delivery mechanism; nothing in this
service increments them.
"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    Uuid,
)

from osintdesk.db.base import Base, JSONType, utcnow


class Webhook(Base):
    __tablename__ = "webhooks"

    webhook_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = Column(String(2048), nullable=False)
    description = Column(String(500), nullable=True)
    events = Column(JSONType, nullable=False, default=list)
    secret = Column(String, nullable=False)
    headers = Column(JSONType, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)

    total_deliveries = Column(Integer, nullable=False, default=0)
    successful_deliveries = Column(Integer, nullable=False, default=0)
    failed_deliveries = Column(Integer, nullable=False, default=0)
    last_delivery_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
