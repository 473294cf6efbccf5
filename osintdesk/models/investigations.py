"""
Investigation and InvestigationItem models.

An investigation is a named, user-owned grouping of jobs. Items are the
annotated links between one job and one investigation; the pair is unique.
"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from osintdesk.db.base import Base, JSONType, utcnow
from osintdesk.models.enums import InvestigationStatus


class Investigation(Base):
    __tablename__ = "investigations"

    investigation_id = Column(
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
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=InvestigationStatus.ACTIVE.value)
    tags = Column(JSONType, nullable=False, default=list)
    metadata_attributes = Column(JSONType, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = relationship(
        "InvestigationItem",
        back_populates="investigation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            status.in_([e.value for e in InvestigationStatus]),
            name="ck_investigation_status",
        ),
    )


class InvestigationItem(Base):
    __tablename__ = "investigation_items"

    item_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    investigation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("investigations.investigation_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    job_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("jobs.job_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notes = Column(Text, nullable=True)
    tags = Column(JSONType, nullable=False, default=list)
    is_favorite = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    investigation = relationship("Investigation", back_populates="items")
    job = relationship("Job")

    __table_args__ = (
        UniqueConstraint(
            "investigation_id", "job_id", name="uq_investigation_item_job"
        ),
    )
