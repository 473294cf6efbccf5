"""
BatchJob and BatchOperation models.

Schema only: no executor consumes these rows. A batch records the requested
tool calls and the options an executor would honour.
"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    Uuid,
)
from sqlalchemy.orm import relationship

from osintdesk.db.base import Base, JSONType, utcnow
from osintdesk.models.enums import BatchJobStatus


class BatchJob(Base):
    __tablename__ = "batch_jobs"

    batch_job_id = Column(
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
    investigation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("investigations.investigation_id", ondelete="SET NULL"),
        nullable=True,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=BatchJobStatus.PENDING.value)
    total_operations = Column(Integer, nullable=False, default=0)
    options = Column(JSONType, nullable=False, default=dict)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    operations = relationship(
        "BatchOperation",
        back_populates="batch_job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BatchOperation.priority.desc()",
    )


class BatchOperation(Base):
    __tablename__ = "batch_operations"

    operation_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    batch_job_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("batch_jobs.batch_job_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tool_name = Column(String, nullable=False)
    input_data = Column(JSONType, nullable=False)
    # pending | running | completed | failed | cancelled
    status = Column(String, nullable=False, default="pending")
    priority = Column(Integer, nullable=False, default=0)
    metadata_attributes = Column(JSONType, nullable=False, default=dict)
    error_message = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    batch_job = relationship("BatchJob", back_populates="operations")
