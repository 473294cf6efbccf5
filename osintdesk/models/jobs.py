"""
Job model - one invocation of an external OSINT tool and its lifecycle state.
"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Uuid,
)

from osintdesk.db.base import Base, JSONType, utcnow
from osintdesk.models.enums import JobStatus


class Job(Base):
    __tablename__ = "jobs"

    job_id = Column(
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

    # First investigation the job was linked into; never reassigned
    investigation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("investigations.investigation_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # sherlock | maigret | theharvester | ... (see osintdesk.core.tools)
    tool_name = Column(String, nullable=False, index=True)

    # pending | running | completed | failed
    status = Column(String, nullable=False, default=JobStatus.PENDING.value)
    priority = Column(Integer, nullable=False, default=0)
    progress = Column(Integer, nullable=False, default=0)

    input_data = Column(JSONType, nullable=False)
    # Written only when the job reaches a terminal state
    output_data = Column(JSONType, nullable=True)
    # Non-null iff status == failed
    error_message = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            status.in_([e.value for e in JobStatus]),
            name="ck_job_status",
        ),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_job_progress"),
    )
