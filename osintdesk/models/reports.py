"""
Report model - a compiled, read-mostly document built from one investigation.

Rendering to PDF/CSV/HTML happens outside this service; only the structured
report_data is stored here.
"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Uuid,
)
from sqlalchemy.orm import relationship

from osintdesk.db.base import Base, JSONType, utcnow
from osintdesk.models.enums import ReportFormat


class Report(Base):
    __tablename__ = "reports"

    report_id = Column(
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
        ForeignKey("investigations.investigation_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # executive-summary | detailed-technical | investigation-timeline | ...
    template = Column(String, nullable=False, index=True)
    format = Column(String, nullable=False, default=ReportFormat.PDF.value)

    report_data = Column(JSONType, nullable=False)
    generation_metadata = Column(JSONType, nullable=False, default=dict)

    is_public = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    investigation = relationship("Investigation")
