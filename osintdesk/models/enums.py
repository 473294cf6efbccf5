"""
Enumerations shared by the job, investigation, report, webhook and batch models.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle states of a tool job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATUSES


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class InvestigationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ReportTemplate(str, Enum):
    EXECUTIVE_SUMMARY = "executive-summary"
    DETAILED_TECHNICAL = "detailed-technical"
    INVESTIGATION_TIMELINE = "investigation-timeline"
    EVIDENCE_COLLECTION = "evidence-collection"
    CUSTOM = "custom"


class ReportFormat(str, Enum):
    PDF = "pdf"
    JSON = "json"
    CSV = "csv"
    HTML = "html"


class WebhookEvent(str, Enum):
    JOB_CREATED = "job.created"
    JOB_STARTED = "job.started"
    JOB_COMPLETED = "job.completed"
    JOB_FAILED = "job.failed"
    INVESTIGATION_CREATED = "investigation.created"
    INVESTIGATION_UPDATED = "investigation.updated"
    INVESTIGATION_DELETED = "investigation.deleted"
    REPORT_GENERATED = "report.generated"
    REPORT_SHARED = "report.shared"


class BatchJobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
