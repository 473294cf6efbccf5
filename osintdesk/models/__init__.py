from .iam import (
    UserRole as UserRole,
    Profile as Profile,
)

from .jobs import Job as Job
from .investigations import (
    Investigation as Investigation,
    InvestigationItem as InvestigationItem,
)
from .reports import Report as Report
from .webhooks import Webhook as Webhook
from .batch import BatchJob as BatchJob, BatchOperation as BatchOperation
from .audit import AuditLog as AuditLog
