"""
osintdesk: API backend for running OSINT tools as tracked background jobs.

Users launch tools (username search, domain recon, email/phone lookup, image
metadata extraction), follow the resulting jobs, group them into
investigations and compile reports from them.

Data model: Profile, Job, Investigation, InvestigationItem, Report, Webhook,
BatchJob/BatchOperation, AuditLog. Everything except audit logs is scoped by
the owning user_id.
"""

__version__ = "0.1.0"
