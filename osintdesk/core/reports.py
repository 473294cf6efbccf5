"""
Report compiler.

A report is a snapshot: ``report_data`` is built once from the investigation
and its items at creation time and is not refreshed when the investigation
changes afterwards.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.config import settings
from osintdesk.core.errors import (
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from osintdesk.core.investigations import get_investigation_detail
from osintdesk.models.enums import ReportFormat, ReportTemplate
from osintdesk.models.iam.users import Profile
from osintdesk.models.investigations import Investigation, InvestigationItem
from osintdesk.models.reports import Report

logger = logging.getLogger(__name__)


def _as_aware(value: datetime | None) -> datetime | None:
    # sqlite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(report: Report, now: datetime | None = None) -> bool:
    expires_at = _as_aware(report.expires_at)
    if expires_at is None:
        return False
    return (now or datetime.now(timezone.utc)) >= expires_at


def public_url(report: Report) -> str:
    return f"{settings.public_base_url.rstrip('/')}/reports/{report.report_id}"


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


async def compile_investigation(
    db: AsyncSession, user_id: uuid.UUID, investigation_id: uuid.UUID
) -> dict[str, Any]:
    """Read model a report is built from: the investigation, its items and stats."""
    investigation, items, stats = await get_investigation_detail(
        db, user_id, investigation_id
    )
    return {"investigation": investigation, "items": items, "stats": stats}


def tools_used(items: list[InvestigationItem]) -> list[str]:
    """Distinct tool names across the items, in first-seen order."""
    return list(
        dict.fromkeys(item.job.tool_name for item in items if item.job is not None)
    )


def _text_section(section_id: str, title: str, content: str, order: int) -> dict:
    return {
        "id": section_id,
        "type": "text",
        "title": title,
        "content": content,
        "order": order,
    }


def _item_rows(items: list[InvestigationItem], include_raw_data: bool) -> list[dict]:
    rows = []
    for item in items:
        job = item.job
        row = {
            "item_id": str(item.item_id),
            "job_id": str(item.job_id),
            "tool_name": job.tool_name if job else None,
            "status": job.status if job else None,
            "notes": item.notes,
            "tags": item.tags or [],
            "is_favorite": item.is_favorite,
            "added_at": item.created_at.isoformat() if item.created_at else None,
        }
        if include_raw_data and job is not None:
            row["input_data"] = job.input_data
            row["output_data"] = job.output_data
        rows.append(row)
    return rows


def build_sections(
    template: ReportTemplate,
    investigation: Investigation,
    items: list[InvestigationItem],
    stats: dict[str, int],
    include_raw_data: bool = False,
) -> list[dict[str, Any]]:
    count = len(items)
    name = investigation.name

    if template == ReportTemplate.EXECUTIVE_SUMMARY:
        return [
            _text_section(
                "overview",
                "Investigation Overview",
                f'Investigation "{name}" contains {count} items and is '
                f"currently {investigation.status}.",
                1,
            ),
            {
                "id": "stats",
                "type": "table",
                "title": "Statistics",
                "content": {
                    "headers": ["Metric", "Value"],
                    "rows": [
                        ["Total Items", str(count)],
                        ["Completed Jobs", str(stats["completed_jobs"])],
                        ["Pending Jobs", str(stats["pending_jobs"])],
                        ["Failed Jobs", str(stats["failed_jobs"])],
                        ["Status", investigation.status],
                        ["Tags", ", ".join(investigation.tags or [])],
                    ],
                },
                "order": 2,
            },
        ]

    if template == ReportTemplate.DETAILED_TECHNICAL:
        return [
            _text_section(
                "technical-details",
                "Technical Details",
                f'Detailed technical analysis of investigation "{name}" with '
                f"{count} items.",
                1,
            ),
            {
                "id": "results",
                "type": "list",
                "title": "Tool Results",
                "content": _item_rows(items, include_raw_data),
                "order": 2,
            },
        ]

    if template == ReportTemplate.INVESTIGATION_TIMELINE:
        ordered = sorted(items, key=lambda i: _as_aware(i.created_at))
        return [
            _text_section(
                "timeline",
                "Investigation Timeline",
                f'Timeline of events for investigation "{name}" with {count} items.',
                1,
            ),
            {
                "id": "events",
                "type": "timeline",
                "title": "Events",
                "content": [
                    {
                        "timestamp": item.created_at.isoformat()
                        if item.created_at
                        else None,
                        "tool_name": item.job.tool_name if item.job else None,
                        "status": item.job.status if item.job else None,
                        "notes": item.notes,
                    }
                    for item in ordered
                ],
                "order": 2,
            },
        ]

    if template == ReportTemplate.EVIDENCE_COLLECTION:
        favorites = [item for item in items if item.is_favorite]
        return [
            _text_section(
                "evidence",
                "Evidence Collection",
                f'Evidence collected during investigation "{name}" with {count} items.',
                1,
            ),
            {
                "id": "flagged",
                "type": "list",
                "title": "Flagged Evidence",
                "content": _item_rows(favorites, include_raw_data),
                "order": 2,
            },
        ]

    return [
        _text_section(
            "custom",
            "Custom Report",
            f'Custom report for investigation "{name}" with {count} items.',
            1,
        )
    ]


async def create_report(
    db: AsyncSession,
    user: Profile,
    name: str,
    investigation_id: uuid.UUID,
    template: ReportTemplate,
    description: str | None = None,
    include_raw_data: bool = False,
    include_summary: bool = True,
    format: ReportFormat = ReportFormat.PDF,
) -> Report:
    compiled = await compile_investigation(db, user.user_id, investigation_id)
    investigation = compiled["investigation"]
    items = compiled["items"]
    stats = compiled["stats"]

    now = datetime.now(timezone.utc)
    created_at = _as_aware(investigation.created_at)

    report_data = {
        "title": name,
        "description": description or investigation.description,
        "metadata": {
            "template": template.value,
            "generated_at": now.isoformat(),
            "generated_by": user.full_name or user.email,
            "investigation_id": str(investigation.investigation_id),
            "investigation_name": investigation.name,
            "total_items": len(items),
            "stats": stats,
            "date_range": {
                "start": created_at.isoformat() if created_at else None,
                "end": now.isoformat(),
            },
            "tools_used": tools_used(items),
        },
        "sections": build_sections(
            template, investigation, items, stats, include_raw_data
        ),
        "summary": {"key_findings": [], "recommendations": [], "conclusion": ""}
        if include_summary
        else None,
    }

    report = Report(
        user_id=user.user_id,
        investigation_id=investigation.investigation_id,
        name=name,
        description=description,
        template=template.value,
        format=format.value,
        report_data=report_data,
        generation_metadata={
            "include_raw_data": include_raw_data,
            "include_summary": include_summary,
            "generated_at": now.isoformat(),
            "item_count": len(items),
        },
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)
    logger.info(f"Created {template.value} report {report.report_id}")
    return report


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


async def _get_report(db: AsyncSession, report_id: uuid.UUID) -> Report | None:
    result = await db.execute(
        select(Report)
        .where(Report.report_id == report_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_owned_report(
    db: AsyncSession, user_id: uuid.UUID, report_id: uuid.UUID
) -> Report:
    report = await _get_report(db, report_id)
    if report is None or report.user_id != user_id:
        raise NotFoundError("Report not found")
    return report


async def read_report(
    db: AsyncSession, requester: Profile | None, report_id: uuid.UUID
) -> Report:
    """
    Resolve a report read for an optional requester.

    - private: requires an authenticated owner (401 anonymous, 404 otherwise)
    - public and unexpired: readable by anyone
    - public and expired: forbidden for everyone, the owner included
    """
    report = await _get_report(db, report_id)

    if report is not None and report.is_public:
        if is_expired(report):
            raise ForbiddenError("This shared report has expired")
        return report

    if requester is None:
        raise UnauthorizedError()
    if report is None or report.user_id != requester.user_id:
        raise NotFoundError("Report not found")
    return report


async def list_reports(
    db: AsyncSession,
    user_id: uuid.UUID,
    investigation_id: uuid.UUID | None = None,
    template: ReportTemplate | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Report], int]:
    conditions = [Report.user_id == user_id]
    if investigation_id:
        conditions.append(Report.investigation_id == investigation_id)
    if template:
        conditions.append(Report.template == template.value)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(Report.name.ilike(pattern), Report.description.ilike(pattern))
        )

    result = await db.execute(
        select(Report)
        .where(*conditions)
        .execution_options(populate_existing=True)
        .order_by(Report.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_q = await db.execute(
        select(func.count(Report.report_id)).where(*conditions)
    )
    return list(result.scalars().all()), count_q.scalar() or 0


def _check_expiry(expires_at: datetime | None) -> None:
    if expires_at is not None and _as_aware(expires_at) <= datetime.now(timezone.utc):
        raise ValidationError(
            "Expiration date must be in the future",
            details=["expires_at: must be in the future"],
        )


async def update_report(
    db: AsyncSession,
    user_id: uuid.UUID,
    report_id: uuid.UUID,
    changes: dict[str, Any],
) -> Report:
    report = await get_owned_report(db, user_id, report_id)

    if "name" in changes and changes["name"] is not None:
        report.name = changes["name"]
    if "description" in changes:
        report.description = changes["description"]
    if changes.get("is_public") is not None:
        report.is_public = changes["is_public"]
    if "expires_at" in changes:
        _check_expiry(changes["expires_at"])
        report.expires_at = _as_aware(changes["expires_at"])

    await db.commit()
    await db.refresh(report)
    return report


async def share_report(
    db: AsyncSession,
    user_id: uuid.UUID,
    report_id: uuid.UUID,
    is_public: bool,
    expires_at: datetime | None = None,
) -> Report:
    report = await get_owned_report(db, user_id, report_id)
    _check_expiry(expires_at)

    report.is_public = is_public
    report.expires_at = _as_aware(expires_at)
    await db.commit()
    await db.refresh(report)
    return report


async def delete_report(
    db: AsyncSession, user_id: uuid.UUID, report_id: uuid.UUID
) -> Report:
    report = await get_owned_report(db, user_id, report_id)
    await db.execute(delete(Report).where(Report.report_id == report_id))
    await db.commit()
    return report
