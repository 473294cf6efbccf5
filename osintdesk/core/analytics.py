"""
Admin read models: system statistics, daily usage analytics and per-tool usage.

Everything here is computed from the live tables on each call; nothing is
cached or stored. Day boundaries are UTC.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.core.errors import ValidationError
from osintdesk.models.batch import BatchJob
from osintdesk.models.enums import (
    BatchJobStatus,
    InvestigationStatus,
    JobStatus,
)
from osintdesk.models.iam.enums import UserRole
from osintdesk.models.iam.users import Profile
from osintdesk.models.investigations import Investigation
from osintdesk.models.jobs import Job
from osintdesk.models.reports import Report
from osintdesk.models.webhooks import Webhook

TOOL_SORT_FIELDS = (
    "total_executions",
    "avg_execution_time_ms",
    "total_users",
    "executions_today",
)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands timestamps back without tzinfo; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _windows(now: datetime) -> dict[str, datetime]:
    today = _as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "today": today,
        "week": today - timedelta(days=7),
        "month": today - timedelta(days=30),
    }


def _count_if(condition):
    return func.sum(case((condition, 1), else_=0))


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _average_ms(pairs) -> float | None:
    durations = [
        (_as_utc(completed) - _as_utc(started)).total_seconds() * 1000
        for started, completed in pairs
        if started is not None and completed is not None
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


async def _windowed_counts(
    db: AsyncSession, model, windows: dict[str, datetime], *extra
) -> tuple[dict[str, int], list[int]]:
    """Total rows plus rows created today, this week and this month."""
    created_at = model.created_at
    row = (
        await db.execute(
            select(
                func.count(),
                _count_if(created_at >= windows["today"]),
                _count_if(created_at >= windows["week"]),
                _count_if(created_at >= windows["month"]),
                *extra,
            ).select_from(model)
        )
    ).one()
    counts = {
        "total": row[0] or 0,
        "today": row[1] or 0,
        "week": row[2] or 0,
        "month": row[3] or 0,
    }
    return counts, [value or 0 for value in row[4:]]


async def _group_counts(db: AsyncSession, column) -> dict[str, int]:
    result = await db.execute(select(column, func.count()).group_by(column))
    return {key: n for key, n in result.all()}


async def system_stats(db: AsyncSession, now: datetime | None = None) -> dict[str, Any]:
    """Counts across users, jobs, investigations, reports, webhooks and batches."""
    windows = _windows(now or datetime.now(timezone.utc))

    users, (suspended, active_week) = await _windowed_counts(
        db,
        Profile,
        windows,
        _count_if(Profile.is_suspended.is_(True)),
        _count_if(Profile.last_login >= windows["week"]),
    )
    by_role = await _group_counts(db, Profile.role)
    users.update(
        suspended=suspended,
        active_week=active_week,
        by_role={role.value: by_role.get(role.value, 0) for role in UserRole},
    )

    jobs, _ = await _windowed_counts(db, Job, windows)
    by_status = await _group_counts(db, Job.status)
    jobs.update({status.value: by_status.get(status.value, 0) for status in JobStatus})
    jobs["by_tool"] = await _group_counts(db, Job.tool_name)
    timings = await db.execute(
        select(Job.started_at, Job.completed_at).where(
            Job.started_at.is_not(None), Job.completed_at.is_not(None)
        )
    )
    jobs["avg_execution_time_ms"] = _average_ms(timings.all()) or 0.0

    investigations, _ = await _windowed_counts(db, Investigation, windows)
    by_status = await _group_counts(db, Investigation.status)
    investigations.update(
        {status.value: by_status.get(status.value, 0) for status in InvestigationStatus}
    )

    reports, (public,) = await _windowed_counts(
        db, Report, windows, _count_if(Report.is_public.is_(True))
    )
    reports["public"] = public
    reports["by_template"] = await _group_counts(db, Report.template)

    webhook_row = (
        await db.execute(
            select(
                func.count(Webhook.webhook_id),
                _count_if(Webhook.is_active.is_(True)),
                func.sum(Webhook.total_deliveries),
                func.sum(Webhook.successful_deliveries),
                func.sum(Webhook.failed_deliveries),
            )
        )
    ).one()
    total, active, deliveries, delivered, failed = (value or 0 for value in webhook_row)
    webhooks = {
        "total": total,
        "active": active,
        "inactive": total - active,
        "total_deliveries": deliveries,
        "successful_deliveries": delivered,
        "failed_deliveries": failed,
    }

    batch_row = (
        await db.execute(
            select(func.count(BatchJob.batch_job_id), func.avg(BatchJob.total_operations))
        )
    ).one()
    by_status = await _group_counts(db, BatchJob.status)
    batch_jobs = {"total": batch_row[0] or 0}
    batch_jobs.update(
        {status.value: by_status.get(status.value, 0) for status in BatchJobStatus}
    )
    batch_jobs["avg_operations_per_batch"] = round(float(batch_row[1] or 0), 2)

    return {
        "users": users,
        "jobs": jobs,
        "investigations": investigations,
        "reports": reports,
        "webhooks": webhooks,
        "batch_jobs": batch_jobs,
    }


async def _created_since(db: AsyncSession, columns, created_at, start: datetime):
    result = await db.execute(select(created_at, *columns).where(created_at >= start))
    return result.all()


async def usage_analytics(
    db: AsyncSession, days: int = 30, now: datetime | None = None
) -> dict[str, Any]:
    """
    Daily activity for the last ``days`` days plus today, oldest first.

    ``growth`` compares the newer half of the series against the older half,
    in percent; it is 0 when the older half had no activity.
    """
    today = _windows(now or datetime.now(timezone.utc))["today"]
    start = today - timedelta(days=days)
    dates: list[date] = [(start + timedelta(days=n)).date() for n in range(days + 1)]
    series: dict[date, dict[str, Any]] = {
        day: {
            "date": day.isoformat(),
            "jobs_created": 0,
            "jobs_completed": 0,
            "jobs_failed": 0,
            "investigations_created": 0,
            "reports_generated": 0,
            "new_users": 0,
            "active_users": 0,
        }
        for day in dates
    }
    active_users: dict[date, set] = defaultdict(set)

    for created_at, status, user_id in await _created_since(
        db, (Job.status, Job.user_id), Job.created_at, start
    ):
        day = series.get(_as_utc(created_at).date())
        if day is None:
            continue
        day["jobs_created"] += 1
        if status == JobStatus.COMPLETED.value:
            day["jobs_completed"] += 1
        elif status == JobStatus.FAILED.value:
            day["jobs_failed"] += 1
        active_users[_as_utc(created_at).date()].add(user_id)

    for key, created_at_column in (
        ("investigations_created", Investigation.created_at),
        ("reports_generated", Report.created_at),
        ("new_users", Profile.created_at),
    ):
        for (created_at,) in await _created_since(db, (), created_at_column, start):
            day = series.get(_as_utc(created_at).date())
            if day is not None:
                day[key] += 1

    for day, users in active_users.items():
        if day in series:
            series[day]["active_users"] = len(users)

    time_series = [series[day] for day in dates]

    def _totals(rows):
        return {
            "jobs": sum(r["jobs_created"] for r in rows),
            "investigations": sum(r["investigations_created"] for r in rows),
            "reports": sum(r["reports_generated"] for r in rows),
            "users": sum(r["new_users"] for r in rows),
        }

    totals = _totals(time_series)
    averages = {
        f"{key}_per_day": round(value / len(time_series), 2)
        for key, value in totals.items()
    }

    midpoint = len(time_series) // 2
    older, newer = _totals(time_series[:midpoint]), _totals(time_series[midpoint:])
    growth = {
        f"{key}_percent": (
            round((newer[key] - older[key]) / older[key] * 100, 2) if older[key] else 0.0
        )
        for key in totals
    }

    return {
        "days": days,
        "time_series": time_series,
        "totals": totals,
        "averages": averages,
        "growth": growth,
    }


async def tool_usage(
    db: AsyncSession,
    tool_name: str | None = None,
    min_executions: int = 0,
    sort_by: str = "total_executions",
    sort_order: str = "desc",
    limit: int = 50,
    offset: int = 0,
    now: datetime | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """Per-tool execution counts, success rates and average run time."""
    if sort_by not in TOOL_SORT_FIELDS:
        raise ValidationError(
            f"Cannot sort by {sort_by}",
            details=[f"sort_by: must be one of {', '.join(TOOL_SORT_FIELDS)}"],
        )
    windows = _windows(now or datetime.now(timezone.utc))
    conditions = [Job.tool_name == tool_name] if tool_name else []

    result = await db.execute(
        select(
            Job.tool_name,
            func.count(Job.job_id),
            func.count(Job.user_id.distinct()),
            _count_if(Job.status == JobStatus.COMPLETED.value),
            _count_if(Job.status == JobStatus.FAILED.value),
            _count_if(Job.created_at >= windows["today"]),
            _count_if(Job.created_at >= windows["week"]),
            _count_if(Job.created_at >= windows["month"]),
            func.max(Job.created_at),
        )
        .where(*conditions)
        .group_by(Job.tool_name)
    )
    rows = result.all()

    timings: dict[str, list] = defaultdict(list)
    timing_rows = await db.execute(
        select(Job.tool_name, Job.started_at, Job.completed_at).where(
            *conditions, Job.started_at.is_not(None), Job.completed_at.is_not(None)
        )
    )
    for name, started_at, completed_at in timing_rows.all():
        timings[name].append((started_at, completed_at))

    tools = []
    for name, total, users, completed, failed, today, week, month, last in rows:
        if total < min_executions:
            continue
        tools.append(
            {
                "tool_name": name,
                "total_executions": total,
                "total_users": users,
                "successful": completed or 0,
                "failed": failed or 0,
                "success_rate": _percent(completed or 0, total),
                "failure_rate": _percent(failed or 0, total),
                "avg_execution_time_ms": _average_ms(timings.get(name, [])),
                "executions_today": today or 0,
                "executions_week": week or 0,
                "executions_month": month or 0,
                "last_execution": _as_utc(last).isoformat() if last else None,
            }
        )

    # tools with no timing data sort last in either direction
    timed = [t for t in tools if t[sort_by] is not None]
    untimed = [t for t in tools if t[sort_by] is None]
    timed.sort(key=lambda t: (t[sort_by], t["tool_name"]), reverse=sort_order == "desc")
    ordered = timed + untimed

    return ordered[offset : offset + limit], len(ordered)
