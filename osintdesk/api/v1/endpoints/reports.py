"""
Reports API - compile investigations into reports and share them.

``GET /reports/{id}`` is the only route that accepts anonymous callers; it
serves public, unexpired reports to anyone.
"""

import logging
import uuid as _uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.utils.common import iso, paginate, parse_uuid
from osintdesk.api.v1.helpers.authentication import get_current_user, get_optional_user
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core import reports as report_store
from osintdesk.core.audit import record_audit
from osintdesk.db.session import get_db
from osintdesk.models.enums import ReportFormat, ReportTemplate
from osintdesk.models.iam.users import Profile
from osintdesk.models.reports import Report

logger = logging.getLogger(__name__)
router = APIRouter()


class ReportCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    investigation_id: _uuid.UUID
    template: ReportTemplate
    description: str | None = Field(default=None, max_length=5000)
    include_raw_data: bool = False
    include_summary: bool = True
    format: ReportFormat = ReportFormat.PDF


class ReportUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    is_public: bool | None = None
    expires_at: datetime | None = None


class ReportShareRequest(BaseModel):
    is_public: bool
    expires_at: datetime | None = None


class ReportOut(BaseModel):
    report_id: str
    user_id: str
    investigation_id: str
    name: str
    description: str | None = None
    template: ReportTemplate
    format: ReportFormat
    report_data: dict[str, Any]
    generation_metadata: dict[str, Any]
    is_public: bool
    expires_at: str | None = None
    share_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_model(cls, report: Report) -> "ReportOut":
        return cls(
            report_id=str(report.report_id),
            user_id=str(report.user_id),
            investigation_id=str(report.investigation_id),
            name=report.name,
            description=report.description,
            template=ReportTemplate(report.template),
            format=ReportFormat(report.format),
            report_data=report.report_data or {},
            generation_metadata=report.generation_metadata or {},
            is_public=report.is_public,
            expires_at=iso(report.expires_at),
            share_url=report_store.public_url(report) if report.is_public else None,
            created_at=iso(report.created_at),
            updated_at=iso(report.updated_at),
        )


@router.post("", response_model=APIResponse, status_code=201)
async def create_report(
    data: ReportCreateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Compile a report from one of the caller's investigations."""
    report = await report_store.create_report(
        db,
        user,
        name=data.name,
        investigation_id=data.investigation_id,
        template=data.template,
        description=data.description,
        include_raw_data=data.include_raw_data,
        include_summary=data.include_summary,
        format=data.format,
    )
    await record_audit(
        db,
        user.user_id,
        "report_created",
        "report",
        report.report_id,
        metadata={
            "report_name": report.name,
            "investigation_id": str(data.investigation_id),
            "template": data.template.value,
            "format": data.format.value,
        },
        request=request,
    )
    return success_response(data=ReportOut.from_model(report), message="Report created")


@router.get("", response_model=APIResponse)
async def list_reports(
    investigation_id: str | None = Query(None),
    template: ReportTemplate | None = Query(None),
    search: str | None = Query(None, max_length=255),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    inv_id = (
        parse_uuid(investigation_id, "investigation_id") if investigation_id else None
    )
    reports, total = await report_store.list_reports(
        db,
        user.user_id,
        investigation_id=inv_id,
        template=template,
        search=search,
        limit=limit,
        offset=offset,
    )
    return success_response(
        data={
            "reports": [ReportOut.from_model(r) for r in reports],
            "pagination": paginate(total, limit, offset),
        }
    )


@router.get("/{report_id}", response_model=APIResponse)
async def get_report(
    report_id: str,
    user: Profile | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Read a report: the owner's private reports, or anyone's public unexpired ones."""
    rid = parse_uuid(report_id, "report_id")
    report = await report_store.read_report(db, user, rid)
    return success_response(data=ReportOut.from_model(report))


@router.patch("/{report_id}", response_model=APIResponse)
async def update_report(
    report_id: str,
    data: ReportUpdateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rid = parse_uuid(report_id, "report_id")
    changes = data.model_dump(exclude_unset=True)
    report = await report_store.update_report(db, user.user_id, rid, changes)
    await record_audit(
        db,
        user.user_id,
        "report_updated",
        "report",
        rid,
        metadata={"fields": sorted(changes)},
        request=request,
    )
    return success_response(data=ReportOut.from_model(report), message="Report updated")


@router.patch("/{report_id}/share", response_model=APIResponse)
async def share_report(
    report_id: str,
    data: ReportShareRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Make a report public (optionally until ``expires_at``) or private again."""
    rid = parse_uuid(report_id, "report_id")
    report = await report_store.share_report(
        db, user.user_id, rid, data.is_public, data.expires_at
    )
    await record_audit(
        db,
        user.user_id,
        "report_shared" if data.is_public else "report_unshared",
        "report",
        rid,
        metadata={
            "report_name": report.name,
            "expires_at": iso(data.expires_at),
        },
        request=request,
    )
    return success_response(
        data={
            "report": ReportOut.from_model(report),
            "share_url": report_store.public_url(report) if report.is_public else None,
        },
        message="Report is now public" if report.is_public else "Report is now private",
    )


@router.delete("/{report_id}", response_model=APIResponse)
async def delete_report(
    report_id: str,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rid = parse_uuid(report_id, "report_id")
    report = await report_store.delete_report(db, user.user_id, rid)
    await record_audit(
        db,
        user.user_id,
        "report_deleted",
        "report",
        rid,
        metadata={"report_name": report.name},
        request=request,
    )
    return success_response(data={"report_id": str(rid)}, message="Report deleted")
