"""
Investigations API - group jobs into named investigations and annotate them.
"""

import logging
import uuid as _uuid
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.jobs import JobOut
from osintdesk.api.v1.endpoints.utils.common import iso, paginate, parse_uuid
from osintdesk.api.v1.helpers.authentication import get_current_user
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core import investigations as investigation_store
from osintdesk.core.audit import record_audit
from osintdesk.db.session import get_db
from osintdesk.models.enums import InvestigationStatus
from osintdesk.models.iam.users import Profile
from osintdesk.models.investigations import Investigation, InvestigationItem

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class InvestigationCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] = []
    metadata: dict[str, Any] | None = None


class InvestigationUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: InvestigationStatus | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None


class ItemCreateRequest(BaseModel):
    job_id: _uuid.UUID
    notes: str | None = Field(default=None, max_length=5000)
    tags: list[str] = []
    is_favorite: bool = False


class ItemUpdateRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=5000)
    tags: list[str] | None = None
    is_favorite: bool | None = None


class InvestigationStats(BaseModel):
    total_items: int
    completed_jobs: int
    pending_jobs: int
    failed_jobs: int


class InvestigationOut(BaseModel):
    investigation_id: str
    user_id: str
    name: str
    description: str | None = None
    status: InvestigationStatus
    tags: list[str]
    metadata: dict[str, Any]
    stats: InvestigationStats | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_model(
        cls, investigation: Investigation, stats: dict[str, int] | None = None
    ) -> "InvestigationOut":
        return cls(
            investigation_id=str(investigation.investigation_id),
            user_id=str(investigation.user_id),
            name=investigation.name,
            description=investigation.description,
            status=InvestigationStatus(investigation.status),
            tags=investigation.tags or [],
            metadata=investigation.metadata_attributes or {},
            stats=InvestigationStats(**stats) if stats is not None else None,
            created_at=iso(investigation.created_at),
            updated_at=iso(investigation.updated_at),
        )


class ItemOut(BaseModel):
    item_id: str
    investigation_id: str
    job_id: str
    notes: str | None = None
    tags: list[str]
    is_favorite: bool
    created_at: str | None = None
    job: JobOut | None = None

    @classmethod
    def from_model(cls, item: InvestigationItem, with_job: bool = True) -> "ItemOut":
        return cls(
            item_id=str(item.item_id),
            investigation_id=str(item.investigation_id),
            job_id=str(item.job_id),
            notes=item.notes,
            tags=item.tags or [],
            is_favorite=item.is_favorite,
            created_at=iso(item.created_at),
            job=JobOut.from_model(item.job) if with_job and item.job else None,
        )


# ---------------------------------------------------------------------------
# Investigations
# ---------------------------------------------------------------------------


@router.post("", response_model=APIResponse, status_code=201)
async def create_investigation(
    data: InvestigationCreateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    investigation = await investigation_store.create_investigation(
        db,
        user.user_id,
        name=data.name,
        description=data.description,
        tags=data.tags,
        metadata=data.metadata,
    )
    await record_audit(
        db,
        user.user_id,
        "investigation_created",
        "investigation",
        investigation.investigation_id,
        metadata={"name": investigation.name},
        request=request,
    )
    return success_response(
        data=InvestigationOut.from_model(
            investigation, investigation_store.empty_stats()
        ),
        message="Investigation created",
    )


@router.get("", response_model=APIResponse)
async def list_investigations(
    status: InvestigationStatus | None = Query(None),
    search: str | None = Query(None, max_length=255),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's investigations, most recently updated first, with stats."""
    investigations, total = await investigation_store.list_investigations(
        db, user.user_id, status=status, search=search, limit=limit, offset=offset
    )
    stats = await investigation_store.compute_stats(
        db, [i.investigation_id for i in investigations]
    )
    return success_response(
        data={
            "investigations": [
                InvestigationOut.from_model(i, stats[i.investigation_id])
                for i in investigations
            ],
            "pagination": paginate(total, limit, offset),
        }
    )


@router.get("/{investigation_id}", response_model=APIResponse)
async def get_investigation(
    investigation_id: str,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    inv_id = parse_uuid(investigation_id, "investigation_id")
    investigation, items, stats = await investigation_store.get_investigation_detail(
        db, user.user_id, inv_id
    )
    out = InvestigationOut.from_model(investigation, stats).model_dump(mode="json")
    out["items"] = [ItemOut.from_model(item).model_dump(mode="json") for item in items]
    return success_response(data=out)


@router.patch("/{investigation_id}", response_model=APIResponse)
async def update_investigation(
    investigation_id: str,
    data: InvestigationUpdateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    inv_id = parse_uuid(investigation_id, "investigation_id")
    changes = data.model_dump(exclude_unset=True)
    investigation = await investigation_store.update_investigation(
        db, user.user_id, inv_id, changes
    )
    await record_audit(
        db,
        user.user_id,
        "investigation_updated",
        "investigation",
        inv_id,
        metadata={"fields": sorted(changes)},
        request=request,
    )
    stats = await investigation_store.compute_stats(db, [inv_id])
    return success_response(
        data=InvestigationOut.from_model(investigation, stats[inv_id]),
        message="Investigation updated",
    )


@router.delete("/{investigation_id}", response_model=APIResponse)
async def delete_investigation(
    investigation_id: str,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete an investigation and its items. The linked jobs are kept."""
    inv_id = parse_uuid(investigation_id, "investigation_id")
    await investigation_store.delete_investigation(db, user.user_id, inv_id)
    await record_audit(
        db,
        user.user_id,
        "investigation_deleted",
        "investigation",
        inv_id,
        request=request,
    )
    return success_response(
        data={"investigation_id": str(inv_id)}, message="Investigation deleted"
    )


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@router.post("/{investigation_id}/items", response_model=APIResponse, status_code=201)
async def add_item(
    investigation_id: str,
    data: ItemCreateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Link one of the caller's jobs into the investigation."""
    inv_id = parse_uuid(investigation_id, "investigation_id")
    item = await investigation_store.add_item(
        db,
        user.user_id,
        inv_id,
        data.job_id,
        notes=data.notes,
        tags=data.tags,
        is_favorite=data.is_favorite,
    )
    await record_audit(
        db,
        user.user_id,
        "investigation_item_added",
        "investigation_item",
        item.item_id,
        metadata={"investigation_id": str(inv_id), "job_id": str(data.job_id)},
        request=request,
    )
    return success_response(data=ItemOut.from_model(item), message="Item added")


@router.patch("/{investigation_id}/items/{item_id}", response_model=APIResponse)
async def update_item(
    investigation_id: str,
    item_id: str,
    data: ItemUpdateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    inv_id = parse_uuid(investigation_id, "investigation_id")
    iid = parse_uuid(item_id, "item_id")
    changes = data.model_dump(exclude_unset=True)
    item = await investigation_store.update_item(db, user.user_id, inv_id, iid, changes)
    await record_audit(
        db,
        user.user_id,
        "investigation_item_updated",
        "investigation_item",
        iid,
        metadata={"investigation_id": str(inv_id), "fields": sorted(changes)},
        request=request,
    )
    return success_response(data=ItemOut.from_model(item), message="Item updated")


@router.delete("/{investigation_id}/items/{item_id}", response_model=APIResponse)
async def remove_item(
    investigation_id: str,
    item_id: str,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    inv_id = parse_uuid(investigation_id, "investigation_id")
    iid = parse_uuid(item_id, "item_id")
    item = await investigation_store.remove_item(db, user.user_id, inv_id, iid)
    await record_audit(
        db,
        user.user_id,
        "investigation_item_removed",
        "investigation_item",
        iid,
        metadata={"investigation_id": str(inv_id), "job_id": str(item.job_id)},
        request=request,
    )
    return success_response(data={"item_id": str(iid)}, message="Item removed")
