"""
Webhooks API - register endpoints to be notified about job, investigation and
report events.

The signing secret is returned once, in the creation response. Later reads
never include it.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field, HttpUrl
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.api.v1.endpoints.utils.common import iso, paginate, parse_uuid
from osintdesk.api.v1.helpers.authentication import get_current_user
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core import webhooks as webhook_store
from osintdesk.core.audit import record_audit
from osintdesk.db.session import get_db
from osintdesk.models.enums import WebhookEvent
from osintdesk.models.iam.users import Profile
from osintdesk.models.webhooks import Webhook

logger = logging.getLogger(__name__)
router = APIRouter()


class WebhookCreateRequest(BaseModel):
    url: HttpUrl
    events: list[WebhookEvent] = Field(min_length=1)
    secret: str | None = Field(default=None, min_length=webhook_store.MIN_SECRET_LENGTH)
    headers: dict[str, str] | None = None
    description: str | None = Field(default=None, max_length=500)


class WebhookUpdateRequest(BaseModel):
    url: HttpUrl | None = None
    events: list[WebhookEvent] | None = Field(default=None, min_length=1)
    headers: dict[str, str] | None = None
    description: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None


class WebhookOut(BaseModel):
    webhook_id: str
    user_id: str
    url: str
    description: str | None = None
    events: list[str]
    headers: dict[str, str]
    is_active: bool
    total_deliveries: int
    successful_deliveries: int
    failed_deliveries: int
    last_delivery_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_model(cls, webhook: Webhook) -> "WebhookOut":
        return cls(
            webhook_id=str(webhook.webhook_id),
            user_id=str(webhook.user_id),
            url=webhook.url,
            description=webhook.description,
            events=webhook.events or [],
            headers=webhook.headers or {},
            is_active=webhook.is_active,
            total_deliveries=webhook.total_deliveries or 0,
            successful_deliveries=webhook.successful_deliveries or 0,
            failed_deliveries=webhook.failed_deliveries or 0,
            last_delivery_at=iso(webhook.last_delivery_at),
            created_at=iso(webhook.created_at),
            updated_at=iso(webhook.updated_at),
        )


class WebhookCreatedOut(WebhookOut):
    secret: str


@router.post("", response_model=APIResponse, status_code=201)
async def create_webhook(
    data: WebhookCreateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a webhook. A signing secret is generated when none is supplied."""
    webhook = await webhook_store.create_webhook(
        db,
        user.user_id,
        url=str(data.url),
        events=data.events,
        secret=data.secret,
        headers=data.headers,
        description=data.description,
    )
    await record_audit(
        db,
        user.user_id,
        "webhook.created",
        "webhook",
        webhook.webhook_id,
        metadata={"url": webhook.url, "events": webhook.events},
        request=request,
    )
    out = WebhookCreatedOut(
        **WebhookOut.from_model(webhook).model_dump(), secret=webhook.secret
    )
    return success_response(data=out, message="Webhook created")


@router.get("", response_model=APIResponse)
async def list_webhooks(
    is_active: bool | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    webhooks, total, stats = await webhook_store.list_webhooks(
        db, user.user_id, is_active=is_active, limit=limit, offset=offset
    )
    return success_response(
        data={
            "webhooks": [WebhookOut.from_model(w) for w in webhooks],
            "stats": stats,
            "pagination": paginate(total, limit, offset),
        }
    )


@router.get("/{webhook_id}", response_model=APIResponse)
async def get_webhook(
    webhook_id: str,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wid = parse_uuid(webhook_id, "webhook_id")
    webhook = await webhook_store.get_webhook(db, user.user_id, wid)
    return success_response(data=WebhookOut.from_model(webhook))


@router.patch("/{webhook_id}", response_model=APIResponse)
async def update_webhook(
    webhook_id: str,
    data: WebhookUpdateRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wid = parse_uuid(webhook_id, "webhook_id")
    changes = data.model_dump(exclude_unset=True)
    webhook = await webhook_store.update_webhook(db, user.user_id, wid, changes)
    await record_audit(
        db,
        user.user_id,
        "webhook.updated",
        "webhook",
        wid,
        metadata={"fields": sorted(changes)},
        request=request,
    )
    return success_response(data=WebhookOut.from_model(webhook), message="Webhook updated")


@router.delete("/{webhook_id}", response_model=APIResponse)
async def delete_webhook(
    webhook_id: str,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wid = parse_uuid(webhook_id, "webhook_id")
    webhook = await webhook_store.delete_webhook(db, user.user_id, wid)
    await record_audit(
        db,
        user.user_id,
        "webhook.deleted",
        "webhook",
        wid,
        metadata={"url": webhook.url},
        request=request,
    )
    return success_response(data={"webhook_id": str(wid)}, message="Webhook deleted")
