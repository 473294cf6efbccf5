"""
Webhook registry.

Only registration lives here. Nothing in this service delivers events, signs
payloads or retries deliveries.
"""

import logging
import secrets
import uuid
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.core.errors import NotFoundError, ValidationError
from osintdesk.models.enums import WebhookEvent
from osintdesk.models.webhooks import Webhook

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 8


def generate_secret() -> str:
    """64 hex characters, 256 bits of randomness."""
    return secrets.token_hex(32)


def normalise_events(events: list[WebhookEvent | str]) -> list[str]:
    values = list(dict.fromkeys(WebhookEvent(e).value for e in events))
    if not values:
        raise ValidationError(
            "At least one event is required", details=["events: must not be empty"]
        )
    return values


async def create_webhook(
    db: AsyncSession,
    user_id: uuid.UUID,
    url: str,
    events: list[WebhookEvent | str],
    secret: str | None = None,
    headers: dict[str, str] | None = None,
    description: str | None = None,
) -> Webhook:
    if secret is not None and len(secret) < MIN_SECRET_LENGTH:
        raise ValidationError(
            "Secret is too short",
            details=[f"secret: must be at least {MIN_SECRET_LENGTH} characters"],
        )

    webhook = Webhook(
        user_id=user_id,
        url=url,
        events=normalise_events(events),
        secret=secret or generate_secret(),
        headers=headers or {},
        description=description,
        is_active=True,
    )
    db.add(webhook)
    await db.commit()
    await db.refresh(webhook)
    logger.info(f"Registered webhook {webhook.webhook_id} for user {user_id}")
    return webhook


async def get_webhook(
    db: AsyncSession, user_id: uuid.UUID, webhook_id: uuid.UUID
) -> Webhook:
    result = await db.execute(
        select(Webhook)
        .where(Webhook.webhook_id == webhook_id, Webhook.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    webhook = result.scalar_one_or_none()
    if webhook is None:
        raise NotFoundError("Webhook not found")
    return webhook


async def list_webhooks(
    db: AsyncSession,
    user_id: uuid.UUID,
    is_active: bool | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Webhook], int, dict[str, int]]:
    """Page of webhooks plus ``{total, active, inactive}`` over all of the user's hooks."""
    conditions = [Webhook.user_id == user_id]
    if is_active is not None:
        conditions.append(Webhook.is_active.is_(is_active))

    result = await db.execute(
        select(Webhook)
        .where(*conditions)
        .execution_options(populate_existing=True)
        .order_by(Webhook.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_q = await db.execute(
        select(func.count(Webhook.webhook_id)).where(*conditions)
    )

    by_state = await db.execute(
        select(Webhook.is_active, func.count(Webhook.webhook_id))
        .where(Webhook.user_id == user_id)
        .group_by(Webhook.is_active)
    )
    counts = {bool(state): n for state, n in by_state.all()}
    stats = {
        "total": counts.get(True, 0) + counts.get(False, 0),
        "active": counts.get(True, 0),
        "inactive": counts.get(False, 0),
    }
    return list(result.scalars().all()), count_q.scalar() or 0, stats


async def update_webhook(
    db: AsyncSession,
    user_id: uuid.UUID,
    webhook_id: uuid.UUID,
    changes: dict[str, Any],
) -> Webhook:
    webhook = await get_webhook(db, user_id, webhook_id)

    if changes.get("url") is not None:
        webhook.url = str(changes["url"])
    if changes.get("events") is not None:
        webhook.events = normalise_events(changes["events"])
    if changes.get("headers") is not None:
        webhook.headers = changes["headers"]
    if "description" in changes:
        webhook.description = changes["description"]
    if changes.get("is_active") is not None:
        webhook.is_active = changes["is_active"]

    await db.commit()
    await db.refresh(webhook)
    return webhook


async def delete_webhook(
    db: AsyncSession, user_id: uuid.UUID, webhook_id: uuid.UUID
) -> Webhook:
    webhook = await get_webhook(db, user_id, webhook_id)
    await db.execute(delete(Webhook).where(Webhook.webhook_id == webhook_id))
    await db.commit()
    return webhook
