"""
Helpers shared by the endpoint modules.
"""

import uuid as _uuid
from datetime import datetime

from pydantic import BaseModel

from osintdesk.core.errors import ValidationError


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


def paginate(total: int, limit: int, offset: int) -> Pagination:
    return Pagination(
        total=total, limit=limit, offset=offset, has_more=offset + limit < total
    )


def parse_uuid(value: str, field: str = "id") -> _uuid.UUID:
    """Parse a path or query identifier, rejecting malformed ones with a 400."""
    try:
        return _uuid.UUID(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Invalid {field} format", details=[f"{field}: must be a valid UUID"]
        )


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
