from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

UPSTREAM_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
PREVIEW_CHARS = 500


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (upstream dates carry no offset)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def truncate(raw: Optional[str], limit: int = PREVIEW_CHARS) -> str:
    """Bounded preview of an upstream payload for logs and error messages."""
    if not raw:
        return ""
    if len(raw) <= limit:
        return raw
    return raw[:limit] + "..."


def format_upstream_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(UPSTREAM_DATE_FORMAT)
