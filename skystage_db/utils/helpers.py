# ==============================================================================
# HELPER UTILITIES
# ==============================================================================
# Identifier, timestamp and redaction helpers shared by adapters
# ==============================================================================

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import uuid4

_URL_PASSWORD = re.compile(r"(?P<prefix>[a-zA-Z0-9+]+://[^:/@]+:)(?P<secret>[^@]+)(?P<suffix>@)")


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach or convert to UTC.

    Naive datetimes are stored as UTC by every adapter, so they are
    tagged rather than shifted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (or pass through a datetime) as aware UTC.

    Returns None for None. Raises ValueError for unparseable strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    # fromisoformat rejects a trailing "Z" before 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def redact_url(url: Optional[str]) -> Optional[str]:
    """Mask the password component of a connection URL."""
    if not url:
        return url
    return _URL_PASSWORD.sub(r"\g<prefix>***\g<suffix>", url)
