# ==============================================================================
# UTILS PACKAGE
# ==============================================================================

from skystage_db.utils.helpers import (
    ensure_utc,
    generate_uuid,
    parse_datetime,
    redact_url,
    utc_now,
)

__all__ = [
    "ensure_utc",
    "generate_uuid",
    "parse_datetime",
    "redact_url",
    "utc_now",
]
