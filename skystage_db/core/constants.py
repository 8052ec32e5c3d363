# ==============================================================================
# APPLICATION CONSTANTS - Centralized Configuration Values
# ==============================================================================
# Immutable constants used throughout the data layer
# ==============================================================================

from __future__ import annotations

from typing import Final, FrozenSet, Tuple


# ==============================================================================
# DATABASE CONSTANTS
# ==============================================================================

class DatabaseConstants:
    """Table names and layer-managed columns."""

    # Table names
    USERS_TABLE: Final[str] = "users"
    USER_SESSIONS_TABLE: Final[str] = "user_sessions"
    ORGANIZATIONS_TABLE: Final[str] = "organizations"
    FORMATIONS_TABLE: Final[str] = "formations"
    FORMATION_CATEGORIES_TABLE: Final[str] = "formation_categories"
    FORMATION_TAGS_TABLE: Final[str] = "formation_tags"
    SHOWS_TABLE: Final[str] = "shows"
    BOOKINGS_TABLE: Final[str] = "bookings"
    SYNC_JOBS_TABLE: Final[str] = "sync_jobs"
    ANALYTICS_EVENTS_TABLE: Final[str] = "analytics_events"
    MIGRATIONS_TABLE: Final[str] = "schema_migrations"

    # Columns the layer assigns; callers never set them
    ID_COLUMN: Final[str] = "id"
    CREATED_AT_COLUMN: Final[str] = "created_at"
    UPDATED_AT_COLUMN: Final[str] = "updated_at"
    MANAGED_COLUMNS: Final[FrozenSet[str]] = frozenset(
        {"id", "created_at", "updated_at"}
    )

    # Tables counted by the dashboard totals
    COUNTED_TABLES: Final[Tuple[str, ...]] = (
        "users",
        "organizations",
        "formations",
        "shows",
        "bookings",
        "sync_jobs",
    )

    # Query limits
    DEFAULT_QUERY_LIMIT: Final[int] = 100
    SUPABASE_DEFAULT_RANGE: Final[int] = 1000


# ==============================================================================
# BACKEND ERROR CODES
# ==============================================================================

class PostgresErrorCodes:
    """SQLSTATE / PostgREST codes translated at the adapter boundary."""

    UNIQUE_VIOLATION: Final[str] = "23505"
    NOT_NULL_VIOLATION: Final[str] = "23502"
    FOREIGN_KEY_VIOLATION: Final[str] = "23503"
    UNDEFINED_TABLE: Final[str] = "42P01"
    POSTGREST_NO_ROWS: Final[str] = "PGRST116"
    POSTGREST_UNKNOWN_TABLE: Final[str] = "PGRST205"

    CONSTRAINT_CODES: Final[FrozenSet[str]] = frozenset(
        {"23505", "23502", "23503"}
    )
    MISSING_TABLE_CODES: Final[FrozenSet[str]] = frozenset(
        {"42P01", "PGRST205"}
    )
    UNKNOWN_COLUMN_CODES: Final[FrozenSet[str]] = frozenset(
        {"42703", "PGRST204"}
    )


# ==============================================================================
# HEALTH CONSTANTS
# ==============================================================================

class HealthStatus:
    """Values of the ``status`` field in the health contract."""

    HEALTHY: Final[str] = "healthy"
    DEGRADED: Final[str] = "degraded"
    UNHEALTHY: Final[str] = "unhealthy"
    NOT_INITIALIZED: Final[str] = "not_initialized"
    ERROR: Final[str] = "error"
