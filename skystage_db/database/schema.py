# ==============================================================================
# TABLE DEFINITIONS - SkyStage Relational Schema
# ==============================================================================
# Declarative TableSchema for every table the repositories use.
# Applied by the initial migration on SQL providers; the Supabase adapter
# reads it to know which tables carry an updated_at column.
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional

from skystage_db.core.constants import DatabaseConstants as T
from skystage_db.database.types import (
    ColumnDefinition,
    ColumnType,
    ForeignKeyDefinition,
    IndexDefinition,
    TableSchema,
)


def _col(
    name: str,
    type_: ColumnType,
    length: Optional[int] = None,
    nullable: bool = True,
    default: Any = None,
    unique: bool = False,
) -> ColumnDefinition:
    return ColumnDefinition(
        name=name,
        type=type_,
        length=length,
        nullable=nullable,
        default=default,
        unique=unique,
    )


def _id() -> ColumnDefinition:
    return ColumnDefinition(name="id", type=ColumnType.UUID, nullable=False, primary_key=True)


def _timestamps(updated: bool = True) -> List[ColumnDefinition]:
    columns = [_col("created_at", ColumnType.DATETIME, nullable=False)]
    if updated:
        columns.append(_col("updated_at", ColumnType.DATETIME, nullable=False))
    return columns


def _fk(column: str, table: str, on_delete: str) -> ForeignKeyDefinition:
    return ForeignKeyDefinition(columns=[column], referenced_table=table, on_delete=on_delete)


S, TXT, INT, DEC = ColumnType.STRING, ColumnType.TEXT, ColumnType.INTEGER, ColumnType.DECIMAL
BOOL, DT, JSON, UUID = ColumnType.BOOLEAN, ColumnType.DATETIME, ColumnType.JSON, ColumnType.UUID


# ==============================================================================
# USERS & SESSIONS
# ==============================================================================

USERS = TableSchema(
    columns=[
        _id(),
        _col("email", S, 255, nullable=False, unique=True),
        _col("password_hash", S, 255, nullable=False),
        _col("full_name", S, 255),
        _col("user_type", S, 50, nullable=False, default="customer"),
        _col("company_name", S, 255),
        _col("phone", S, 50),
        _col("location", S, 255),
        _col("avatar_url", S, 500),
        _col("is_verified", BOOL, nullable=False, default=False),
        _col("is_active", BOOL, nullable=False, default=True),
        _col("last_login", DT),
        _col("preferences", JSON),
        *_timestamps(),
    ],
    indexes=[
        IndexDefinition("idx_users_user_type", ["user_type"]),
        IndexDefinition("idx_users_is_active", ["is_active"]),
    ],
)

USER_SESSIONS = TableSchema(
    columns=[
        _id(),
        _col("user_id", UUID, nullable=False),
        _col("session_token", S, 500, nullable=False, unique=True),
        _col("ip_address", S, 45),
        _col("user_agent", TXT),
        _col("expires_at", DT, nullable=False),
        _col("last_activity", DT),
        *_timestamps(updated=False),
    ],
    indexes=[
        IndexDefinition("idx_user_sessions_user_id", ["user_id"]),
        IndexDefinition("idx_user_sessions_expires_at", ["expires_at"]),
    ],
    foreign_keys=[_fk("user_id", T.USERS_TABLE, "CASCADE")],
)


# ==============================================================================
# ORGANIZATIONS
# ==============================================================================

ORGANIZATIONS = TableSchema(
    columns=[
        _id(),
        _col("name", S, 255, nullable=False),
        _col("slug", S, 255, nullable=False, unique=True),
        _col("description", TXT),
        _col("logo_url", S, 500),
        _col("website", S, 500),
        _col("email", S, 255),
        _col("phone", S, 50),
        _col("address", S, 500),
        _col("city", S, 100),
        _col("state", S, 100),
        _col("country", S, 100),
        _col("owner_id", UUID, nullable=False),
        _col("subscription_plan", S, 50, nullable=False, default="free"),
        _col("subscription_status", S, 50, nullable=False, default="active"),
        _col("member_count", INT, default=0),
        _col("settings", JSON),
        *_timestamps(),
    ],
    indexes=[
        IndexDefinition("idx_organizations_owner_id", ["owner_id"]),
        IndexDefinition("idx_organizations_subscription_plan", ["subscription_plan"]),
    ],
    foreign_keys=[_fk("owner_id", T.USERS_TABLE, "CASCADE")],
)


# ==============================================================================
# FORMATION CATALOG
# ==============================================================================

FORMATION_CATEGORIES = TableSchema(
    columns=[
        _id(),
        _col("name", S, 100, nullable=False),
        _col("slug", S, 100, nullable=False, unique=True),
        _col("description", TXT),
        _col("icon", S, 100),
        _col("color", S, 20),
        _col("formation_count", INT, default=0),
        _col("is_active", BOOL, nullable=False, default=True),
        _col("sort_order", INT, default=0),
        *_timestamps(),
    ],
    indexes=[IndexDefinition("idx_formation_categories_sort_order", ["sort_order"])],
)

FORMATION_TAGS = TableSchema(
    columns=[
        _id(),
        _col("name", S, 100, nullable=False),
        _col("slug", S, 100, nullable=False, unique=True),
        _col("color", S, 20),
        _col("usage_count", INT, default=0),
        *_timestamps(),
    ],
    indexes=[IndexDefinition("idx_formation_tags_usage_count", ["usage_count"])],
)

FORMATIONS = TableSchema(
    columns=[
        _id(),
        _col("name", S, 255, nullable=False),
        _col("description", TXT),
        _col("category", S, 100, nullable=False),
        _col("thumbnail_url", S, 500),
        _col("file_url", S, 500),
        _col("drone_count", INT, nullable=False),
        _col("duration", DEC, nullable=False),
        _col("price", DEC, default=0),
        _col("created_by", UUID, nullable=False),
        _col("is_public", BOOL, nullable=False, default=True),
        _col("tags", TXT),
        _col("formation_data", JSON),
        _col("metadata", JSON),
        _col("source", S, 50),
        _col("source_id", S, 255),
        _col("sync_status", S, 50),
        _col("last_synced", DT),
        _col("download_count", INT, default=0),
        _col("rating", DEC),
        *_timestamps(),
    ],
    indexes=[
        IndexDefinition("idx_formations_category", ["category"]),
        IndexDefinition("idx_formations_created_by", ["created_by"]),
        IndexDefinition("idx_formations_is_public", ["is_public"]),
        IndexDefinition("idx_formations_source", ["source"]),
        IndexDefinition("idx_formations_drone_count", ["drone_count"]),
        IndexDefinition("idx_formations_rating", ["rating"]),
    ],
    foreign_keys=[_fk("created_by", T.USERS_TABLE, "CASCADE")],
)


# ==============================================================================
# SHOWS & BOOKINGS
# ==============================================================================

SHOWS = TableSchema(
    columns=[
        _id(),
        _col("title", S, 255, nullable=False),
        _col("description", TXT),
        _col("status", S, 50, nullable=False, default="draft"),
        _col("event_date", DT, nullable=False),
        _col("duration", INT, nullable=False),
        _col("location_name", S, 255),
        _col("location_address", TXT),
        _col("location_coordinates", JSON),
        _col("client_id", UUID),
        _col("organization_id", UUID),
        _col("total_drones", INT, nullable=False),
        _col("estimated_cost", DEC),
        _col("actual_cost", DEC),
        _col("formations", JSON),
        _col("crew", JSON),
        _col("equipment", JSON),
        _col("safety_clearance", BOOL, nullable=False, default=False),
        _col("weather_requirements", TXT),
        _col("special_requirements", TXT),
        _col("created_by", UUID, nullable=False),
        *_timestamps(),
    ],
    indexes=[
        IndexDefinition("idx_shows_status", ["status"]),
        IndexDefinition("idx_shows_event_date", ["event_date"]),
        IndexDefinition("idx_shows_client_id", ["client_id"]),
        IndexDefinition("idx_shows_organization_id", ["organization_id"]),
        IndexDefinition("idx_shows_created_by", ["created_by"]),
    ],
    foreign_keys=[
        _fk("client_id", T.USERS_TABLE, "SET NULL"),
        _fk("organization_id", T.ORGANIZATIONS_TABLE, "SET NULL"),
        _fk("created_by", T.USERS_TABLE, "CASCADE"),
    ],
)

BOOKINGS = TableSchema(
    columns=[
        _id(),
        _col("user_id", UUID, nullable=False),
        _col("organization_id", UUID),
        _col("contact_name", S, 255, nullable=False),
        _col("contact_email", S, 255, nullable=False),
        _col("contact_phone", S, 50),
        _col("event_name", S, 255),
        _col("event_date", DT),
        _col("location", S, 500),
        _col("budget_range", S, 100),
        _col("message", TXT),
        _col("status", S, 50, nullable=False, default="pending"),
        _col("quoted_price", DEC),
        _col("requirements", JSON),
        *_timestamps(),
    ],
    indexes=[
        IndexDefinition("idx_bookings_user_id", ["user_id"]),
        IndexDefinition("idx_bookings_organization_id", ["organization_id"]),
        IndexDefinition("idx_bookings_status", ["status"]),
        IndexDefinition("idx_bookings_contact_email", ["contact_email"]),
    ],
    foreign_keys=[
        _fk("user_id", T.USERS_TABLE, "CASCADE"),
        _fk("organization_id", T.ORGANIZATIONS_TABLE, "SET NULL"),
    ],
)


# ==============================================================================
# JOBS & ANALYTICS
# ==============================================================================

SYNC_JOBS = TableSchema(
    columns=[
        _id(),
        _col("type", S, 100, nullable=False),
        _col("status", S, 50, nullable=False, default="pending"),
        _col("progress", INT, nullable=False, default=0),
        _col("total_items", INT, nullable=False, default=0),
        _col("processed_items", INT, nullable=False, default=0),
        _col("successful_items", INT, nullable=False, default=0),
        _col("failed_items", INT, nullable=False, default=0),
        _col("error_details", JSON),
        _col("metadata", JSON),
        _col("started_at", DT),
        _col("completed_at", DT),
        _col("created_by", UUID, nullable=False),
        *_timestamps(),
    ],
    indexes=[
        IndexDefinition("idx_sync_jobs_type", ["type"]),
        IndexDefinition("idx_sync_jobs_status", ["status"]),
        IndexDefinition("idx_sync_jobs_created_by", ["created_by"]),
        IndexDefinition("idx_sync_jobs_created_at", ["created_at"]),
    ],
    foreign_keys=[_fk("created_by", T.USERS_TABLE, "CASCADE")],
)

# entity_id is a free-form reference (email events carry none)
ANALYTICS_EVENTS = TableSchema(
    columns=[
        _id(),
        _col("event_type", S, 100, nullable=False),
        _col("entity_type", S, 100, nullable=False),
        _col("entity_id", S, 255),
        _col("user_id", UUID),
        _col("session_id", S, 255),
        _col("ip_address", S, 45),
        _col("user_agent", TXT),
        _col("metadata", JSON),
        *_timestamps(),
    ],
    indexes=[
        IndexDefinition("idx_analytics_events_type", ["event_type"]),
        IndexDefinition("idx_analytics_events_entity_type", ["entity_type"]),
        IndexDefinition("idx_analytics_events_user_id", ["user_id"]),
        IndexDefinition("idx_analytics_events_created_at", ["created_at"]),
    ],
    foreign_keys=[_fk("user_id", T.USERS_TABLE, "SET NULL")],
)


# ==============================================================================
# REGISTRY
# ==============================================================================

# Creation order respects foreign keys
TABLES: Dict[str, TableSchema] = {
    T.USERS_TABLE: USERS,
    T.ORGANIZATIONS_TABLE: ORGANIZATIONS,
    T.FORMATION_CATEGORIES_TABLE: FORMATION_CATEGORIES,
    T.FORMATION_TAGS_TABLE: FORMATION_TAGS,
    T.FORMATIONS_TABLE: FORMATIONS,
    T.SHOWS_TABLE: SHOWS,
    T.BOOKINGS_TABLE: BOOKINGS,
    T.SYNC_JOBS_TABLE: SYNC_JOBS,
    T.USER_SESSIONS_TABLE: USER_SESSIONS,
    T.ANALYTICS_EVENTS_TABLE: ANALYTICS_EVENTS,
}

DROP_ORDER: List[str] = list(reversed(list(TABLES)))


def get_table_schema(name: str) -> Optional[TableSchema]:
    return TABLES.get(name)


def table_has_updated_at(name: str) -> bool:
    """Known tables answer from their definition; unknown ones assume yes."""
    schema = TABLES.get(name)
    if schema is None:
        return True
    return schema.has_column(T.UPDATED_AT_COLUMN)
