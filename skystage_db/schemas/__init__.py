# ==============================================================================
# SCHEMAS PACKAGE INITIALIZATION
# ==============================================================================

"""
Pydantic Schemas
================

Entity, create and update shapes for every table:
- Base: Common configuration, API and health payloads
- User: Accounts and sessions
- Formation: Catalog, categories and tags
- Organization, Show, Booking, SyncJob, Analytics
- Dashboard: Admin aggregates
"""

from skystage_db.schemas.analytics import (
    AnalyticsEvent,
    AnalyticsEventCreate,
    AnalyticsEventUpdate,
    EventType,
)
from skystage_db.schemas.base import (
    APIResponse,
    BaseSchema,
    DatabaseHealth,
    EntitySchema,
    HealthResponse,
    TimestampSchema,
    WriteSchema,
)
from skystage_db.schemas.booking import (
    Booking,
    BookingCreate,
    BookingStatus,
    BookingUpdate,
)
from skystage_db.schemas.dashboard import (
    DashboardStats,
    TableCounts,
)
from skystage_db.schemas.formation import (
    Formation,
    FormationCategory,
    FormationCategoryCreate,
    FormationCategoryUpdate,
    FormationCreate,
    FormationSource,
    FormationTag,
    FormationTagCreate,
    FormationTagUpdate,
    FormationUpdate,
    SyncStatus,
)
from skystage_db.schemas.organization import (
    Organization,
    OrganizationCreate,
    OrganizationUpdate,
    SubscriptionPlan,
    SubscriptionStatus,
)
from skystage_db.schemas.show import Show, ShowCreate, ShowStatus, ShowUpdate
from skystage_db.schemas.sync_job import (
    SyncJob,
    SyncJobCreate,
    SyncJobStatus,
    SyncJobType,
    SyncJobUpdate,
)
from skystage_db.schemas.user import (
    User,
    UserCreate,
    UserSession,
    UserSessionCreate,
    UserSessionUpdate,
    UserSummary,
    UserType,
    UserUpdate,
)

__all__ = [
    # Base
    "APIResponse",
    "BaseSchema",
    "DatabaseHealth",
    "EntitySchema",
    "HealthResponse",
    "TimestampSchema",
    "WriteSchema",
    # Users
    "User",
    "UserCreate",
    "UserSession",
    "UserSessionCreate",
    "UserSessionUpdate",
    "UserSummary",
    "UserType",
    "UserUpdate",
    # Formations
    "Formation",
    "FormationCategory",
    "FormationCategoryCreate",
    "FormationCategoryUpdate",
    "FormationCreate",
    "FormationSource",
    "FormationTag",
    "FormationTagCreate",
    "FormationTagUpdate",
    "FormationUpdate",
    "SyncStatus",
    # Organizations
    "Organization",
    "OrganizationCreate",
    "OrganizationUpdate",
    "SubscriptionPlan",
    "SubscriptionStatus",
    # Shows & bookings
    "Show",
    "ShowCreate",
    "ShowStatus",
    "ShowUpdate",
    "Booking",
    "BookingCreate",
    "BookingStatus",
    "BookingUpdate",
    # Jobs & analytics
    "SyncJob",
    "SyncJobCreate",
    "SyncJobStatus",
    "SyncJobType",
    "SyncJobUpdate",
    "AnalyticsEvent",
    "AnalyticsEventCreate",
    "AnalyticsEventUpdate",
    "EventType",
    # Dashboard
    "DashboardStats",
    "TableCounts",
]
