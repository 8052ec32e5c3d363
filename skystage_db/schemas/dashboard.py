# ==============================================================================
# DASHBOARD SCHEMAS - Admin Aggregates
# ==============================================================================
# Read-only payloads assembled by the dashboard service
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from skystage_db.schemas.base import BaseSchema


class UserStats(BaseSchema):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    new_this_week: int = 0
    new_this_month: int = 0


class BookingStats(BaseSchema):
    total: int = 0
    pending: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)


class PopularFormation(BaseSchema):
    id: str
    name: str
    downloads: int = 0
    rating: Optional[float] = None


class FormationStats(BaseSchema):
    total: int = Field(0, description="Public formations")
    by_category: Dict[str, int] = Field(default_factory=dict)
    most_popular: List[PopularFormation] = Field(default_factory=list)


class ActivityItem(BaseSchema):
    event_type: str
    entity_type: str
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class DashboardStats(BaseSchema):
    """
    Admin dashboard aggregate.

    Each section is computed independently; a section that failed holds
    its empty value and is named in ``errors``.
    """

    totals: Dict[str, int] = Field(
        default_factory=dict,
        description="Row count per table",
    )
    users: UserStats = Field(default_factory=UserStats)
    bookings: BookingStats = Field(default_factory=BookingStats)
    formations: FormationStats = Field(default_factory=FormationStats)
    recent_activity: List[ActivityItem] = Field(default_factory=list)
    errors: List[str] = Field(
        default_factory=list,
        description="Sections that could not be computed",
    )
    generated_at: Optional[datetime] = None


class TableCounts(BaseSchema):
    """Per-table row counts and their sum."""

    tables: Dict[str, int] = Field(default_factory=dict)
    total: int = 0
