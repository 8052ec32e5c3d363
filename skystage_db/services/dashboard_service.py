# ==============================================================================
# DASHBOARD SERVICE - Admin Aggregates
# ==============================================================================
# Read-only statistics assembled from the repositories. Each section is
# computed on its own so one failing query does not blank the dashboard.
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Awaitable, Dict, List, Optional

from skystage_db.core.constants import DatabaseConstants
from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.context import get_database
from skystage_db.database.repositories import (
    AnalyticsEventRepository,
    BookingRepository,
    FormationRepository,
    UserRepository,
)
from skystage_db.database.types import QueryOptions
from skystage_db.schemas.booking import BookingStatus
from skystage_db.schemas.dashboard import (
    ActivityItem,
    BookingStats,
    DashboardStats,
    FormationStats,
    PopularFormation,
    TableCounts,
    UserStats,
)
from skystage_db.utils.helpers import ensure_utc, utc_now

logger = logging.getLogger(__name__)

MOST_POPULAR_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 10


class DashboardService:
    """
    Admin dashboard statistics.

    Grouping happens in application code over projected rows, since the
    query options have no aggregation. On Supabase a listing without a
    limit is capped at the PostgREST default range.

    Example:
        >>> stats = await DashboardService().get_dashboard_stats()
        >>> stats.totals["users"]
        42
    """

    def __init__(self, adapter: Optional[BaseDatabaseAdapter] = None) -> None:
        self._adapter = adapter
        self._users = UserRepository(adapter)
        self._bookings = BookingRepository(adapter)
        self._formations = FormationRepository(adapter)
        self._events = AnalyticsEventRepository(adapter)

    @property
    def adapter(self) -> BaseDatabaseAdapter:
        return self._adapter if self._adapter is not None else get_database()

    # ==========================================================================
    # PUBLIC API
    # ==========================================================================

    async def get_dashboard_stats(self, now: Optional[datetime] = None) -> DashboardStats:
        """
        Gather every dashboard section concurrently.

        A section that raises is logged, left at its empty value and named
        in ``errors``.
        """
        moment = ensure_utc(now or utc_now())
        sections: Dict[str, Awaitable[Any]] = {
            "totals": self._totals(),
            "users": self._user_stats(moment),
            "bookings": self._booking_stats(),
            "formations": self._formation_stats(),
            "recent_activity": self._recent_activity(),
        }
        results = await asyncio.gather(*sections.values(), return_exceptions=True)

        stats = DashboardStats(generated_at=moment)
        for name, result in zip(sections, results):
            if isinstance(result, Exception):
                logger.warning(f"Dashboard section '{name}' failed: {result!r}")
                stats.errors.append(name)
                continue
            if isinstance(result, BaseException):
                raise result
            setattr(stats, name, result)
        return stats

    async def get_table_counts(self) -> TableCounts:
        """Row count of each counted table, plus their sum."""
        counts = await self._totals()
        return TableCounts(tables=counts, total=sum(counts.values()))

    # ==========================================================================
    # SECTIONS
    # ==========================================================================

    async def _totals(self) -> Dict[str, int]:
        adapter = self.adapter
        tables = DatabaseConstants.COUNTED_TABLES
        counts = await asyncio.gather(*(adapter.count(table) for table in tables))
        return dict(zip(tables, counts))

    async def _user_stats(self, now: datetime) -> UserStats:
        rows = await self._users.find_all(QueryOptions(select=["user_type", "created_at"]))
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)
        created = [ensure_utc(row["created_at"]) for row in rows if row.get("created_at")]
        return UserStats(
            total=len(rows),
            by_type=dict(Counter(row["user_type"] for row in rows)),
            new_this_week=sum(1 for value in created if value >= week_ago),
            new_this_month=sum(1 for value in created if value >= month_ago),
        )

    async def _booking_stats(self) -> BookingStats:
        rows = await self._bookings.find_all(QueryOptions(select=["status"]))
        by_status = dict(Counter(row["status"] for row in rows))
        return BookingStats(
            total=len(rows),
            pending=by_status.get(BookingStatus.PENDING.value, 0),
            by_status=by_status,
        )

    async def _formation_stats(self) -> FormationStats:
        rows = await self._formations.get_public(
            QueryOptions(select=["id", "name", "category", "download_count", "rating"])
        )
        ranked = sorted(
            rows,
            key=lambda row: (row.get("download_count") or 0, row.get("rating") or 0),
            reverse=True,
        )
        return FormationStats(
            total=len(rows),
            by_category=dict(Counter(row["category"] for row in rows)),
            most_popular=[
                PopularFormation(
                    id=row["id"],
                    name=row["name"],
                    downloads=row.get("download_count") or 0,
                    rating=row.get("rating"),
                )
                for row in ranked[:MOST_POPULAR_LIMIT]
            ],
        )

    async def _recent_activity(self) -> List[ActivityItem]:
        events = await self._events.get_recent(RECENT_ACTIVITY_LIMIT)
        return [
            ActivityItem(
                event_type=event.event_type,
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                user_id=event.user_id,
                created_at=event.created_at,
            )
            for event in events
        ]
