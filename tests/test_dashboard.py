# ==============================================================================
# DASHBOARD SERVICE TESTS
# ==============================================================================
# Aggregates over seeded data and isolation of failing sections
# ==============================================================================

from datetime import timedelta

import pytest

from skystage_db.core.exceptions import QueryError
from skystage_db.database.adapters.sqlite_adapter import SQLiteAdapter
from skystage_db.database.repositories import (
    AnalyticsEventRepository,
    BookingRepository,
    FormationRepository,
)
from skystage_db.schemas.analytics import EventType
from skystage_db.services.dashboard_service import DashboardService
from skystage_db.utils.helpers import utc_now


async def seed(adapter: SQLiteAdapter, make_user) -> None:
    customer = await make_user()
    await make_user()
    operator = await make_user(user_type="operator")

    formations = FormationRepository(adapter)
    for index in range(7):
        await formations.create({
            "name": f"Formation {index}",
            "category": "abstract" if index % 2 else "nature",
            "drone_count": 50 + index,
            "duration": 30,
            "created_by": operator["id"],
            "download_count": index,
            "rating": 4.0,
        })
    await formations.create({
        "name": "Private",
        "category": "abstract",
        "drone_count": 10,
        "duration": 5,
        "created_by": operator["id"],
        "is_public": False,
        "download_count": 100,
    })

    bookings = BookingRepository(adapter)
    first = await bookings.create(
        {"user_id": customer["id"], "contact_name": "C", "contact_email": "c@example.com"}
    )
    await bookings.create(
        {"user_id": customer["id"], "contact_name": "C", "contact_email": "c@example.com"}
    )
    await bookings.update_status(first.id, "confirmed")

    events = AnalyticsEventRepository(adapter)
    await events.record_event(EventType.USER_LOGIN, "user", user_id=customer["id"])
    await events.record_email_subscription("fan@example.com")


class TestDashboardStats:
    """Tests for get_dashboard_stats."""

    @pytest.mark.asyncio
    async def test_aggregates(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test every section over a seeded database."""
        await seed(sqlite_adapter, make_user)

        stats = await DashboardService(sqlite_adapter).get_dashboard_stats()

        assert stats.errors == []
        assert stats.totals == {
            "users": 3,
            "organizations": 0,
            "formations": 8,
            "shows": 0,
            "bookings": 2,
            "sync_jobs": 0,
        }
        assert stats.users.total == 3
        assert stats.users.by_type == {"customer": 2, "operator": 1}
        assert stats.users.new_this_week == 3
        assert stats.bookings.total == 2
        assert stats.bookings.pending == 1
        assert stats.bookings.by_status == {"pending": 1, "confirmed": 1}
        assert stats.formations.total == 7
        assert stats.formations.by_category == {"nature": 4, "abstract": 3}
        assert [f.name for f in stats.formations.most_popular] == [
            "Formation 6", "Formation 5", "Formation 4", "Formation 3", "Formation 2",
        ]
        assert len(stats.recent_activity) == 2
        assert {item.event_type for item in stats.recent_activity} == {
            EventType.USER_LOGIN, EventType.EMAIL_SUBSCRIBED,
        }
        assert stats.generated_at is not None

    @pytest.mark.asyncio
    async def test_new_user_windows(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test the week and month windows are relative to ``now``."""
        await make_user()

        stats = await DashboardService(sqlite_adapter).get_dashboard_stats(
            now=utc_now() + timedelta(days=10)
        )

        assert stats.users.new_this_week == 0
        assert stats.users.new_this_month == 1

    @pytest.mark.asyncio
    async def test_empty_database(self, sqlite_adapter: SQLiteAdapter):
        """Test a fresh schema yields zeroed sections."""
        stats = await DashboardService(sqlite_adapter).get_dashboard_stats()

        assert stats.errors == []
        assert sum(stats.totals.values()) == 0
        assert stats.formations.most_popular == []
        assert stats.recent_activity == []

    @pytest.mark.asyncio
    async def test_failed_section_is_isolated(
        self, sqlite_adapter: SQLiteAdapter, make_user, monkeypatch
    ):
        """Test one failing query leaves the other sections intact."""
        await make_user()
        service = DashboardService(sqlite_adapter)

        async def broken(limit=10):
            raise QueryError(message="analytics_events unavailable")

        monkeypatch.setattr(service._events, "get_recent", broken)

        stats = await service.get_dashboard_stats()

        assert stats.errors == ["recent_activity"]
        assert stats.recent_activity == []
        assert stats.users.total == 1
        assert stats.totals["users"] == 1

    @pytest.mark.asyncio
    async def test_missing_table_marks_section(self, sqlite_adapter: SQLiteAdapter):
        """Test a dropped table fails only the sections that read it."""
        await sqlite_adapter.drop_table("bookings")

        stats = await DashboardService(sqlite_adapter).get_dashboard_stats()

        assert set(stats.errors) == {"totals", "bookings"}
        assert stats.formations.total == 0


class TestTableCounts:
    """Tests for get_table_counts."""

    @pytest.mark.asyncio
    async def test_counts_and_total(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test per-table counts and their sum."""
        await seed(sqlite_adapter, make_user)

        counts = await DashboardService(sqlite_adapter).get_table_counts()

        assert counts.tables["formations"] == 8
        assert counts.total == 3 + 8 + 2
