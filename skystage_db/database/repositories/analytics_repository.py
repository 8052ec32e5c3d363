# ==============================================================================
# ANALYTICS REPOSITORY - Append-Only Event Log
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, List, NoReturn, Optional, Sequence, Tuple

from skystage_db.core.constants import DatabaseConstants
from skystage_db.core.exceptions import UnsupportedOperationError
from skystage_db.database.repositories.base_repository import BaseRepository, WriteInput
from skystage_db.database.types import OrderBy, QueryOptions
from skystage_db.schemas.analytics import (
    AnalyticsEvent,
    AnalyticsEventCreate,
    AnalyticsEventUpdate,
    EventType,
)


class AnalyticsEventRepository(
    BaseRepository[AnalyticsEvent, AnalyticsEventCreate, AnalyticsEventUpdate]
):
    """
    Events are recorded and read, never changed.

    ``update``, ``delete`` and their bulk forms raise
    ``UnsupportedOperationError``.
    """

    table_name = DatabaseConstants.ANALYTICS_EVENTS_TABLE
    entity_schema = AnalyticsEvent
    create_schema = AnalyticsEventCreate
    update_schema = AnalyticsEventUpdate
    default_order = (OrderBy.desc("created_at"),)

    def _append_only(self, operation: str) -> NoReturn:
        raise UnsupportedOperationError(
            message="Analytics events are append-only",
            operation=operation,
        )

    async def update(self, id: str, data: WriteInput) -> AnalyticsEvent:
        self._append_only("update")

    async def delete(self, id: str) -> bool:
        self._append_only("delete")

    async def bulk_update(self, updates: Sequence[Tuple[str, WriteInput]]) -> List[AnalyticsEvent]:
        self._append_only("bulk_update")

    async def bulk_delete(self, ids: Sequence[str]) -> int:
        self._append_only("bulk_delete")

    # ==========================================================================
    # RECORDING
    # ==========================================================================

    async def record_event(
        self,
        event_type: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **context: Any,
    ) -> AnalyticsEvent:
        """
        Append one event.

        ``context`` carries the optional request fields
        (``session_id``, ``ip_address``, ``user_agent``).
        """
        return await self.create(
            {
                "event_type": event_type,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "user_id": user_id,
                "metadata": metadata,
                **context,
            }
        )

    async def record_email_subscription(
        self,
        email: str,
        subscription_type: str = "newsletter",
    ) -> AnalyticsEvent:
        return await self.record_event(
            EventType.EMAIL_SUBSCRIBED,
            "email",
            metadata={"email": email, "subscription_type": subscription_type},
        )

    async def record_email_unsubscription(self, email: str) -> AnalyticsEvent:
        return await self.record_event(
            EventType.EMAIL_UNSUBSCRIBED,
            "email",
            metadata={"email": email},
        )

    async def get_email_subscriptions(self) -> List[AnalyticsEvent]:
        """
        Active subscriptions, in the order they were last subscribed.

        Replays the email events; an address counts when its latest event
        is a subscription, and that event is returned.
        """
        events = await self.find_by(
            {"entity_type": "email"},
            QueryOptions(order_by=[OrderBy.asc("created_at")]),
        )
        latest: Dict[str, AnalyticsEvent] = {}
        for event in events:
            email = (event.metadata or {}).get("email")
            if email:
                latest.pop(email, None)
                latest[email] = event
        return [
            event for event in latest.values()
            if event.event_type == EventType.EMAIL_SUBSCRIBED
        ]

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    async def get_by_event_type(
        self,
        event_type: str,
        options: Optional[QueryOptions] = None,
    ) -> List[AnalyticsEvent]:
        return await self.find_by({"event_type": event_type}, options)

    async def get_by_user(
        self,
        user_id: str,
        options: Optional[QueryOptions] = None,
    ) -> List[AnalyticsEvent]:
        return await self.find_by({"user_id": user_id}, options)

    async def get_recent(self, limit: int = 10) -> List[AnalyticsEvent]:
        return await self.find_all(
            QueryOptions(limit=limit, order_by=[OrderBy.desc("created_at")])
        )
