# ==============================================================================
# ANALYTICS SCHEMAS - Append-Only Event Log
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from skystage_db.schemas.base import EntitySchema, WriteSchema


class EventType:
    """Event names recorded by the application."""
    EMAIL_SUBSCRIBED = "email_subscribed"
    EMAIL_UNSUBSCRIBED = "email_unsubscribed"
    FORMATION_VIEW = "formation_view"
    FORMATION_DOWNLOAD = "formation_download"
    USER_LOGIN = "user_login"


class AnalyticsEvent(EntitySchema):
    event_type: str
    entity_type: str
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class AnalyticsEventCreate(WriteSchema):
    """Schema for recording one event."""

    event_type: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="What happened",
        examples=["formation_view"],
    )
    entity_type: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Kind of entity the event is about",
    )
    entity_id: Optional[str] = Field(None, max_length=255)
    user_id: Optional[str] = None
    session_id: Optional[str] = Field(None, max_length=255)
    ip_address: Optional[str] = Field(None, max_length=45)
    user_agent: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class AnalyticsEventUpdate(WriteSchema):
    """Events are immutable; present only to complete the repository typing."""
