# ==============================================================================
# SHOW SCHEMAS - Scheduled Drone Shows
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from skystage_db.schemas.base import EntitySchema, WriteSchema


class ShowStatus(str, Enum):
    """Show lifecycle; transitions are not enforced by the data layer."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Show(EntitySchema):
    """Stored show."""

    title: str
    description: Optional[str] = None
    status: ShowStatus = ShowStatus.DRAFT
    event_date: datetime
    duration: int = Field(..., description="Duration in minutes")
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    location_coordinates: Optional[Any] = None
    client_id: Optional[str] = None
    organization_id: Optional[str] = None
    total_drones: int
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None
    formations: Optional[Any] = None
    crew: Optional[Any] = None
    equipment: Optional[Any] = None
    safety_clearance: bool = False
    weather_requirements: Optional[str] = None
    special_requirements: Optional[str] = None
    created_by: str


class ShowCreate(WriteSchema):
    """Schema for planning a show."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: ShowStatus = ShowStatus.DRAFT
    event_date: datetime = Field(..., description="Scheduled start (UTC)")
    duration: int = Field(..., ge=1, description="Duration in minutes")
    location_name: Optional[str] = Field(None, max_length=255)
    location_address: Optional[str] = None
    location_coordinates: Optional[Any] = None
    client_id: Optional[str] = None
    organization_id: Optional[str] = None
    total_drones: int = Field(..., ge=1)
    estimated_cost: Optional[float] = Field(None, ge=0)
    actual_cost: Optional[float] = Field(None, ge=0)
    formations: Optional[Any] = None
    crew: Optional[Any] = None
    equipment: Optional[Any] = None
    safety_clearance: bool = False
    weather_requirements: Optional[str] = None
    special_requirements: Optional[str] = None
    created_by: str


class ShowUpdate(WriteSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ShowStatus] = None
    event_date: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=1)
    location_name: Optional[str] = Field(None, max_length=255)
    location_address: Optional[str] = None
    location_coordinates: Optional[Any] = None
    client_id: Optional[str] = None
    organization_id: Optional[str] = None
    total_drones: Optional[int] = Field(None, ge=1)
    estimated_cost: Optional[float] = Field(None, ge=0)
    actual_cost: Optional[float] = Field(None, ge=0)
    formations: Optional[Any] = None
    crew: Optional[Any] = None
    equipment: Optional[Any] = None
    safety_clearance: Optional[bool] = None
    weather_requirements: Optional[str] = None
    special_requirements: Optional[str] = None
