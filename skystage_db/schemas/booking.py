# ==============================================================================
# BOOKING SCHEMAS - Show Enquiries & Quotes
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import EmailStr, Field

from skystage_db.schemas.base import EntitySchema, WriteSchema


class BookingStatus(str, Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Booking(EntitySchema):
    """Stored booking request."""

    user_id: str
    organization_id: Optional[str] = None
    contact_name: str
    contact_email: str
    contact_phone: Optional[str] = None
    event_name: Optional[str] = None
    event_date: Optional[datetime] = None
    location: Optional[str] = None
    budget_range: Optional[str] = None
    message: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    quoted_price: Optional[float] = None
    requirements: Optional[Any] = None


class BookingCreate(WriteSchema):
    """Schema for a customer enquiry."""

    user_id: str = Field(..., description="Requesting user id")
    organization_id: Optional[str] = None
    contact_name: str = Field(..., min_length=1, max_length=255)
    contact_email: EmailStr = Field(
        ...,
        description="Where the quote is sent",
        examples=["events@example.com"],
    )
    contact_phone: Optional[str] = Field(None, max_length=50)
    event_name: Optional[str] = Field(None, max_length=255)
    event_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=500)
    budget_range: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    quoted_price: Optional[float] = Field(None, ge=0)
    requirements: Optional[Any] = None


class BookingUpdate(WriteSchema):
    organization_id: Optional[str] = None
    contact_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    event_name: Optional[str] = Field(None, max_length=255)
    event_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=500)
    budget_range: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = None
    status: Optional[BookingStatus] = None
    quoted_price: Optional[float] = Field(None, ge=0)
    requirements: Optional[Any] = None
