# ==============================================================================
# ORGANIZATION SCHEMAS - Tenants & Subscriptions
# ==============================================================================

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from skystage_db.schemas.base import EntitySchema, WriteSchema
from skystage_db.schemas.formation import SLUG_PATTERN


class SubscriptionPlan(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRIAL = "trial"
    EXPIRED = "expired"


class Organization(EntitySchema):
    """Stored organization (tenant)."""

    name: str
    slug: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    owner_id: str
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    member_count: int = 0
    settings: Optional[Dict[str, Any]] = None


class OrganizationCreate(WriteSchema):
    """Schema for registering an organization."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Organization display name",
    )
    slug: str = Field(
        ...,
        max_length=255,
        pattern=SLUG_PATTERN,
        description="Unique URL key (lowercase, dash separated)",
        examples=["skyworks-events"],
    )
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=500)
    website: Optional[str] = Field(None, max_length=500)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    owner_id: str = Field(..., description="Owning user id")
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    member_count: int = Field(0, ge=0)
    settings: Optional[Dict[str, Any]] = None


class OrganizationUpdate(WriteSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=500)
    website: Optional[str] = Field(None, max_length=500)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    owner_id: Optional[str] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_status: Optional[SubscriptionStatus] = None
    member_count: Optional[int] = Field(None, ge=0)
    settings: Optional[Dict[str, Any]] = None
