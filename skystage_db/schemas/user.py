# ==============================================================================
# USER SCHEMAS - Accounts & Sessions
# ==============================================================================
# Entity, create and update shapes for users and their sessions
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import EmailStr, Field, field_validator

from skystage_db.schemas.base import BaseSchema, EntitySchema, WriteSchema


class UserType(str, Enum):
    """Account role."""
    CUSTOMER = "customer"
    OPERATOR = "operator"
    ARTIST = "artist"
    ADMIN = "admin"


# Columns safe to hand to listings and admin screens
USER_SUMMARY_FIELDS = [
    "id",
    "email",
    "full_name",
    "user_type",
    "company_name",
    "location",
    "is_verified",
    "is_active",
    "created_at",
]


class User(EntitySchema):
    """Stored user, including the password hash."""

    email: str = Field(
        ...,
        description="Unique login email",
    )
    password_hash: str = Field(
        ...,
        description="Hash produced by the auth layer",
    )
    full_name: Optional[str] = None
    user_type: UserType = UserType.CUSTOMER
    company_name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: bool = False
    is_active: bool = True
    last_login: Optional[datetime] = None
    preferences: Optional[Dict[str, Any]] = None


class UserSummary(BaseSchema):
    """User without credentials, as returned by listings."""

    id: str
    email: str
    full_name: Optional[str] = None
    user_type: UserType = UserType.CUSTOMER
    company_name: Optional[str] = None
    location: Optional[str] = None
    is_verified: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None


class UserCreate(WriteSchema):
    """Schema for creating a user record."""

    email: EmailStr = Field(
        ...,
        description="User email address",
        examples=["user@example.com"],
    )
    password_hash: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Already hashed password",
    )
    full_name: Optional[str] = Field(
        None,
        max_length=255,
        description="Full display name",
    )
    user_type: UserType = Field(
        UserType.CUSTOMER,
        description="Account role",
    )
    company_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=500)
    is_verified: bool = False
    is_active: bool = True
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails are stored lowercase so lookups are case-insensitive."""
        return v.lower()


class UserUpdate(WriteSchema):
    """Partial update of a user; only set fields are written."""

    email: Optional[EmailStr] = None
    password_hash: Optional[str] = Field(None, min_length=1, max_length=255)
    full_name: Optional[str] = Field(None, max_length=255)
    user_type: Optional[UserType] = None
    company_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=500)
    is_verified: Optional[bool] = None
    is_active: Optional[bool] = None
    last_login: Optional[datetime] = None
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


# ==============================================================================
# SESSIONS
# ==============================================================================

class UserSession(EntitySchema):
    """Login session; sessions are never updated, only expired."""

    user_id: str
    session_token: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    expires_at: datetime
    last_activity: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class UserSessionCreate(WriteSchema):
    user_id: str
    session_token: str = Field(..., min_length=1, max_length=500)
    ip_address: Optional[str] = Field(None, max_length=45)
    user_agent: Optional[str] = None
    expires_at: datetime
    last_activity: Optional[datetime] = None


class UserSessionUpdate(WriteSchema):
    last_activity: Optional[datetime] = None
    expires_at: Optional[datetime] = None
