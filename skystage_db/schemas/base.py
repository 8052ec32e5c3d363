# ==============================================================================
# BASE SCHEMAS - Common Schema Patterns
# ==============================================================================
# Foundation schemas for entities, write payloads and API responses
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from skystage_db.utils.helpers import ensure_utc

# Type variable for generic response types
T = TypeVar("T")


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    Every datetime that passes through a schema comes out timezone-aware
    UTC, whatever the backend handed back.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def normalize_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value


class WriteSchema(BaseSchema):
    """Create/update payloads reject keys that are not columns."""

    model_config = ConfigDict(extra="forbid")


class TimestampSchema(BaseSchema):
    """Schema with layer-managed timestamp fields."""

    created_at: Optional[datetime] = Field(
        None,
        description="Record creation timestamp"
    )
    updated_at: Optional[datetime] = Field(
        None,
        description="Last update timestamp"
    )


class EntitySchema(TimestampSchema):
    """Stored record: layer-assigned id plus timestamps."""

    id: str = Field(
        ...,
        description="UUID4 primary key"
    )


class APIResponse(BaseModel, Generic[T]):
    """
    Standard API response wrapper.

    Attributes:
        success: Whether the request was successful
        message: Optional status message
        data: Response payload
        errors: Optional error details
    """

    success: bool = Field(
        True,
        description="Whether the request was successful"
    )
    message: Optional[str] = Field(
        None,
        description="Status message"
    )
    data: Optional[T] = Field(
        None,
        description="Response data"
    )
    errors: Optional[List[Dict[str, Any]]] = Field(
        None,
        description="Error details if any"
    )

    @classmethod
    def ok(
        cls,
        data: T,
        message: Optional[str] = None,
    ) -> "APIResponse[T]":
        """Create a successful response."""
        return cls(success=True, data=data, message=message)

    @classmethod
    def error(
        cls,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> "APIResponse[T]":
        """Create an error response."""
        return cls(success=False, message=message, errors=errors)


class DatabaseHealth(BaseSchema):
    """Health contract shared by the factory, the guard and the API."""

    status: str = Field(
        ...,
        description="healthy, degraded, unhealthy, not_initialized or error"
    )
    provider: Optional[str] = Field(
        None,
        description="Active provider name"
    )
    latency: Optional[float] = Field(
        None,
        description="Ping round-trip in milliseconds"
    )
    connected: bool = Field(
        False,
        description="Local connection state"
    )
    error: Optional[str] = Field(
        None,
        description="Failure message when the check could not run"
    )


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str = Field(
        ...,
        description="Overall service status"
    )
    version: str = Field(
        ...,
        description="Application version"
    )
    database: DatabaseHealth = Field(
        ...,
        description="Database health"
    )
