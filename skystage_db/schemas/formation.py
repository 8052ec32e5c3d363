# ==============================================================================
# FORMATION SCHEMAS - Drone Formation Catalog
# ==============================================================================
# Formations plus the category and tag lookup tables
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from skystage_db.schemas.base import EntitySchema, WriteSchema

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class FormationSource(str, Enum):
    """Where a formation came from."""
    SKYSTAGE = "skystage"
    UPLOAD = "upload"
    MANUAL = "manual"


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"


class Formation(EntitySchema):
    """Stored formation."""

    name: str
    description: Optional[str] = None
    category: str
    thumbnail_url: Optional[str] = None
    file_url: Optional[str] = None
    drone_count: int
    duration: float = Field(..., description="Duration in seconds")
    price: Optional[float] = 0
    created_by: str
    is_public: bool = True
    tags: Optional[str] = Field(None, description="Comma-separated tags")
    formation_data: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None
    source: Optional[FormationSource] = None
    source_id: Optional[str] = None
    sync_status: Optional[SyncStatus] = None
    last_synced: Optional[datetime] = None
    download_count: int = 0
    rating: Optional[float] = None

    @property
    def tag_list(self) -> List[str]:
        if not self.tags:
            return []
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]


class FormationCreate(WriteSchema):
    """Schema for adding a formation to the catalog."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name",
    )
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    thumbnail_url: Optional[str] = Field(None, max_length=500)
    file_url: Optional[str] = Field(None, max_length=500)
    drone_count: int = Field(..., ge=1, description="Drones the formation needs")
    duration: float = Field(..., ge=0, description="Duration in seconds")
    price: Optional[float] = Field(0, ge=0)
    created_by: str = Field(..., description="Owning user id")
    is_public: bool = True
    tags: Optional[str] = None
    formation_data: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None
    source: Optional[FormationSource] = None
    source_id: Optional[str] = Field(None, max_length=255)
    sync_status: Optional[SyncStatus] = None
    last_synced: Optional[datetime] = None
    download_count: int = Field(0, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)


class FormationUpdate(WriteSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    thumbnail_url: Optional[str] = Field(None, max_length=500)
    file_url: Optional[str] = Field(None, max_length=500)
    drone_count: Optional[int] = Field(None, ge=1)
    duration: Optional[float] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    is_public: Optional[bool] = None
    tags: Optional[str] = None
    formation_data: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None
    source: Optional[FormationSource] = None
    source_id: Optional[str] = Field(None, max_length=255)
    sync_status: Optional[SyncStatus] = None
    last_synced: Optional[datetime] = None
    download_count: Optional[int] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)


# ==============================================================================
# CATEGORIES & TAGS
# ==============================================================================

class FormationCategory(EntitySchema):
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    formation_count: int = 0
    is_active: bool = True
    sort_order: int = 0


class FormationCategoryCreate(WriteSchema):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=20)
    formation_count: int = Field(0, ge=0)
    is_active: bool = True
    sort_order: int = 0


class FormationCategoryUpdate(WriteSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=20)
    formation_count: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class FormationTag(EntitySchema):
    name: str
    slug: str
    color: Optional[str] = None
    usage_count: int = 0


class FormationTagCreate(WriteSchema):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., max_length=100, pattern=SLUG_PATTERN)
    color: Optional[str] = Field(None, max_length=20)
    usage_count: int = Field(0, ge=0)


class FormationTagUpdate(WriteSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, pattern=SLUG_PATTERN)
    color: Optional[str] = Field(None, max_length=20)
    usage_count: Optional[int] = Field(None, ge=0)
