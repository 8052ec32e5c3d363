# ==============================================================================
# SYNC JOB SCHEMAS - Background Import Tracking
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from skystage_db.schemas.base import EntitySchema, WriteSchema


class SyncJobType(str, Enum):
    SKYSTAGE_FORMATIONS = "skystage_formations"
    USER_IMPORT = "user_import"
    ORGANIZATION_IMPORT = "organization_import"
    DATA_MIGRATION = "data_migration"


class SyncJobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SyncJobStatus.COMPLETED,
            SyncJobStatus.FAILED,
            SyncJobStatus.CANCELLED,
        )


def check_counters(
    total_items: int,
    processed_items: int,
    successful_items: int,
    failed_items: int,
) -> None:
    """
    Raise ValueError unless the counters are consistent.

    processed <= total and successful + failed <= processed.
    """
    if processed_items > total_items:
        raise ValueError(
            f"processed_items ({processed_items}) exceeds total_items ({total_items})"
        )
    if successful_items + failed_items > processed_items:
        raise ValueError(
            f"successful_items + failed_items ({successful_items + failed_items}) "
            f"exceeds processed_items ({processed_items})"
        )


def compute_progress(total_items: int, processed_items: int) -> int:
    """Percent complete, 0 when nothing is expected."""
    if total_items <= 0:
        return 0
    return min(100, int(processed_items * 100 / total_items))


class SyncJob(EntitySchema):
    """Stored sync job."""

    type: SyncJobType
    status: SyncJobStatus = SyncJobStatus.PENDING
    progress: int = 0
    total_items: int = 0
    processed_items: int = 0
    successful_items: int = 0
    failed_items: int = 0
    error_details: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_by: str


class SyncJobCreate(WriteSchema):
    """Schema for queueing a sync job."""

    type: SyncJobType = Field(..., description="What the job imports")
    status: SyncJobStatus = SyncJobStatus.PENDING
    progress: int = Field(0, ge=0, le=100)
    total_items: int = Field(0, ge=0)
    processed_items: int = Field(0, ge=0)
    successful_items: int = Field(0, ge=0)
    failed_items: int = Field(0, ge=0)
    error_details: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_by: str = Field(..., description="User who started the job")

    @model_validator(mode="after")
    def validate_counters(self) -> "SyncJobCreate":
        check_counters(
            self.total_items,
            self.processed_items,
            self.successful_items,
            self.failed_items,
        )
        return self


class SyncJobUpdate(WriteSchema):
    """Partial update; counter consistency is checked by the repository."""

    status: Optional[SyncJobStatus] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    total_items: Optional[int] = Field(None, ge=0)
    processed_items: Optional[int] = Field(None, ge=0)
    successful_items: Optional[int] = Field(None, ge=0)
    failed_items: Optional[int] = Field(None, ge=0)
    error_details: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
