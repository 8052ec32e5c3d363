# ==============================================================================
# SYNC JOB REPOSITORY - Background Import Tracking
# ==============================================================================
# Counters only move forward and stay consistent:
#   processed_items <= total_items
#   successful_items + failed_items <= processed_items
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Dict, List, Optional

from skystage_db.core.constants import DatabaseConstants
from skystage_db.core.exceptions import NotFoundError, ValidationError
from skystage_db.database.repositories.base_repository import BaseRepository, WriteInput
from skystage_db.database.types import OrderBy, QueryOptions
from skystage_db.schemas.sync_job import (
    SyncJob,
    SyncJobCreate,
    SyncJobStatus,
    SyncJobUpdate,
    check_counters,
    compute_progress,
)
from skystage_db.utils.helpers import utc_now

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("total_items", "processed_items", "successful_items", "failed_items")

# Counters and progress advance in one statement; the WHERE clause keeps
# processed <= total and successful + failed <= processed
_ADVANCE_SQL = (
    "UPDATE {table} SET "
    "processed_items = processed_items + :processed, "
    "successful_items = successful_items + :successful, "
    "failed_items = failed_items + :failed, "
    "progress = CASE "
    "WHEN total_items <= 0 THEN 0 "
    "WHEN processed_items + :processed >= total_items THEN 100 "
    "ELSE (processed_items + :processed) * 100 / total_items END "
    "WHERE id = :id "
    "AND processed_items + :processed <= total_items "
    "AND successful_items + failed_items + :settled <= processed_items + :processed"
)

_progress_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()


def _check(counters: Dict[str, int]) -> None:
    try:
        check_counters(**counters)
    except ValueError as e:
        raise ValidationError(
            message=str(e),
            errors={"counters": str(e)},
        ) from e


class SyncJobRepository(BaseRepository[SyncJob, SyncJobCreate, SyncJobUpdate]):
    """Sync jobs, newest first."""

    table_name = DatabaseConstants.SYNC_JOBS_TABLE
    entity_schema = SyncJob
    create_schema = SyncJobCreate
    update_schema = SyncJobUpdate
    default_order = (OrderBy.desc("created_at"),)

    async def _require(self, id: str) -> SyncJob:
        job = await self.find_by_id(id)
        if job is None:
            raise NotFoundError(
                message=f"Sync job not found: {id}",
                resource_type=self.table_name,
                resource_id=id,
            )
        return job

    async def update(self, id: str, data: WriteInput) -> SyncJob:
        """
        Partial update that refuses to move counters backwards or make
        them inconsistent.

        Raises:
            NotFoundError: No job has this id
            ValidationError: Counter rule broken
        """
        changes = self._update_payload(data)
        # An explicit None leaves a counter as it is
        for field in COUNTER_FIELDS:
            if field in changes and changes[field] is None:
                del changes[field]
        if any(field in changes for field in COUNTER_FIELDS):
            current = await self._require(id)
            merged = {field: changes.get(field, getattr(current, field)) for field in COUNTER_FIELDS}
            regressed = [
                field for field in COUNTER_FIELDS if merged[field] < getattr(current, field)
            ]
            if regressed:
                raise ValidationError(
                    message="Sync job counters can only advance",
                    errors={field: "decreased" for field in regressed},
                )
            _check(merged)
        row = await self.adapter.update(self.table_name, id, changes)
        return self._to_entity(row)

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    async def get_by_status(self, status: SyncJobStatus | str) -> List[SyncJob]:
        return await self.find_by({"status": SyncJobStatus(status).value})

    async def get_recent(self, limit: int = 10) -> List[SyncJob]:
        return await self.find_all(
            QueryOptions(limit=limit, order_by=[OrderBy.desc("created_at")])
        )

    # ==========================================================================
    # LIFECYCLE
    # ==========================================================================

    async def start(self, id: str, total_items: Optional[int] = None) -> SyncJob:
        """Mark a job running and stamp ``started_at``."""
        job = await self._require(id)
        if SyncJobStatus(job.status).is_terminal:
            raise ValidationError(
                message=f"Sync job {id} already finished ({job.status})",
                errors={"status": job.status},
            )
        changes: Dict[str, Any] = {
            "status": SyncJobStatus.RUNNING.value,
            "started_at": utc_now(),
        }
        if total_items is not None:
            changes["total_items"] = total_items
            changes["progress"] = compute_progress(total_items, job.processed_items)
        logger.info(f"Sync job {id} ({job.type}) started")
        return await self.update(id, changes)

    async def record_progress(
        self,
        id: str,
        processed: int = 0,
        successful: int = 0,
        failed: int = 0,
    ) -> SyncJob:
        """
        Add to the job counters and recompute ``progress``.

        SQL backends apply the increments in a single UPDATE, so concurrent
        workers reporting on one job never lose progress. Supabase has no
        arithmetic update; there the read-add-write is serialized per job
        inside this process only.

        Raises:
            NotFoundError: No job has this id
            ValidationError: Negative increment or inconsistent totals
        """
        increments = {"processed": processed, "successful": successful, "failed": failed}
        negative = {name: "must be >= 0" for name, value in increments.items() if value < 0}
        if negative:
            raise ValidationError(message="Progress increments must be >= 0", errors=negative)

        if self.adapter.capabilities.transactions == "native":
            return await self._advance(id, processed, successful, failed)

        lock = _progress_locks.get(id)
        if lock is None:
            lock = _progress_locks[id] = asyncio.Lock()
        async with lock:
            job = await self._require(id)
            processed_items = job.processed_items + processed
            return await self.update(
                id,
                {
                    "processed_items": processed_items,
                    "successful_items": job.successful_items + successful,
                    "failed_items": job.failed_items + failed,
                    "progress": compute_progress(job.total_items, processed_items),
                },
            )

    async def _advance(self, id: str, processed: int, successful: int, failed: int) -> SyncJob:
        while True:
            result = await self.adapter.execute(
                _ADVANCE_SQL.format(table=self.table_name),
                {
                    "id": id,
                    "processed": processed,
                    "successful": successful,
                    "failed": failed,
                    "settled": successful + failed,
                },
            )
            if result.affected_rows:
                # Refreshes updated_at and returns the stored row
                row = await self.adapter.update(self.table_name, id, {})
                return self._to_entity(row)

            job = await self._require(id)
            _check({
                "total_items": job.total_items,
                "processed_items": job.processed_items + processed,
                "successful_items": job.successful_items + successful,
                "failed_items": job.failed_items + failed,
            })
            # Counters moved between the UPDATE and the re-read; try again

    async def finish(
        self,
        id: str,
        status: SyncJobStatus | str = SyncJobStatus.COMPLETED,
        error_details: Optional[Any] = None,
    ) -> SyncJob:
        """Close a job with a terminal ``status`` and stamp ``completed_at``."""
        final = SyncJobStatus(status)
        if not final.is_terminal:
            raise ValidationError(
                message=f"Not a terminal status: {final.value}",
                errors={"status": final.value},
            )
        changes: Dict[str, Any] = {"status": final.value, "completed_at": utc_now()}
        if final == SyncJobStatus.COMPLETED:
            changes["progress"] = 100
        if error_details is not None:
            changes["error_details"] = error_details
        job = await self.update(id, changes)
        logger.info(
            f"Sync job {id} finished: {final.value} "
            f"({job.successful_items} ok, {job.failed_items} failed)"
        )
        return job
