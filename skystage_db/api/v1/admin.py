# ==============================================================================
# ADMIN ENDPOINTS - Database Operations Surface
# ==============================================================================
# Database health, connection statistics and dashboard aggregates
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter

from skystage_db.api.dependencies import ContextDep, DashboardServiceDep
from skystage_db.core.exceptions import AppException
from skystage_db.schemas.base import APIResponse
from skystage_db.schemas.dashboard import DashboardStats, TableCounts
from skystage_db.services.dashboard_service import DashboardService
from skystage_db.utils.helpers import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/database/health",
    response_model=APIResponse[Dict[str, Any]],
    summary="Database health",
    description="Health contract, connection details and table counts.",
)
async def database_health(context: ContextDep) -> APIResponse[Dict[str, Any]]:
    """Report health without forcing initialization."""
    health = await context.health()
    statistics: Optional[TableCounts] = None
    if health.get("connected"):
        try:
            statistics = await DashboardService(context.get_database()).get_table_counts()
        except AppException as e:
            logger.warning(f"Table counts unavailable: {e.message}")

    stats = context.stats()
    return APIResponse.ok(
        data={
            "health": {**health, "timestamp": utc_now().isoformat()},
            "connection": {
                "provider": stats["provider"],
                "available_providers": stats["available_providers"],
                "capabilities": stats["capabilities"],
                "config": stats["config"],
                "pool": stats["pool"],
            },
            "statistics": statistics.model_dump() if statistics else None,
        }
    )


@router.get(
    "/dashboard",
    response_model=APIResponse[DashboardStats],
    summary="Admin dashboard",
    description="Users, bookings, formations and recent activity aggregates.",
)
async def dashboard(service: DashboardServiceDep) -> APIResponse[DashboardStats]:
    stats = await service.get_dashboard_stats()
    message = f"Partial data: {', '.join(stats.errors)} unavailable" if stats.errors else None
    return APIResponse.ok(data=stats, message=message)


@router.get(
    "/database/stats",
    response_model=APIResponse[TableCounts],
    summary="Table counts",
)
async def table_counts(service: DashboardServiceDep) -> APIResponse[TableCounts]:
    return APIResponse.ok(data=await service.get_table_counts())
