# ==============================================================================
# API DEPENDENCIES - Dependency Injection
# ==============================================================================
# FastAPI dependencies for database access
# ==============================================================================

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.context import DatabaseContext, get_database_context
from skystage_db.services.dashboard_service import DashboardService


# ==============================================================================
# DATABASE DEPENDENCIES
# ==============================================================================

def get_context() -> DatabaseContext:
    """Process-wide database context (overridable in tests)."""
    return get_database_context()


ContextDep = Annotated[DatabaseContext, Depends(get_context)]


async def get_adapter(context: ContextDep) -> BaseDatabaseAdapter:
    """
    Get database adapter dependency.

    Initializes on first use when startup did not complete.
    """
    return await context.ensure_connection()


# Annotated type for database adapter
DatabaseDep = Annotated[BaseDatabaseAdapter, Depends(get_adapter)]


# ==============================================================================
# SERVICE DEPENDENCIES
# ==============================================================================

async def get_dashboard_service(adapter: DatabaseDep) -> DashboardService:
    return DashboardService(adapter)


DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
