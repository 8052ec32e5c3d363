# ==============================================================================
# MAIN API ROUTER - Route Aggregation
# ==============================================================================
# Combines all API version routers
# ==============================================================================

from __future__ import annotations

from fastapi import APIRouter

from skystage_db.api.v1 import admin_router
from skystage_db.core.settings import settings

# Create main API router
api_router = APIRouter()

# Include v1 routers with API prefix
api_router.include_router(admin_router, prefix=settings.API_V1_PREFIX)
