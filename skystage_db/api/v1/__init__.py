# ==============================================================================
# API V1 ENDPOINTS PACKAGE
# ==============================================================================

"""
API V1 Endpoints
================

Version 1 API endpoint implementations.
"""

from skystage_db.api.v1.admin import router as admin_router

__all__ = [
    "admin_router",
]
