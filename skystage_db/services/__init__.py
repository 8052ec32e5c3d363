# ==============================================================================
# SERVICES PACKAGE INITIALIZATION
# ==============================================================================

"""
Service Layer
=============

Read-side aggregation over the repositories:
- DashboardService: Admin dashboard statistics and table counts
"""

from skystage_db.services.dashboard_service import DashboardService

__all__ = [
    "DashboardService",
]
