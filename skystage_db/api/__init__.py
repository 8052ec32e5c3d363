# ==============================================================================
# API PACKAGE INITIALIZATION
# ==============================================================================

"""
API Module
==========

FastAPI routers and dependencies for the operational surface.
"""

from skystage_db.api.router import api_router

__all__ = [
    "api_router",
]
