# ==============================================================================
# REPOSITORIES PACKAGE INITIALIZATION
# ==============================================================================

"""
Domain Repositories
===================

One repository per table. Each resolves the active provider lazily, or
uses the adapter it was given (e.g. a transaction handle):

    >>> async def move(tx):
    ...     bookings = BookingRepository(tx)
    ...     await bookings.update_status(booking_id, "confirmed")
    >>> await get_database().transaction(move)
"""

from skystage_db.database.repositories.analytics_repository import AnalyticsEventRepository
from skystage_db.database.repositories.base_repository import BaseRepository
from skystage_db.database.repositories.booking_repository import BookingRepository
from skystage_db.database.repositories.formation_repository import (
    FormationCategoryRepository,
    FormationRepository,
    FormationTagRepository,
)
from skystage_db.database.repositories.organization_repository import OrganizationRepository
from skystage_db.database.repositories.show_repository import ShowRepository
from skystage_db.database.repositories.sync_job_repository import SyncJobRepository
from skystage_db.database.repositories.user_repository import (
    UserRepository,
    UserSessionRepository,
)

__all__ = [
    "AnalyticsEventRepository",
    "BaseRepository",
    "BookingRepository",
    "FormationCategoryRepository",
    "FormationRepository",
    "FormationTagRepository",
    "OrganizationRepository",
    "ShowRepository",
    "SyncJobRepository",
    "UserRepository",
    "UserSessionRepository",
]
