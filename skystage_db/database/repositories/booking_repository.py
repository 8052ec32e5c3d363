# ==============================================================================
# BOOKING REPOSITORY
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional

from skystage_db.core.constants import DatabaseConstants
from skystage_db.database.repositories.base_repository import BaseRepository
from skystage_db.database.types import OrderBy, QueryOptions
from skystage_db.schemas.booking import (
    Booking,
    BookingCreate,
    BookingStatus,
    BookingUpdate,
)


class BookingRepository(BaseRepository[Booking, BookingCreate, BookingUpdate]):
    """Booking requests, newest first."""

    table_name = DatabaseConstants.BOOKINGS_TABLE
    entity_schema = Booking
    create_schema = BookingCreate
    update_schema = BookingUpdate
    default_order = (OrderBy.desc("created_at"),)

    async def get_by_user_id(self, user_id: str) -> List[Booking]:
        return await self.find_by({"user_id": user_id})

    async def get_by_status(
        self,
        status: BookingStatus | str,
        options: Optional[QueryOptions] = None,
    ) -> List[Booking]:
        return await self.find_by({"status": BookingStatus(status).value}, options)

    async def update_status(
        self,
        id: str,
        status: BookingStatus | str,
        quoted_price: Optional[float] = None,
    ) -> Booking:
        """
        Move a booking to ``status``, recording ``quoted_price`` when given.

        Raises:
            NotFoundError: No booking has this id
        """
        changes: Dict[str, Any] = {"status": BookingStatus(status).value}
        if quoted_price is not None:
            changes["quoted_price"] = quoted_price
        return await self.update(id, changes)
