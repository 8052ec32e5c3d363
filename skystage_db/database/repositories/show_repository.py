# ==============================================================================
# SHOW REPOSITORY
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from skystage_db.core.constants import DatabaseConstants
from skystage_db.database.repositories.base_repository import BaseRepository
from skystage_db.database.types import OrderBy, QueryOptions
from skystage_db.schemas.show import Show, ShowCreate, ShowStatus, ShowUpdate
from skystage_db.utils.helpers import ensure_utc, utc_now


class ShowRepository(BaseRepository[Show, ShowCreate, ShowUpdate]):
    """Shows, latest event first by default."""

    table_name = DatabaseConstants.SHOWS_TABLE
    entity_schema = Show
    create_schema = ShowCreate
    update_schema = ShowUpdate
    default_order = (OrderBy.desc("event_date"),)

    async def get_by_status(
        self,
        status: ShowStatus | str,
        options: Optional[QueryOptions] = None,
    ) -> List[Show]:
        return await self.find_by({"status": ShowStatus(status).value}, options)

    async def get_by_user(
        self,
        user_id: str,
        options: Optional[QueryOptions] = None,
    ) -> List[Show]:
        return await self.find_by({"created_by": user_id}, options)

    async def get_upcoming(
        self,
        options: Optional[QueryOptions] = None,
        now: Optional[datetime] = None,
    ) -> List[Show]:
        """
        Shows whose ``event_date`` is after ``now``.

        The date filter runs in application code on the rows ``options``
        selects, so a limit can return fewer upcoming shows than asked for.
        """
        cutoff = ensure_utc(now or utc_now())
        shows = await self.find_all(options)
        return [show for show in shows if show.event_date > cutoff]
