# ==============================================================================
# ORGANIZATION REPOSITORY
# ==============================================================================

from __future__ import annotations

from typing import List, Optional

from skystage_db.core.constants import DatabaseConstants
from skystage_db.database.repositories.base_repository import BaseRepository
from skystage_db.database.types import OrderBy
from skystage_db.schemas.organization import (
    Organization,
    OrganizationCreate,
    OrganizationUpdate,
)


class OrganizationRepository(BaseRepository[Organization, OrganizationCreate, OrganizationUpdate]):
    table_name = DatabaseConstants.ORGANIZATIONS_TABLE
    entity_schema = Organization
    create_schema = OrganizationCreate
    update_schema = OrganizationUpdate
    default_order = (OrderBy.asc("name"),)

    async def find_by_slug(self, slug: str) -> Optional[Organization]:
        return await self.find_one({"slug": slug})

    async def get_by_owner(self, owner_id: str) -> List[Organization]:
        return await self.find_by({"owner_id": owner_id})
