# ==============================================================================
# FORMATION REPOSITORY - Catalog, Categories & Tags
# ==============================================================================

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from skystage_db.core.constants import DatabaseConstants
from skystage_db.core.exceptions import NotFoundError
from skystage_db.database.repositories.base_repository import BaseRepository
from skystage_db.database.types import OrderBy, QueryOptions
from skystage_db.schemas.formation import (
    Formation,
    FormationCategory,
    FormationCategoryCreate,
    FormationCategoryUpdate,
    FormationCreate,
    FormationTag,
    FormationTagCreate,
    FormationTagUpdate,
    FormationUpdate,
)

logger = logging.getLogger(__name__)


class FormationCategoryRepository(
    BaseRepository[FormationCategory, FormationCategoryCreate, FormationCategoryUpdate]
):
    """Categories list in ``sort_order``."""

    table_name = DatabaseConstants.FORMATION_CATEGORIES_TABLE
    entity_schema = FormationCategory
    create_schema = FormationCategoryCreate
    update_schema = FormationCategoryUpdate
    default_order = (OrderBy.asc("sort_order"), OrderBy.asc("name"))

    async def find_by_slug(self, slug: str) -> Optional[FormationCategory]:
        return await self.find_one({"slug": slug})

    async def get_active(self) -> List[FormationCategory]:
        return await self.find_by({"is_active": True})


class FormationTagRepository(BaseRepository[FormationTag, FormationTagCreate, FormationTagUpdate]):
    """Tags list most used first."""

    table_name = DatabaseConstants.FORMATION_TAGS_TABLE
    entity_schema = FormationTag
    create_schema = FormationTagCreate
    update_schema = FormationTagUpdate
    default_order = (OrderBy.desc("usage_count"), OrderBy.asc("name"))

    async def find_by_slug(self, slug: str) -> Optional[FormationTag]:
        return await self.find_one({"slug": slug})


class FormationRepository(BaseRepository[Formation, FormationCreate, FormationUpdate]):
    """
    Drone formation catalog.

    Newest first unless the caller orders otherwise.
    """

    table_name = DatabaseConstants.FORMATIONS_TABLE
    entity_schema = Formation
    create_schema = FormationCreate
    update_schema = FormationUpdate
    default_order = (OrderBy.desc("created_at"),)

    async def get_by_category(
        self,
        category: str,
        options: Optional[QueryOptions] = None,
    ) -> List[Formation]:
        return await self.find_by({"category": category}, options)

    async def get_public(self, options: Optional[QueryOptions] = None) -> List[Formation]:
        return await self.find_by({"is_public": True}, options)

    async def get_by_user(
        self,
        user_id: str,
        options: Optional[QueryOptions] = None,
    ) -> List[Formation]:
        return await self.find_by({"created_by": user_id}, options)

    async def find_by_source_id(self, source: str, source_id: str) -> Optional[Formation]:
        return await self.find_one({"source": source, "source_id": source_id})

    async def existing_source_ids(
        self,
        source: str,
        source_ids: Optional[Iterable[str]] = None,
    ) -> Set[str]:
        """
        ``source_id`` values already imported from ``source``.

        Importers call this before ``create`` since there is no upsert.
        When ``source_ids`` is given the result is limited to those.
        """
        rows = await self.adapter.find_by(
            self.table_name,
            {"source": source},
            QueryOptions(select=["source_id"]),
        )
        existing = {row["source_id"] for row in rows if row.get("source_id")}
        if source_ids is not None:
            existing &= set(source_ids)
        return existing

    async def search(
        self,
        query: str,
        options: Optional[QueryOptions] = None,
    ) -> List[Formation]:
        """
        Case-insensitive substring match on name, description and tags.

        Matching happens in application code over the page selected by
        ``options``, so limit/offset apply before filtering.
        """
        needle = query.strip().lower()
        formations = await self.find_all(options)
        if not needle:
            return formations
        return [
            formation
            for formation in formations
            if needle in formation.name.lower()
            or needle in (formation.description or "").lower()
            or needle in (formation.tags or "").lower()
        ]

    async def increment_download_count(self, id: str) -> Formation:
        """
        Add one to ``download_count``.

        Read-then-write; concurrent increments can be lost.

        Raises:
            NotFoundError: No formation has this id
        """
        formation = await self.find_by_id(id)
        if formation is None:
            raise NotFoundError(
                message=f"Formation not found: {id}",
                resource_type=self.table_name,
                resource_id=id,
            )
        return await self.update(id, {"download_count": (formation.download_count or 0) + 1})

    async def get_categories(self) -> List[FormationCategory]:
        return await FormationCategoryRepository(self._adapter).find_all()
