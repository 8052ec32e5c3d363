# ==============================================================================
# MIGRATION 001 - Initial Schema
# ==============================================================================

from __future__ import annotations

import logging

from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.migrations.runner import Migration
from skystage_db.database.schema import DROP_ORDER, TABLES

logger = logging.getLogger(__name__)


async def _up(adapter: BaseDatabaseAdapter) -> None:
    for name, schema in TABLES.items():
        await adapter.create_table(name, schema)
    logger.info("[Migration 001] Initial schema created")


async def _down(adapter: BaseDatabaseAdapter) -> None:
    for name in DROP_ORDER:
        await adapter.drop_table(name)
    logger.info("[Migration 001] Initial schema rolled back")


INITIAL_SCHEMA = Migration(version="001", name="initial_schema", up=_up, down=_down)
