# ==============================================================================
# DATABASE CONTEXT - Process-Wide Access Point
# ==============================================================================
# One factory + guard pair per process behind a dependency accessor, and the
# module-level convenience functions repositories and routes call
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.factory import DatabaseFactory
from skystage_db.database.guard import InitializationGuard

logger = logging.getLogger(__name__)


class DatabaseContext:
    """
    Explicit owner of the active provider.

    Attributes:
        factory: Builds and holds the adapter
        guard: Serializes initialization and shutdown
    """

    def __init__(
        self,
        factory: Optional[DatabaseFactory] = None,
        guard: Optional[InitializationGuard] = None,
    ) -> None:
        self.factory = factory or DatabaseFactory()
        self.guard = guard or InitializationGuard(self.factory)

    async def initialize(self, config: Optional[DatabaseConfig] = None) -> BaseDatabaseAdapter:
        return await self.guard.initialize(config)

    def get_database(self) -> BaseDatabaseAdapter:
        """
        Active adapter.

        Raises:
            NotInitializedError: Before initialization completed
        """
        return self.factory.get_provider()

    async def ensure_connection(self) -> BaseDatabaseAdapter:
        return await self.guard.ensure_connection()

    async def health(self) -> Dict[str, Any]:
        return await self.guard.health_status()

    def stats(self) -> Dict[str, Any]:
        return self.factory.get_stats()

    async def close(self) -> None:
        await self.guard.shutdown()


_default_context: Optional[DatabaseContext] = None


def get_database_context() -> DatabaseContext:
    """Get (creating on first use) the process-wide context."""
    global _default_context
    if _default_context is None:
        _default_context = DatabaseContext()
    return _default_context


def set_database_context(context: Optional[DatabaseContext]) -> None:
    """
    Replace the process-wide context.

    Passing None drops it without closing anything. Primarily for testing.
    """
    global _default_context
    _default_context = context


# ==============================================================================
# CONVENIENCE FUNCTIONS
# ==============================================================================

async def initialize_database(config: Optional[DatabaseConfig] = None) -> BaseDatabaseAdapter:
    """Initialize the default context once; concurrent callers share the attempt."""
    return await get_database_context().initialize(config)


def get_database() -> BaseDatabaseAdapter:
    """Active adapter of the default context (raises NotInitializedError)."""
    return get_database_context().get_database()


async def ensure_connection() -> BaseDatabaseAdapter:
    return await get_database_context().ensure_connection()


def get_database_stats() -> Dict[str, Any]:
    return get_database_context().stats()


async def check_database_health() -> Dict[str, Any]:
    return await get_database_context().health()


async def close_database_connections() -> None:
    await get_database_context().close()
