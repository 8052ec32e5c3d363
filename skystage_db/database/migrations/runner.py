# ==============================================================================
# MIGRATION RUNNER - Versioned Schema Changes
# ==============================================================================
# Applies ordered migrations through the adapter's schema operations and
# records each applied version in the schema_migrations table
# ==============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from skystage_db.core.constants import DatabaseConstants
from skystage_db.core.exceptions import UnsupportedOperationError
from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.types import (
    ColumnDefinition,
    ColumnType,
    OrderBy,
    QueryOptions,
    TableSchema,
)

logger = logging.getLogger(__name__)

MigrationStep = Callable[[BaseDatabaseAdapter], Awaitable[None]]

MIGRATIONS_SCHEMA = TableSchema(
    columns=[
        ColumnDefinition("id", ColumnType.UUID, nullable=False, primary_key=True),
        ColumnDefinition("version", ColumnType.STRING, length=50, nullable=False, unique=True),
        ColumnDefinition("name", ColumnType.STRING, length=255, nullable=False),
        ColumnDefinition("created_at", ColumnType.DATETIME, nullable=False),
    ],
)


@dataclass(frozen=True)
class Migration:
    """One reversible schema change."""
    version: str
    name: str
    up: MigrationStep
    down: MigrationStep


class MigrationRunner:
    """
    Apply and roll back migrations in version order.

    Example:
        >>> runner = MigrationRunner(adapter, MIGRATIONS)
        >>> await runner.migrate()
        ['001']
    """

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        migrations: Sequence[Migration],
    ) -> None:
        self._adapter = adapter
        self._migrations = sorted(migrations, key=lambda m: m.version)

    def _require_ddl(self) -> None:
        if not self._adapter.capabilities.schema_ddl:
            raise UnsupportedOperationError(
                message=(
                    f"Provider '{self._adapter.provider_name}' manages its schema "
                    "outside this process; run its hosted migrations instead"
                ),
                provider=self._adapter.provider_name,
                operation="migrate",
            )

    async def _ensure_table(self) -> None:
        if not await self._adapter.has_table(DatabaseConstants.MIGRATIONS_TABLE):
            await self._adapter.create_table(DatabaseConstants.MIGRATIONS_TABLE, MIGRATIONS_SCHEMA)

    async def applied_versions(self) -> List[str]:
        """Versions recorded as applied, oldest first."""
        self._require_ddl()
        await self._ensure_table()
        rows = await self._adapter.find_all(
            DatabaseConstants.MIGRATIONS_TABLE,
            QueryOptions(order_by=[OrderBy.asc("version")]),
        )
        return [row["version"] for row in rows]

    async def pending(self) -> List[Migration]:
        applied = set(await self.applied_versions())
        return [m for m in self._migrations if m.version not in applied]

    async def migrate(self, target: Optional[str] = None) -> List[str]:
        """
        Apply pending migrations up to ``target`` (all when None).

        Returns:
            Versions applied by this call
        """
        applied: List[str] = []
        for migration in await self.pending():
            if target is not None and migration.version > target:
                break
            logger.info(f"[Migration {migration.version}] Applying {migration.name}")
            await migration.up(self._adapter)
            await self._adapter.create(
                DatabaseConstants.MIGRATIONS_TABLE,
                {"version": migration.version, "name": migration.name},
            )
            applied.append(migration.version)
        if applied:
            logger.info(f"Applied migrations: {', '.join(applied)}")
        return applied

    async def rollback(self, steps: int = 1) -> List[str]:
        """
        Revert the most recent ``steps`` applied migrations.

        Returns:
            Versions rolled back, newest first
        """
        by_version = {m.version: m for m in self._migrations}
        reverted: List[str] = []
        for version in reversed(await self.applied_versions()):
            if len(reverted) >= steps:
                break
            migration = by_version.get(version)
            if migration is None:
                logger.warning(f"[Migration {version}] No definition found; skipping rollback")
                continue
            logger.info(f"[Migration {version}] Rolling back {migration.name}")
            await migration.down(self._adapter)
            record = await self._adapter.find_one(
                DatabaseConstants.MIGRATIONS_TABLE, {"version": version}
            )
            if record is not None:
                await self._adapter.delete(DatabaseConstants.MIGRATIONS_TABLE, record["id"])
            reverted.append(version)
        return reverted
