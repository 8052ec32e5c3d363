# ==============================================================================
# MIGRATION TESTS
# ==============================================================================
# Versioned schema changes and DDL through the SQL adapters
# ==============================================================================

import pytest
import pytest_asyncio

from skystage_db.core.exceptions import ValidationError
from skystage_db.database.adapters.sqlite_adapter import SQLiteAdapter
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.migrations import MIGRATIONS, Migration, MigrationRunner
from skystage_db.database.schema import TABLES
from skystage_db.database.types import ColumnDefinition, ColumnType, TableSchema


@pytest_asyncio.fixture
async def bare_adapter(sqlite_config: DatabaseConfig):
    adapter = SQLiteAdapter()
    await adapter.connect(sqlite_config)
    yield adapter
    await adapter.disconnect()


class TestMigrationRunner:
    """Tests for migrate, rollback and version tracking."""

    @pytest.mark.asyncio
    async def test_migrate_creates_every_table(self, bare_adapter: SQLiteAdapter):
        """Test the initial migration creates the full schema once."""
        runner = MigrationRunner(bare_adapter, MIGRATIONS)

        applied = await runner.migrate()

        assert applied == ["001"]
        for table in TABLES:
            assert await bare_adapter.has_table(table), table
        assert await runner.applied_versions() == ["001"]

    @pytest.mark.asyncio
    async def test_migrate_is_idempotent(self, bare_adapter: SQLiteAdapter):
        """Test a second run applies nothing."""
        runner = MigrationRunner(bare_adapter, MIGRATIONS)
        await runner.migrate()

        assert await runner.migrate() == []
        assert await runner.pending() == []

    @pytest.mark.asyncio
    async def test_rollback_drops_schema(self, bare_adapter: SQLiteAdapter):
        """Test rolling back the initial migration removes its tables."""
        runner = MigrationRunner(bare_adapter, MIGRATIONS)
        await runner.migrate()

        reverted = await runner.rollback()

        assert reverted == ["001"]
        assert not await bare_adapter.has_table("users")
        assert await runner.applied_versions() == []

    @pytest.mark.asyncio
    async def test_migrations_apply_in_version_order_up_to_target(
        self, bare_adapter: SQLiteAdapter
    ):
        """Test ordering by version and stopping at a target."""
        calls = []

        def step(label):
            async def run(adapter):
                calls.append(label)
            return run

        migrations = [
            Migration("003", "third", step("up3"), step("down3")),
            Migration("001", "first", step("up1"), step("down1")),
            Migration("002", "second", step("up2"), step("down2")),
        ]
        runner = MigrationRunner(bare_adapter, migrations)

        assert await runner.migrate(target="002") == ["001", "002"]
        assert await runner.migrate() == ["003"]
        assert await runner.rollback(steps=2) == ["003", "002"]
        assert calls == ["up1", "up2", "up3", "down3", "down2"]


class TestSchemaOperations:
    """Tests for table and column DDL."""

    @pytest.mark.asyncio
    async def test_create_and_drop_table(self, bare_adapter: SQLiteAdapter):
        """Test a portable table definition round-trips through DDL."""
        schema = TableSchema(
            columns=[
                ColumnDefinition("id", ColumnType.UUID, nullable=False, primary_key=True),
                ColumnDefinition("label", ColumnType.STRING, length=50, nullable=False),
                ColumnDefinition("weight", ColumnType.DECIMAL, default=1.5),
                ColumnDefinition("created_at", ColumnType.DATETIME, nullable=False),
                ColumnDefinition("updated_at", ColumnType.DATETIME, nullable=False),
            ],
        )

        await bare_adapter.create_table("parcels", schema)
        record = await bare_adapter.create("parcels", {"label": "box"})
        await bare_adapter.drop_table("parcels")

        assert record["weight"] == 1.5
        assert not await bare_adapter.has_table("parcels")

    @pytest.mark.asyncio
    async def test_add_and_drop_column(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test new columns are visible to later writes and reads."""
        user = await make_user()

        await sqlite_adapter.add_column(
            "users",
            ColumnDefinition("nickname", ColumnType.STRING, length=50, default="pilot", nullable=False),
        )
        updated = await sqlite_adapter.update("users", user["id"], {"nickname": "ace"})
        await sqlite_adapter.drop_column("users", "nickname")

        assert updated["nickname"] == "ace"
        with pytest.raises(ValidationError):
            await sqlite_adapter.update("users", user["id"], {"nickname": "again"})
