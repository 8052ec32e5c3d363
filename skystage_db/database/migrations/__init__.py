# ==============================================================================
# MIGRATIONS PACKAGE
# ==============================================================================

from skystage_db.database.migrations.runner import Migration, MigrationRunner
from skystage_db.database.migrations.initial_schema import INITIAL_SCHEMA

MIGRATIONS = [INITIAL_SCHEMA]

__all__ = ["Migration", "MigrationRunner", "INITIAL_SCHEMA", "MIGRATIONS"]
