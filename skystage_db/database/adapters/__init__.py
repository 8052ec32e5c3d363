# ==============================================================================
# DATABASE ADAPTERS PACKAGE
# ==============================================================================

"""
Database Adapters
=================

Provides unified interface implementations for different backends:
- BaseDatabaseAdapter: Abstract interface definition
- RealtimeCapable: Capability marker for row-change push
- SQLiteAdapter: SQLite using SQLAlchemy async + aiosqlite
- PostgreSQLAdapter: PostgreSQL using SQLAlchemy async + asyncpg
- SupabaseAdapter: Supabase using the supabase-py async client
"""

from skystage_db.database.adapters.base_adapter import (
    AdapterCapabilities,
    BaseDatabaseAdapter,
    RealtimeCapable,
    supports_realtime,
)
from skystage_db.database.adapters.sqlalchemy_adapter import SQLAlchemyAdapter
from skystage_db.database.adapters.sqlite_adapter import SQLiteAdapter
from skystage_db.database.adapters.postgresql_adapter import PostgreSQLAdapter
from skystage_db.database.adapters.supabase_adapter import SupabaseAdapter

__all__ = [
    "AdapterCapabilities",
    "BaseDatabaseAdapter",
    "RealtimeCapable",
    "supports_realtime",
    "SQLAlchemyAdapter",
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    "SupabaseAdapter",
]
