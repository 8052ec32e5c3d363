# ==============================================================================
# DATABASE PACKAGE INITIALIZATION
# ==============================================================================
# Database Abstraction Layer with multi-provider support
# ==============================================================================

"""
Database Module
===============

Provides a unified database abstraction layer supporting:
- SQLite (development/testing)
- PostgreSQL (production)
- Supabase (hosted, with realtime)

Key Components:
- Adapters: Provider-specific implementations of one contract
- Factory: Adapter construction, health and statistics
- Guard: Exactly-once initialization and graceful shutdown
- Context: Process-wide access point
- Repositories: Per-entity data access
- Migrations: Versioned schema changes for SQL providers
"""

from skystage_db.database.adapters.base_adapter import (
    BaseDatabaseAdapter,
    RealtimeCapable,
    supports_realtime,
)
from skystage_db.database.config import DatabaseConfig, PoolConfig
from skystage_db.database.context import (
    DatabaseContext,
    check_database_health,
    close_database_connections,
    ensure_connection,
    get_database,
    get_database_context,
    get_database_stats,
    initialize_database,
    set_database_context,
)
from skystage_db.database.factory import DatabaseFactory
from skystage_db.database.guard import InitializationGuard
from skystage_db.database.types import (
    BulkUpdate,
    ExecuteResult,
    OrderBy,
    QueryOptions,
    RealtimeEvent,
    SortDirection,
)

__all__ = [
    "BaseDatabaseAdapter",
    "RealtimeCapable",
    "supports_realtime",
    "DatabaseConfig",
    "PoolConfig",
    "DatabaseContext",
    "DatabaseFactory",
    "InitializationGuard",
    "check_database_health",
    "close_database_connections",
    "ensure_connection",
    "get_database",
    "get_database_context",
    "get_database_stats",
    "initialize_database",
    "set_database_context",
    "BulkUpdate",
    "ExecuteResult",
    "OrderBy",
    "QueryOptions",
    "RealtimeEvent",
    "SortDirection",
]
