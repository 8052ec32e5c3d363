# ==============================================================================
# SQLITE ADAPTER - SQLAlchemy Async with aiosqlite
# ==============================================================================
# Embedded file-based database for development, tests and single-node installs
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from skystage_db.database.adapters.sqlalchemy_adapter import SQLAlchemyAdapter
from skystage_db.database.config import DatabaseConfig

logger = logging.getLogger(__name__)


class SQLiteAdapter(SQLAlchemyAdapter):
    """
    SQLite database adapter using SQLAlchemy async with aiosqlite.

    Provides the same interface as PostgreSQLAdapter for seamless
    database switching.

    Features:
        - File-based or in-memory database (``DATABASE_URL=:memory:``)
        - Parent directory of the database file created on connect
        - Foreign keys enforced and WAL journaling on every connection
        - Timestamps stored as UTC and returned timezone-aware

    Example:
        >>> adapter = SQLiteAdapter()
        >>> await adapter.connect(DatabaseConfig(provider="sqlite", url="./data/app.db"))
        >>> user = await adapter.create("users", {"email": "test@example.com", ...})
    """

    provider_name = "sqlite"

    def _before_connect(self, config: DatabaseConfig) -> None:
        path = config.sqlite_path()
        if path is not None and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created SQLite data directory {path.parent}")

    def _create_engine(self, config: DatabaseConfig) -> AsyncEngine:
        in_memory = config.sqlite_path() is None
        options: Dict[str, Any] = {
            "echo": config.echo,
            "connect_args": {"check_same_thread": False},
        }
        if in_memory:
            # One shared connection, otherwise each checkout sees an empty database
            options["poolclass"] = StaticPool

        engine = create_async_engine(config.sqlalchemy_url(), **options)

        @event.listens_for(engine.sync_engine, "connect")
        def _configure_connection(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return engine

    def _insert_id(self, result: Any) -> Optional[Any]:
        return result.lastrowid
