# ==============================================================================
# POSTGRESQL ADAPTER - SQLAlchemy Async with asyncpg
# ==============================================================================
# Production relational backend with a sized connection pool
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from skystage_db.database.adapters.sqlalchemy_adapter import SQLAlchemyAdapter
from skystage_db.database.config import DatabaseConfig

logger = logging.getLogger(__name__)


class PostgreSQLAdapter(SQLAlchemyAdapter):
    """
    PostgreSQL database adapter using SQLAlchemy async with asyncpg.

    Connection Pool Configuration:
        - pool_size:     DB_POOL_MIN
        - max_overflow:  DB_POOL_MAX - DB_POOL_MIN
        - pool_timeout:  DB_POOL_ACQUIRE_TIMEOUT (ms -> s)
        - pool_recycle:  DB_POOL_IDLE_TIMEOUT (ms -> s)
        - pool_pre_ping: always on

    Connection URL comes from POSTGRES_URL when set, otherwise from the
    POSTGRES_HOST/PORT/DB/USER/PASSWORD keys.
    """

    provider_name = "postgresql"

    def engine_options(self, config: DatabaseConfig) -> Dict[str, Any]:
        connect_args: Dict[str, Any] = {"timeout": config.connect_timeout}
        if config.ssl:
            connect_args["ssl"] = "require"

        return {
            # Connection pool configuration
            "pool_size": config.pool.min,
            "max_overflow": config.pool.max_overflow,
            "pool_timeout": config.pool.acquire_timeout,
            "pool_recycle": config.pool.idle_timeout,
            "pool_pre_ping": True,
            "echo": config.echo,
            # asyncpg-specific options
            "connect_args": connect_args,
        }

    def _create_engine(self, config: DatabaseConfig) -> AsyncEngine:
        options = self.engine_options(config)
        logger.debug(
            f"PostgreSQL pool: size={options['pool_size']} "
            f"overflow={options['max_overflow']} timeout={options['pool_timeout']}s"
        )
        return create_async_engine(config.sqlalchemy_url(), **options)
