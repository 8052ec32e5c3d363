# ==============================================================================
# DATABASE FACTORY - Adapter Instantiation & Lifecycle Management
# ==============================================================================
# Builds the adapter for the configured provider, owns the active instance,
# and reports health and statistics for it
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional, Type

from skystage_db.core.constants import HealthStatus
from skystage_db.core.exceptions import (
    AppException,
    ConfigurationError,
    DatabaseConnectionError,
    NotInitializedError,
)
from skystage_db.core.settings import DatabaseProvider
from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.adapters.postgresql_adapter import PostgreSQLAdapter
from skystage_db.database.adapters.sqlite_adapter import SQLiteAdapter
from skystage_db.database.adapters.supabase_adapter import SupabaseAdapter
from skystage_db.database.config import DatabaseConfig

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[DatabaseConfig], BaseDatabaseAdapter]

ADAPTER_REGISTRY: Dict[str, Type[BaseDatabaseAdapter]] = {
    DatabaseProvider.SQLITE.value: SQLiteAdapter,
    DatabaseProvider.POSTGRESQL.value: PostgreSQLAdapter,
    DatabaseProvider.SUPABASE.value: SupabaseAdapter,
}


class DatabaseFactory:
    """
    Factory for creating and managing the active database adapter.

    One instance owns at most one active adapter. ``get_provider`` never
    initializes implicitly; initialization is the Guard's job.

    Example:
        >>> factory = DatabaseFactory()
        >>> await factory.initialize(DatabaseConfig.from_settings(settings))
        >>> adapter = factory.get_provider()
        >>> await factory.close_all()
    """

    def __init__(self, adapter_factory: Optional[AdapterFactory] = None) -> None:
        """
        Args:
            adapter_factory: Override adapter construction (tests inject fakes)
        """
        self._adapter_factory = adapter_factory
        self._adapter: Optional[BaseDatabaseAdapter] = None
        self._config: Optional[DatabaseConfig] = None
        self._last_latency_ms: Optional[float] = None

    # ==========================================================================
    # CONSTRUCTION
    # ==========================================================================

    def create_adapter(self, config: DatabaseConfig) -> BaseDatabaseAdapter:
        """
        Create (but do not connect) the adapter for ``config.provider``.

        Raises:
            ConfigurationError: Unsupported provider or incomplete config
        """
        config.validate()
        if self._adapter_factory is not None:
            return self._adapter_factory(config)

        adapter_cls = ADAPTER_REGISTRY.get(config.provider)
        if adapter_cls is None:
            raise ConfigurationError(
                message=f"Unsupported database provider: {config.provider}",
                details={"supported": list(ADAPTER_REGISTRY)},
            )
        logger.info(f"Created {adapter_cls.__name__}")
        return adapter_cls()

    async def _connect(self, config: DatabaseConfig) -> BaseDatabaseAdapter:
        adapter = self.create_adapter(config)
        try:
            await asyncio.wait_for(adapter.connect(config), timeout=config.connect_timeout)
        except AppException:
            raise
        except asyncio.TimeoutError as e:
            raise DatabaseConnectionError(
                message=(
                    f"Timed out after {config.connect_timeout}s connecting to "
                    f"{config.provider}"
                ),
                details={"provider": config.provider},
            ) from e
        return adapter

    async def initialize(self, config: DatabaseConfig) -> BaseDatabaseAdapter:
        """
        Validate ``config``, construct the adapter and connect it.

        Returns the already active adapter when it is connected to the same
        provider.

        Raises:
            ConfigurationError: Invalid configuration
            DatabaseConnectionError: Backend unreachable
        """
        if (
            self._adapter is not None
            and self._adapter.is_connected()
            and self._config is not None
            and self._config.provider == config.provider
        ):
            return self._adapter

        adapter = await self._connect(config)
        self._adapter = adapter
        self._config = config
        logger.info(f"Database initialized: {config.provider}")
        return adapter

    async def switch_provider(self, config: DatabaseConfig) -> BaseDatabaseAdapter:
        """
        Connect a new backend and make it active.

        The previous adapter is disconnected only after the new one
        connected, so a failed switch leaves the old backend in place.
        """
        adapter = await self._connect(config)
        previous, self._adapter = self._adapter, adapter
        previous_provider = self._config.provider if self._config else None
        self._config = config
        self._last_latency_ms = None
        if previous is not None:
            await previous.disconnect()
        logger.info(f"Switched database provider: {previous_provider} -> {config.provider}")
        return adapter

    # ==========================================================================
    # ACCESS
    # ==========================================================================

    def get_provider(self) -> BaseDatabaseAdapter:
        """
        Get the active adapter.

        Raises:
            NotInitializedError: If initialization has not completed
        """
        if self._adapter is None:
            raise NotInitializedError()
        return self._adapter

    def is_initialized(self) -> bool:
        return self._adapter is not None

    @property
    def config(self) -> Optional[DatabaseConfig]:
        return self._config

    # ==========================================================================
    # HEALTH & STATS
    # ==========================================================================

    async def health_check(self) -> Dict[str, Any]:
        """
        Ping the active backend.

        Returns:
            ``{status, provider, latency, connected}`` where ``latency`` is
            the ping round-trip in milliseconds
        """
        if self._adapter is None:
            return {
                "status": HealthStatus.NOT_INITIALIZED,
                "provider": self._config.provider if self._config else None,
                "latency": None,
                "connected": False,
            }

        adapter = self._adapter
        started = time.perf_counter()
        try:
            reachable = await adapter.ping()
        except Exception as e:
            logger.error(f"Database health check raised: {e!r}")
            return {
                "status": HealthStatus.ERROR,
                "provider": adapter.provider_name,
                "latency": None,
                "connected": adapter.is_connected(),
                "error": str(e),
            }

        latency = round((time.perf_counter() - started) * 1000, 2)
        self._last_latency_ms = latency
        threshold = self._config.latency_threshold_ms if self._config else 1000.0

        if not reachable:
            status = HealthStatus.UNHEALTHY
        elif latency > threshold:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY

        return {
            "status": status,
            "provider": adapter.provider_name,
            "latency": latency,
            "connected": adapter.is_connected(),
        }

    def get_stats(self) -> Dict[str, Any]:
        """Provider, connection state, redacted config and pool counters."""
        adapter = self._adapter
        return {
            "provider": adapter.provider_name if adapter else None,
            "connected": adapter.is_connected() if adapter else False,
            "available_providers": list(ADAPTER_REGISTRY),
            "capabilities": adapter.capabilities.to_dict() if adapter else None,
            "config": self._config.redacted() if self._config else None,
            "pool": adapter.get_pool_status() if adapter else {},
            "last_health_latency_ms": self._last_latency_ms,
        }

    # ==========================================================================
    # SHUTDOWN
    # ==========================================================================

    async def close_all(self) -> None:
        """
        Close the active adapter. Safe to call repeatedly.
        """
        if self._adapter is None:
            return
        adapter, self._adapter = self._adapter, None
        try:
            await adapter.disconnect()
            logger.info(f"Disconnected: {adapter.provider_name}")
        except Exception as e:
            logger.error(f"Error disconnecting {adapter.provider_name}: {e!r}")
        logger.info("All database connections closed")
