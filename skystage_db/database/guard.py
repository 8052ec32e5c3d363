# ==============================================================================
# INITIALIZATION GUARD - Exactly-Once Startup & Graceful Shutdown
# ==============================================================================
# Coalesces concurrent initialization onto one shared task, tracks in-flight
# operations and drains them before closing connections
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union

from skystage_db.core.constants import HealthStatus
from skystage_db.core.exceptions import (
    AppException,
    ConfigurationError,
    DatabaseConnectionError,
    DatabaseError,
)
from skystage_db.core.settings import Settings, get_settings
from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.factory import DatabaseFactory

logger = logging.getLogger(__name__)


# ==============================================================================
# GUARD STATES
# ==============================================================================

@dataclass(frozen=True)
class Uninitialized:
    """No attempt made yet, or connections were shut down."""


@dataclass(frozen=True)
class Initializing:
    """An attempt is running; every caller awaits ``task``."""
    task: "asyncio.Future[BaseDatabaseAdapter]"


@dataclass(frozen=True)
class Ready:
    """The provider is connected and passed its health check."""
    provider: BaseDatabaseAdapter


@dataclass(frozen=True)
class Failed:
    """The last attempt failed; the next caller retries from scratch."""
    error: BaseException


GuardState = Union[Uninitialized, Initializing, Ready, Failed]


class InitializationGuard:
    """
    Exactly-once initialization of the database provider.

    Concurrent ``initialize`` callers share one ``asyncio`` task, shielded
    so that a cancelled caller does not cancel the attempt for the others.
    A failed attempt leaves the guard in ``Failed`` and the next call
    starts a fresh attempt.

    Example:
        >>> guard = InitializationGuard(DatabaseFactory())
        >>> adapter = await guard.initialize()
        >>> async with guard.track():
        ...     await adapter.find_all("users")
        >>> await guard.shutdown()
    """

    def __init__(
        self,
        factory: DatabaseFactory,
        settings_provider: Callable[[], Settings] = get_settings,
    ) -> None:
        self._factory = factory
        self._settings_provider = settings_provider
        self._state: GuardState = Uninitialized()
        self._last_error: Optional[BaseException] = None
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._shutdown_task: Optional[asyncio.Future] = None

    # ==========================================================================
    # STATE
    # ==========================================================================

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return isinstance(self._state, Ready)

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # ==========================================================================
    # INITIALIZATION
    # ==========================================================================

    async def initialize(self, config: Optional[DatabaseConfig] = None) -> BaseDatabaseAdapter:
        """
        Initialize the provider once, however many callers race here.

        Args:
            config: Explicit config; resolved from settings when None

        Returns:
            The ready adapter

        Raises:
            ConfigurationError: Invalid or incomplete configuration
            DatabaseConnectionError: Backend unreachable or unhealthy
        """
        state = self._state
        if isinstance(state, Ready):
            return state.provider

        if isinstance(state, Initializing):
            task = state.task
        else:
            task = asyncio.ensure_future(self._attempt(config))
            task.add_done_callback(_consume_exception)
            self._state = Initializing(task)

        return await asyncio.shield(task)

    async def ensure_connection(self) -> BaseDatabaseAdapter:
        """Return the ready adapter, initializing only when not ``Ready``."""
        state = self._state
        if isinstance(state, Ready):
            return state.provider
        return await self.initialize()

    async def _attempt(self, config: Optional[DatabaseConfig]) -> BaseDatabaseAdapter:
        resolved = config
        try:
            if resolved is None:
                resolved = DatabaseConfig.from_settings(self._settings_provider())
            logger.info(f"Initializing database (provider={resolved.provider})")

            adapter = await self._factory.initialize(resolved)
            health = await self._factory.health_check()
            if health["status"] != HealthStatus.HEALTHY:
                raise DatabaseConnectionError(
                    message=(
                        f"Database health check failed after connect: "
                        f"status={health['status']}"
                    ),
                    details=health,
                )
        except BaseException as e:
            self._last_error = e
            self._state = Failed(e)
            self._log_diagnostics(e, resolved)
            await self._factory.close_all()
            raise

        self._last_error = None
        self._shutdown_task = None
        self._state = Ready(adapter)
        logger.info(
            f"Database ready (provider={adapter.provider_name}, "
            f"latency={health['latency']}ms)"
        )
        return adapter

    @staticmethod
    def _log_diagnostics(error: BaseException, config: Optional[DatabaseConfig]) -> None:
        provider = config.provider if config else "unknown"
        if isinstance(error, ConfigurationError):
            logger.error(f"Database configuration invalid: {error.message}")
            if error.missing_keys:
                logger.error(f"Set these environment variables: {', '.join(error.missing_keys)}")
        elif isinstance(error, DatabaseError):
            logger.error(f"Database initialization failed ({provider}): {error.message}")
            logger.error(
                "Check that the backend is running and reachable, and that "
                "DATABASE_PROVIDER and its credentials are correct"
            )
        elif isinstance(error, asyncio.CancelledError):
            logger.warning(f"Database initialization cancelled ({provider})")
        else:
            logger.error(f"Database initialization failed ({provider}): {error!r}")

    # ==========================================================================
    # IN-FLIGHT TRACKING
    # ==========================================================================

    @asynccontextmanager
    async def track(self) -> AsyncIterator[None]:
        """Count an operation as in flight for the shutdown drain."""
        self._in_flight += 1
        self._idle.clear()
        try:
            yield
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    # ==========================================================================
    # SHUTDOWN
    # ==========================================================================

    async def shutdown(self, drain_timeout: Optional[float] = None) -> None:
        """
        Drain in-flight operations, then close connections. Runs once.

        Args:
            drain_timeout: Seconds to wait for in-flight operations
                (defaults to DB_SHUTDOWN_DRAIN_TIMEOUT)
        """
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self._shutdown(drain_timeout))
        await asyncio.shield(self._shutdown_task)

    async def _shutdown(self, drain_timeout: Optional[float]) -> None:
        timeout = (
            drain_timeout
            if drain_timeout is not None
            else self._settings_provider().DB_SHUTDOWN_DRAIN_TIMEOUT
        )

        if self._in_flight:
            logger.info(f"Waiting up to {timeout}s for {self._in_flight} in-flight operation(s)")
            try:
                await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"{self._in_flight} operation(s) still running after {timeout}s; "
                    "closing connections anyway"
                )

        state = self._state
        if isinstance(state, Initializing):
            state.task.cancel()
            await asyncio.gather(state.task, return_exceptions=True)

        await self._factory.close_all()
        self._state = Uninitialized()
        logger.info("Database shutdown complete")

    def install_signal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Trigger ``shutdown()`` once on SIGTERM or SIGINT."""
        loop = loop or asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError) as e:
                logger.warning(f"Cannot install handler for {sig.name}: {e}")

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down database connections")
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self._shutdown(None))

    # ==========================================================================
    # HEALTH
    # ==========================================================================

    async def health_status(self) -> Dict[str, Any]:
        """
        Health payload for the operational surface.

        ``not_initialized`` unless ``Ready``; otherwise the factory check.
        """
        state = self._state
        if not isinstance(state, Ready):
            payload: Dict[str, Any] = {
                "status": HealthStatus.NOT_INITIALIZED,
                "provider": None,
                "latency": None,
                "connected": False,
            }
            if isinstance(state, Failed):
                payload["error"] = (
                    state.error.message
                    if isinstance(state.error, AppException)
                    else str(state.error)
                )
            return payload
        return await self._factory.health_check()


def _consume_exception(task: "asyncio.Future[Any]") -> None:
    # Waiters may all have been cancelled; mark the exception as retrieved
    if not task.cancelled():
        task.exception()
