# ==============================================================================
# INITIALIZATION GUARD TESTS
# ==============================================================================
# Exactly-once initialization, retry after failure and graceful shutdown
# ==============================================================================

import asyncio
import signal

import pytest

from skystage_db.core.constants import HealthStatus
from skystage_db.core.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    NotInitializedError,
)
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.context import DatabaseContext
from skystage_db.database.guard import Failed, InitializationGuard, Ready, Uninitialized


class TestInitialization:
    """Tests for concurrent and repeated initialization."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_attempt(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test many simultaneous callers connect exactly once."""
        script.connect_delay = 0.05

        adapters = await asyncio.gather(*(guard.initialize(scripted_config) for _ in range(20)))

        assert script.connects == 1
        assert len({id(adapter) for adapter in adapters}) == 1
        assert isinstance(guard.state, Ready)

    @pytest.mark.asyncio
    async def test_ready_guard_does_not_reconnect(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test initialize and ensure_connection reuse the ready adapter."""
        first = await guard.initialize(scripted_config)
        second = await guard.initialize(scripted_config)
        third = await guard.ensure_connection()

        assert first is second is third
        assert script.connects == 1

    @pytest.mark.asyncio
    async def test_failure_then_retry(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test a failed attempt is reported and the next call retries."""
        script.connect_failures = 1

        with pytest.raises(DatabaseConnectionError):
            await guard.initialize(scripted_config)

        assert isinstance(guard.state, Failed)
        assert guard.last_error is not None
        health = await guard.health_status()
        assert health["status"] == HealthStatus.NOT_INITIALIZED
        assert health["error"] == "backend unreachable"

        adapter = await guard.initialize(scripted_config)

        assert adapter.is_connected()
        assert script.connects == 2
        assert guard.last_error is None

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_failure(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test every waiter sees the same failed attempt."""
        script.connect_delay = 0.02
        script.connect_failures = 1

        results = await asyncio.gather(
            *(guard.initialize(scripted_config) for _ in range(5)),
            return_exceptions=True,
        )

        assert all(isinstance(result, DatabaseConnectionError) for result in results)
        assert script.connects == 1

    @pytest.mark.asyncio
    async def test_unhealthy_after_connect(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test a failing post-connect health check aborts and closes the adapter."""
        script.healthy = False

        with pytest.raises(DatabaseConnectionError):
            await guard.initialize(scripted_config)

        assert script.disconnects == 1
        assert not guard.is_ready

    @pytest.mark.asyncio
    async def test_configuration_error_is_not_connected(
        self, guard: InitializationGuard, script
    ):
        """Test invalid config fails before any connection attempt."""
        with pytest.raises(ConfigurationError):
            await guard.initialize(DatabaseConfig(provider="mongodb"))

        assert script.connects == 0
        assert isinstance(guard.state, Failed)

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_attempt(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test one caller giving up leaves the shared attempt running."""
        script.connect_delay = 0.05
        impatient = asyncio.ensure_future(guard.initialize(scripted_config))
        patient = asyncio.ensure_future(guard.initialize(scripted_config))
        await asyncio.sleep(0.01)

        impatient.cancel()
        adapter = await patient

        assert impatient.cancelled()
        assert adapter.is_connected()
        assert script.connects == 1


class TestShutdown:
    """Tests for draining and closing."""

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test connections close only after tracked work finishes."""
        await guard.initialize(scripted_config)
        release = asyncio.Event()

        async def request():
            async with guard.track():
                await release.wait()

        worker = asyncio.ensure_future(request())
        await asyncio.sleep(0)
        assert guard.in_flight == 1

        closing = asyncio.ensure_future(guard.shutdown(drain_timeout=5))
        await asyncio.sleep(0.02)
        assert script.disconnects == 0

        release.set()
        await asyncio.gather(worker, closing)

        assert script.disconnects == 1
        assert isinstance(guard.state, Uninitialized)

    @pytest.mark.asyncio
    async def test_shutdown_timeout_closes_anyway(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test a stuck operation does not block shutdown past the timeout."""
        await guard.initialize(scripted_config)
        stuck = asyncio.Event()

        async def request():
            async with guard.track():
                await stuck.wait()

        worker = asyncio.ensure_future(request())
        await asyncio.sleep(0)

        await guard.shutdown(drain_timeout=0.05)

        assert script.disconnects == 1
        stuck.set()
        await worker

    @pytest.mark.asyncio
    async def test_shutdown_runs_once(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test concurrent and repeated shutdown calls close once."""
        await guard.initialize(scripted_config)

        await asyncio.gather(guard.shutdown(drain_timeout=1), guard.shutdown(drain_timeout=1))
        await guard.shutdown(drain_timeout=1)

        assert script.disconnects == 1

    @pytest.mark.asyncio
    async def test_signals_trigger_one_shutdown(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test SIGTERM then SIGINT close connections once."""
        await guard.initialize(scripted_config)
        loop = asyncio.get_running_loop()
        guard.install_signal_handlers(loop)
        try:
            guard._on_signal(signal.SIGTERM)
            guard._on_signal(signal.SIGINT)
            await guard.shutdown(drain_timeout=1)
        finally:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)

        assert script.disconnects == 1
        assert isinstance(guard.state, Uninitialized)

    @pytest.mark.asyncio
    async def test_reinitialize_after_shutdown(
        self, guard: InitializationGuard, script, scripted_config: DatabaseConfig
    ):
        """Test the guard can start again after a shutdown."""
        await guard.initialize(scripted_config)
        await guard.shutdown(drain_timeout=1)

        adapter = await guard.initialize(scripted_config)

        assert adapter.is_connected()
        assert script.connects == 2


class TestDatabaseContext:
    """Tests for the context facade."""

    @pytest.mark.asyncio
    async def test_get_database_before_initialize(self, scripted_factory):
        """Test access before initialization raises NotInitializedError."""
        context = DatabaseContext(factory=scripted_factory)

        with pytest.raises(NotInitializedError):
            context.get_database()
        health = await context.health()
        assert health == {
            "status": HealthStatus.NOT_INITIALIZED,
            "provider": None,
            "latency": None,
            "connected": False,
        }

    @pytest.mark.asyncio
    async def test_initialize_and_close(self, scripted_factory, script, scripted_config):
        """Test the context exposes the adapter until closed."""
        context = DatabaseContext(factory=scripted_factory)

        adapter = await context.initialize(scripted_config)

        assert context.get_database() is adapter
        assert context.stats()["provider"] == "sqlite"
        assert (await context.health())["status"] == HealthStatus.HEALTHY

        await context.close()

        with pytest.raises(NotInitializedError):
            context.get_database()
        assert script.disconnects == 1
