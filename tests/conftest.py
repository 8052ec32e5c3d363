# ==============================================================================
# CONFTEST - Pytest Fixtures and Configuration
# ==============================================================================
# Shared fixtures for all tests: a migrated SQLite database, an in-memory
# stand-in for the Supabase client and a scriptable adapter for the guard
# ==============================================================================

from __future__ import annotations

import asyncio
import copy
import itertools
import os
import sys
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from postgrest.exceptions import APIError

# Set test environment before importing the package
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_PROVIDER"] = "sqlite"
os.environ["DATABASE_URL"] = ":memory:"
os.environ["LOG_LEVEL"] = "WARNING"

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from skystage_db.core.exceptions import DatabaseConnectionError  # noqa: E402
from skystage_db.database.adapters.sqlite_adapter import SQLiteAdapter  # noqa: E402
from skystage_db.database.adapters.supabase_adapter import SupabaseAdapter  # noqa: E402
from skystage_db.database.config import DatabaseConfig  # noqa: E402
from skystage_db.database.context import DatabaseContext, set_database_context  # noqa: E402
from skystage_db.database.factory import DatabaseFactory  # noqa: E402
from skystage_db.database.guard import InitializationGuard  # noqa: E402
from skystage_db.database.migrations import MIGRATIONS, MigrationRunner  # noqa: E402
from skystage_db.database.schema import TABLES  # noqa: E402


# ==============================================================================
# SQLITE FIXTURES
# ==============================================================================

@pytest.fixture
def sqlite_config(tmp_path) -> DatabaseConfig:
    """File-backed SQLite config in a per-test directory."""
    return DatabaseConfig(provider="sqlite", url=str(tmp_path / "data" / "skystage_test.db"))


@pytest_asyncio.fixture
async def sqlite_adapter(sqlite_config: DatabaseConfig) -> AsyncGenerator[SQLiteAdapter, None]:
    """Connected SQLite adapter with the full schema applied."""
    adapter = SQLiteAdapter()
    await adapter.connect(sqlite_config)
    await MigrationRunner(adapter, MIGRATIONS).migrate()
    yield adapter
    await adapter.disconnect()


@pytest.fixture
def make_user(sqlite_adapter: SQLiteAdapter) -> Callable[..., Any]:
    """Insert a user row; rows referencing users need one first."""
    counter = itertools.count(1)

    async def _make(**overrides: Any) -> Dict[str, Any]:
        n = next(counter)
        data = {
            "email": f"user{n}@example.com",
            "password_hash": "hashed-password",
            "full_name": f"User {n}",
            "user_type": "customer",
        }
        data.update(overrides)
        return await sqlite_adapter.create("users", data)

    return _make


@pytest_asyncio.fixture
async def database(sqlite_config: DatabaseConfig) -> AsyncGenerator[DatabaseContext, None]:
    """Initialized process-wide context over a migrated SQLite file."""
    context = DatabaseContext()
    set_database_context(context)
    adapter = await context.initialize(sqlite_config)
    await MigrationRunner(adapter, MIGRATIONS).migrate()
    yield context
    await context.close()
    set_database_context(None)


# ==============================================================================
# HTTP CLIENT FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def client(database: DatabaseContext) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against an app whose database is ready."""
    # Import app after environment is set
    from skystage_db.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        timeout=30.0,
    ) as async_client:
        yield async_client


@pytest_asyncio.fixture
async def uninitialized_client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client whose database context was never initialized."""
    from skystage_db.main import app

    set_database_context(DatabaseContext())
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client
    set_database_context(None)


# ==============================================================================
# FAKE SUPABASE CLIENT
# ==============================================================================

class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


def _column_default(value: Any) -> Any:
    return None if value == "now" else value


class FakeQuery:
    """
    Chainable request builder over the fake's in-memory tables.

    Enforces the unique and NOT NULL columns declared in ``TABLES`` and
    answers with PostgREST-shaped ``APIError`` codes.
    """

    def __init__(self, client: "FakeSupabaseClient", table: str) -> None:
        self._client = client
        self._table = table
        self._operation = "select"
        self._columns = "*"
        self._count: Optional[str] = None
        self._head = False
        self._payload: Any = None
        self._filters: List[Tuple[str, str, Any]] = []
        self._order: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[Tuple[int, int]] = None

    # Builders

    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False) -> "FakeQuery":
        self._operation = "select"
        self._columns = columns
        self._count = count
        self._head = head
        return self

    def insert(self, rows: Any) -> "FakeQuery":
        self._operation = "insert"
        self._payload = rows if isinstance(rows, list) else [rows]
        return self

    def update(self, changes: Dict[str, Any]) -> "FakeQuery":
        self._operation = "update"
        self._payload = changes
        return self

    def delete(self) -> "FakeQuery":
        self._operation = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(("eq", column, value))
        return self

    def is_(self, column: str, value: str) -> "FakeQuery":
        self._filters.append(("is", column, value))
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        self._filters.append(("in", column, list(values)))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order.append((column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._limit = size
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    # Execution

    async def execute(self) -> FakeResponse:
        client = self._client
        if client.unreachable:
            raise httpx.ConnectError("connection refused")
        client.requests.append((self._table, self._operation))
        failure = client.pop_failure(self._table, self._operation)
        if failure is not None:
            raise failure
        if self._table not in client.tables:
            raise APIError({
                "code": "PGRST205",
                "message": f"Could not find the table 'public.{self._table}' in the schema cache",
            })
        rows = client.tables[self._table]
        return getattr(self, f"_{self._operation}")(rows)

    def _matches(self, row: Dict[str, Any]) -> bool:
        for op, column, value in self._filters:
            current = row.get(column)
            if op == "eq" and current != value:
                return False
            if op == "is" and current is not None:
                return False
            if op == "in" and current not in value:
                return False
        return True

    def _select(self, rows: List[Dict[str, Any]]) -> FakeResponse:
        matched = [row for row in rows if self._matches(row)]
        for column, desc in reversed(self._order):
            matched.sort(
                key=lambda row, column=column: (row.get(column) is None, row.get(column)),
                reverse=desc,
            )
        total = len(matched)
        if self._range is not None:
            matched = matched[self._range[0]:self._range[1] + 1]
        elif self._limit is not None:
            matched = matched[:self._limit]
        if self._columns != "*":
            names = self._columns.split(",")
            matched = [{name: row.get(name) for name in names} for row in matched]
        data = [] if self._head else copy.deepcopy(matched)
        return FakeResponse(data, total if self._count else None)

    def _insert(self, rows: List[Dict[str, Any]]) -> FakeResponse:
        schema = TABLES[self._table]
        new_rows = []
        for payload in self._payload:
            row = {column.name: _column_default(column.default) for column in schema.columns}
            row.update(payload)
            new_rows.append(row)
        self._check_not_null(new_rows)
        self._check_unique(rows, new_rows)
        rows.extend(copy.deepcopy(new_rows))
        return FakeResponse(copy.deepcopy(new_rows))

    def _update(self, rows: List[Dict[str, Any]]) -> FakeResponse:
        matched = [row for row in rows if self._matches(row)]
        updated = [{**row, **self._payload} for row in matched]
        self._check_not_null(updated)
        self._check_unique(rows, updated, ignore={row["id"] for row in matched})
        for row in matched:
            row.update(copy.deepcopy(self._payload))
        return FakeResponse(copy.deepcopy(updated))

    def _delete(self, rows: List[Dict[str, Any]]) -> FakeResponse:
        removed = [row for row in rows if self._matches(row)]
        rows[:] = [row for row in rows if not self._matches(row)]
        return FakeResponse(copy.deepcopy(removed))

    def _check_not_null(self, candidates: List[Dict[str, Any]]) -> None:
        required = [c.name for c in TABLES[self._table].columns if not c.nullable]
        for row in candidates:
            for name in required:
                if row.get(name) is None:
                    raise APIError({
                        "code": "23502",
                        "message": (
                            f'null value in column "{name}" of relation '
                            f'"{self._table}" violates not-null constraint'
                        ),
                    })

    def _check_unique(
        self,
        existing: List[Dict[str, Any]],
        candidates: List[Dict[str, Any]],
        ignore: frozenset = frozenset(),
    ) -> None:
        schema = TABLES[self._table]
        for column in schema.columns:
            if not (column.unique or column.primary_key):
                continue
            seen = {
                row.get(column.name)
                for row in existing
                if row.get("id") not in ignore and row.get(column.name) is not None
            }
            for row in candidates:
                value = row.get(column.name)
                if value is None:
                    continue
                if value in seen:
                    suffix = "pkey" if column.primary_key else f"{column.name}_key"
                    raise APIError({
                        "code": "23505",
                        "message": (
                            f'duplicate key value violates unique constraint '
                            f'"{self._table}_{suffix}"'
                        ),
                    })
                seen.add(value)


class FakeRpc:
    def __init__(self, client: "FakeSupabaseClient", name: str, params: Dict[str, Any]) -> None:
        self._client = client
        self._name = name
        self._params = params

    async def execute(self) -> FakeResponse:
        self._client.rpc_calls.append((self._name, self._params))
        result = self._client.rpc_results.get(self._name)
        if isinstance(result, Exception):
            raise result
        return FakeResponse(result)


class FakeChannel:
    def __init__(self, name: str) -> None:
        self.name = name
        self.table: Optional[str] = None
        self.subscribed = False
        self._callbacks: List[Callable[[Dict[str, Any]], None]] = []

    def on_postgres_changes(
        self,
        event: str,
        callback: Callable[[Dict[str, Any]], None],
        table: Optional[str] = None,
        schema: Optional[str] = None,
        filter: Optional[str] = None,
    ) -> "FakeChannel":
        self.table = table
        self._callbacks.append(callback)
        return self

    async def subscribe(self, callback: Optional[Callable[..., Any]] = None) -> "FakeChannel":
        self.subscribed = True
        return self

    def emit(self, payload: Dict[str, Any]) -> None:
        for callback in self._callbacks:
            callback(payload)


class FakeSupabaseClient:
    """In-memory stand-in for ``supabase.AsyncClient``."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}
        self.requests: List[Tuple[str, str]] = []
        self.rpc_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.rpc_results: Dict[str, Any] = {}
        self.channels: List[FakeChannel] = []
        self.removed_channels: List[FakeChannel] = []
        self.unreachable = False
        self._failures: Dict[Tuple[str, str], List[Exception]] = {}

    def fail_next(self, table: str, operation: str, error: Exception) -> None:
        """Make the next ``operation`` on ``table`` raise ``error``."""
        self._failures.setdefault((table, operation), []).append(error)

    def pop_failure(self, table: str, operation: str) -> Optional[Exception]:
        pending = self._failures.get((table, operation))
        return pending.pop(0) if pending else None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def channel(self, name: str) -> FakeChannel:
        channel = FakeChannel(name)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.channels.remove(channel)
        self.removed_channels.append(channel)

    async def remove_all_channels(self) -> None:
        self.removed_channels.extend(self.channels)
        self.channels.clear()


@pytest.fixture
def supabase_config() -> DatabaseConfig:
    return DatabaseConfig(
        provider="supabase",
        supabase_url="https://project.supabase.co",
        supabase_key="service-role-key",
        supabase_key_source="service_role",
    )


@pytest.fixture
def fake_supabase() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest_asyncio.fixture
async def supabase_adapter(
    fake_supabase: FakeSupabaseClient,
    supabase_config: DatabaseConfig,
) -> AsyncGenerator[SupabaseAdapter, None]:
    """Supabase adapter connected to the in-memory client."""
    adapter = SupabaseAdapter(client=fake_supabase)
    await adapter.connect(supabase_config)
    yield adapter
    await adapter.disconnect()


# ==============================================================================
# SCRIPTABLE ADAPTER (GUARD & FACTORY)
# ==============================================================================

@dataclass
class BackendScript:
    """Behaviour and call counters shared by every ``ScriptedAdapter``."""
    connect_delay: float = 0.0
    connect_failures: int = 0
    healthy: bool = True
    ping_raises: bool = False
    connects: int = 0
    disconnects: int = 0


class ScriptedAdapter(SQLiteAdapter):
    """SQLite adapter whose lifecycle is driven by a ``BackendScript``."""

    def __init__(self, script: BackendScript) -> None:
        super().__init__()
        self.script = script
        self._connected = False

    async def connect(self, config: DatabaseConfig) -> None:
        self.script.connects += 1
        await asyncio.sleep(self.script.connect_delay)
        if self.script.connect_failures > 0:
            self.script.connect_failures -= 1
            raise DatabaseConnectionError(message="backend unreachable")
        self._connected = True

    async def disconnect(self) -> None:
        self.script.disconnects += 1
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    async def ping(self) -> bool:
        if self.script.ping_raises:
            raise RuntimeError("ping exploded")
        return self._connected and self.script.healthy


@pytest.fixture
def script() -> BackendScript:
    return BackendScript()


@pytest.fixture
def scripted_factory(script: BackendScript) -> DatabaseFactory:
    return DatabaseFactory(adapter_factory=lambda config: ScriptedAdapter(script))


@pytest.fixture
def guard(scripted_factory: DatabaseFactory) -> InitializationGuard:
    return InitializationGuard(scripted_factory)


@pytest.fixture
def scripted_config(tmp_path) -> DatabaseConfig:
    return DatabaseConfig(provider="sqlite", url=str(tmp_path / "scripted.db"))
