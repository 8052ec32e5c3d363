# ==============================================================================
# BASE DATABASE ADAPTER - Abstract Interface
# ==============================================================================
# Defines the contract for all database adapters
# Ensures consistent semantics across SQLite, PostgreSQL and Supabase
# ==============================================================================

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    TypeVar,
)

from skystage_db.core.constants import DatabaseConstants
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.types import (
    BulkUpdate,
    ColumnDefinition,
    ExecuteResult,
    QueryOptions,
    RealtimeCallback,
    Record,
    TableSchema,
    Unsubscribe,
)
from skystage_db.utils.helpers import generate_uuid, utc_now

R = TypeVar("R")


@dataclass(frozen=True)
class AdapterCapabilities:
    """
    What a backend can do natively.

    Attributes:
        transactions: "native" (real rollback) or "compensating" (undo journal)
        realtime: Row-change push is available
        schema_ddl: create_table / add_column / ... are supported
    """
    transactions: str = "native"
    realtime: bool = False
    schema_ddl: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BaseDatabaseAdapter(ABC):
    """
    Abstract Base Class for Database Adapters.

    Provides a unified interface for record operations across different
    database backends. Records are plain dictionaries keyed by column name.

    Layer-managed columns:
        ``id`` (UUID4 string), ``created_at`` and ``updated_at`` are always
        assigned here. Values a caller passes for them are discarded.

    Error contract:
        Backend errors never leak. Adapters raise ``ConstraintViolationError``,
        ``NotFoundError``, ``ValidationError``, ``QueryError``,
        ``DatabaseConnectionError``, ``TransactionAbortedError`` or
        ``UnsupportedOperationError``.

    Example:
        >>> adapter = SQLiteAdapter()
        >>> await adapter.connect(config)
        >>> user = await adapter.create("users", {"email": "test@example.com"})
        >>> await adapter.disconnect()
    """

    provider_name: str = "base"
    capabilities: AdapterCapabilities = AdapterCapabilities()

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    @abstractmethod
    async def connect(self, config: DatabaseConfig) -> None:
        """
        Establish the backend connection.

        Raises:
            DatabaseConnectionError: If the backend is unreachable
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Release every connection. Safe to call more than once."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Local view of the connection state (no round-trip)."""

    @abstractmethod
    async def ping(self) -> bool:
        """
        Perform a real round-trip to the backend.

        Returns:
            True if the backend answered within the ping timeout.
            Never raises; any failure reports False.
        """

    # ==========================================================================
    # RAW ACCESS
    # ==========================================================================

    @abstractmethod
    async def query(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Record]:
        """Run a raw statement that returns rows (named ``:param`` style)."""

    async def query_first(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Record]:
        """First row of ``query`` or None."""
        rows = await self.query(sql, params)
        return rows[0] if rows else None

    @abstractmethod
    async def execute(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> ExecuteResult:
        """Run a raw statement for its side effect."""

    # ==========================================================================
    # READ OPERATIONS
    # ==========================================================================

    @abstractmethod
    async def find_by_id(self, table: str, id: str) -> Optional[Record]:
        """
        Get a record by primary key.

        Returns:
            The record, or None when no row has this id
        """

    @abstractmethod
    async def find_all(
        self,
        table: str,
        options: Optional[QueryOptions] = None,
    ) -> List[Record]:
        """
        List records.

        ``options.where`` filters by equality, ``options.select`` projects,
        ``options.order_by`` is applied key by key, then offset and limit.
        """

    async def find_by(
        self,
        table: str,
        criteria: Dict[str, Any],
        options: Optional[QueryOptions] = None,
    ) -> List[Record]:
        """``find_all`` with ``criteria`` merged into ``options.where``."""
        opts = options or QueryOptions()
        where = dict(opts.where or {})
        where.update(criteria)
        merged = QueryOptions(
            limit=opts.limit,
            offset=opts.offset,
            order_by=list(opts.order_by),
            select=opts.select,
            where=where,
        )
        return await self.find_all(table, merged)

    async def find_one(
        self,
        table: str,
        criteria: Dict[str, Any],
    ) -> Optional[Record]:
        """First record matching ``criteria`` or None."""
        rows = await self.find_by(table, criteria, QueryOptions(limit=1))
        return rows[0] if rows else None

    @abstractmethod
    async def count(
        self,
        table: str,
        criteria: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Number of rows matching ``criteria`` (all rows when None)."""

    # ==========================================================================
    # WRITE OPERATIONS
    # ==========================================================================

    @abstractmethod
    async def create(self, table: str, data: Dict[str, Any]) -> Record:
        """
        Insert one record.

        Returns:
            The stored record including generated id and timestamps

        Raises:
            ConstraintViolationError: Unique or NOT NULL constraint broken
            ValidationError: Unknown column in ``data``
        """

    @abstractmethod
    async def update(self, table: str, id: str, data: Dict[str, Any]) -> Record:
        """
        Merge ``data`` into an existing record.

        ``id`` and ``created_at`` in ``data`` are ignored and ``updated_at``
        is refreshed.

        Raises:
            NotFoundError: No row has this id
        """

    @abstractmethod
    async def delete(self, table: str, id: str) -> bool:
        """
        Delete one record.

        Returns:
            True if a row was removed, False if the id was absent
        """

    # ==========================================================================
    # BULK OPERATIONS
    # ==========================================================================

    @abstractmethod
    async def bulk_create(
        self,
        table: str,
        rows: Sequence[Dict[str, Any]],
    ) -> List[Record]:
        """Insert many records, all or nothing, in input order."""

    @abstractmethod
    async def bulk_update(
        self,
        table: str,
        updates: Sequence[BulkUpdate],
    ) -> List[Record]:
        """
        Apply many partial updates, all or nothing.

        Raises:
            NotFoundError: Any id is missing (no row is changed)
        """

    @abstractmethod
    async def bulk_delete(self, table: str, ids: Sequence[str]) -> int:
        """Delete many records; returns the number actually removed."""

    # ==========================================================================
    # TRANSACTIONS
    # ==========================================================================

    @abstractmethod
    async def transaction(
        self,
        callback: Callable[["BaseDatabaseAdapter"], Awaitable[R]],
    ) -> R:
        """
        Run ``callback`` with a transactional handle.

        Every operation issued through the handle commits together. If the
        callback raises, all of them are rolled back and
        ``TransactionAbortedError`` is raised with the original error
        chained.
        """

    # ==========================================================================
    # SCHEMA OPERATIONS
    # ==========================================================================

    @abstractmethod
    async def has_table(self, table: str) -> bool:
        ...

    @abstractmethod
    async def create_table(self, table: str, schema: TableSchema) -> None:
        ...

    @abstractmethod
    async def drop_table(self, table: str) -> None:
        ...

    @abstractmethod
    async def add_column(self, table: str, column: ColumnDefinition) -> None:
        ...

    @abstractmethod
    async def drop_column(self, table: str, column: str) -> None:
        ...

    # ==========================================================================
    # INTROSPECTION
    # ==========================================================================

    def get_pool_status(self) -> Dict[str, Any]:
        """Connection pool counters; empty when the backend has no pool."""
        return {}

    # ==========================================================================
    # SHARED HELPERS
    # ==========================================================================

    @staticmethod
    def _prepare_create(data: Dict[str, Any], with_updated_at: bool = True) -> Dict[str, Any]:
        """Drop caller-supplied managed columns and assign fresh ones."""
        record = {
            key: value
            for key, value in data.items()
            if key not in DatabaseConstants.MANAGED_COLUMNS
        }
        now = utc_now()
        record[DatabaseConstants.ID_COLUMN] = generate_uuid()
        record[DatabaseConstants.CREATED_AT_COLUMN] = now
        if with_updated_at:
            record[DatabaseConstants.UPDATED_AT_COLUMN] = now
        return record

    @staticmethod
    def _prepare_update(data: Dict[str, Any], with_updated_at: bool = True) -> Dict[str, Any]:
        """Drop id/created_at/updated_at and refresh updated_at."""
        changes = {
            key: value
            for key, value in data.items()
            if key not in DatabaseConstants.MANAGED_COLUMNS
        }
        if with_updated_at:
            changes[DatabaseConstants.UPDATED_AT_COLUMN] = utc_now()
        return changes

    def __repr__(self) -> str:
        state = "connected" if self.is_connected() else "disconnected"
        return f"{self.__class__.__name__}(provider='{self.provider_name}', {state})"


# ==============================================================================
# REALTIME CAPABILITY
# ==============================================================================

class RealtimeCapable(ABC):
    """
    Mixin for adapters that can push row changes.

    Only adapters inheriting this expose ``subscribe``; check with
    ``supports_realtime`` before calling it.
    """

    @abstractmethod
    async def subscribe(self, table: str, callback: RealtimeCallback) -> Unsubscribe:
        """
        Deliver every INSERT/UPDATE/DELETE on ``table`` to ``callback``.

        Returns:
            An async callable that stops delivery when awaited
        """


def supports_realtime(adapter: Any) -> bool:
    """Capability check for ``RealtimeCapable.subscribe``."""
    return isinstance(adapter, RealtimeCapable)
