# ==============================================================================
# SUPABASE ADAPTER - supabase-py Async Client
# ==============================================================================
# Hosted PostgREST backend with realtime row-change push.
# Schema is owned by hosted migrations; DDL is not available here.
# ==============================================================================

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import re
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from skystage_db.core.constants import DatabaseConstants, PostgresErrorCodes
from skystage_db.core.exceptions import (
    AppException,
    ConstraintViolationError,
    DatabaseConnectionError,
    NotFoundError,
    QueryError,
    TransactionAbortedError,
    UnsupportedOperationError,
    ValidationError,
)
from skystage_db.database.adapters.base_adapter import (
    AdapterCapabilities,
    BaseDatabaseAdapter,
    RealtimeCapable,
)
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.schema import get_table_schema, table_has_updated_at
from skystage_db.database.types import (
    BulkUpdate,
    ColumnDefinition,
    ColumnType,
    ExecuteResult,
    QueryOptions,
    RealtimeCallback,
    RealtimeEvent,
    RealtimeEventType,
    Record,
    TableSchema,
    Unsubscribe,
)
from skystage_db.utils.helpers import generate_uuid, parse_datetime, utc_now

logger = logging.getLogger(__name__)

R = TypeVar("R")

_CONSTRAINT_NAME = re.compile(r'constraint "([^"]+)"')
_PING_TABLE = DatabaseConstants.USERS_TABLE


def _encode(value: Any) -> Any:
    """Make a value JSON-safe for PostgREST."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def _encode_row(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _encode(value) for key, value in data.items()}


class _Journal:
    """
    Undo log of a compensating transaction.

    Each entry is ``(operation, table, row)`` where ``row`` is the created
    row for "create" and the prior state for "update" / "delete".
    """

    def __init__(self) -> None:
        self.entries: List[Tuple[str, str, Record]] = []

    def __len__(self) -> int:
        return len(self.entries)

    def record(self, operation: str, table: str, row: Record) -> None:
        self.entries.append((operation, table, row))

    def pop_since(self, mark: int) -> List[Tuple[str, str, Record]]:
        tail = self.entries[mark:]
        del self.entries[mark:]
        return list(reversed(tail))


class SupabaseAdapter(BaseDatabaseAdapter, RealtimeCapable):
    """
    Supabase implementation of the adapter contract.

    Uses the supabase-py async client. Expects ``SUPABASE_URL`` and either
    ``SUPABASE_SERVICE_ROLE_KEY`` (preferred, bypasses RLS) or
    ``SUPABASE_ANON_KEY``.

    Transactions:
        PostgREST has no client-side transactions. ``transaction`` keeps an
        undo journal and, when the callback fails, deletes rows it created
        and restores rows it updated or deleted. Other writers can observe
        intermediate state; atomicity holds on failure, isolation does not.

    Referential integrity:
        Foreign keys are whatever the hosted schema declares.

    Raw SQL:
        ``query`` / ``execute`` call an ``execute_sql`` RPC function that
        must exist in the project.
    """

    provider_name = "supabase"
    capabilities = AdapterCapabilities(
        transactions="compensating",
        realtime=True,
        schema_ddl=False,
    )

    def __init__(self, client: Optional[AsyncClient] = None) -> None:
        """
        Initialize Supabase adapter.

        Args:
            client: Pre-built async client; created on connect when omitted
        """
        self._injected_client = client
        self._client: Optional[AsyncClient] = None
        self._config: Optional[DatabaseConfig] = None
        self._ping_timeout: float = 5.0
        self._journal: Optional[_Journal] = None
        self._channels: Dict[str, Any] = {}
        self._callback_tasks: Set[asyncio.Task] = set()

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    async def connect(self, config: DatabaseConfig) -> None:
        """
        Create the async client and verify it with one request.

        A missing ``users`` table is accepted so a fresh project can connect
        before its migrations ran.

        Raises:
            DatabaseConnectionError: If the project cannot be reached
        """
        if self._client is not None:
            return

        self._config = config
        self._ping_timeout = config.ping_timeout
        try:
            client = self._injected_client
            if client is None:
                client = await asyncio.wait_for(
                    acreate_client(config.supabase_url, config.supabase_key),
                    timeout=config.connect_timeout,
                )
            await asyncio.wait_for(self._round_trip(client), timeout=config.connect_timeout)
        except Exception as e:
            logger.error(f"Failed to initialize Supabase client: {e!r}")
            raise DatabaseConnectionError(
                message=f"Failed to connect to Supabase: {e!r}",
                details={"provider": self.provider_name, "url": config.supabase_url},
            ) from e

        self._client = client
        logger.info(
            f"Supabase client initialized ({config.supabase_key_source or 'injected'} key)"
        )

    @staticmethod
    async def _round_trip(client: AsyncClient) -> None:
        try:
            await client.table(_PING_TABLE).select("id").limit(1).execute()
        except APIError as e:
            if e.code not in PostgresErrorCodes.MISSING_TABLE_CODES:
                raise

    async def disconnect(self) -> None:
        """Remove realtime channels and drop the client."""
        if self._client is None:
            return
        client, self._client = self._client, None
        if self._channels:
            self._channels.clear()
            await client.remove_all_channels()
        for task in list(self._callback_tasks):
            task.cancel()
        logger.info("Supabase client closed")

    def is_connected(self) -> bool:
        return self._client is not None

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            await asyncio.wait_for(self._round_trip(self._client), timeout=self._ping_timeout)
            return True
        except Exception as e:
            logger.warning(f"Supabase ping failed: {e!r}")
            return False

    def _require_client(self) -> AsyncClient:
        if self._client is None:
            raise DatabaseConnectionError(
                message="Supabase client not initialized. Call connect() first.",
                details={"provider": self.provider_name},
            )
        return self._client

    # ==========================================================================
    # ERROR TRANSLATION
    # ==========================================================================

    @asynccontextmanager
    async def _errors(self, table: Optional[str] = None) -> AsyncIterator[None]:
        try:
            yield
        except AppException:
            raise
        except APIError as e:
            code = str(e.code or "")
            message = e.message or str(e)
            if code in PostgresErrorCodes.CONSTRAINT_CODES:
                match = _CONSTRAINT_NAME.search(message)
                raise ConstraintViolationError(
                    message=f"Constraint violation on '{table}': {message}",
                    table=table,
                    constraint=match.group(1) if match else code,
                ) from e
            if code in PostgresErrorCodes.MISSING_TABLE_CODES:
                raise QueryError(
                    message=f"Table '{table}' does not exist",
                    details={"table": table, "code": code},
                ) from e
            if code in PostgresErrorCodes.UNKNOWN_COLUMN_CODES:
                raise ValidationError(
                    message=f"Unknown column for '{table}': {message}",
                    errors={"column": message},
                ) from e
            raise QueryError(
                message=f"Supabase request on '{table}' failed: {message}",
                details={"table": table, "code": code},
            ) from e
        except (httpx.TransportError, asyncio.TimeoutError) as e:
            raise DatabaseConnectionError(
                message=f"Supabase unreachable: {e!r}",
                details={"table": table},
            ) from e

    # ==========================================================================
    # ROW MAPPING
    # ==========================================================================

    @staticmethod
    def _datetime_columns(table: str) -> List[str]:
        schema = get_table_schema(table)
        if schema is None:
            return [DatabaseConstants.CREATED_AT_COLUMN, DatabaseConstants.UPDATED_AT_COLUMN]
        return [
            column.name
            for column in schema.columns
            if ColumnType(column.type) == ColumnType.DATETIME
        ]

    def _decode(self, table: str, row: Optional[Dict[str, Any]]) -> Optional[Record]:
        if row is None:
            return None
        record = dict(row)
        for name in self._datetime_columns(table):
            value = record.get(name)
            if isinstance(value, (str, datetime)):
                record[name] = parse_datetime(value)
        return record

    def _decode_all(self, table: str, rows: Optional[List[Dict[str, Any]]]) -> List[Record]:
        return [self._decode(table, row) for row in rows or []]

    @staticmethod
    def _check_columns(table: str, names: Sequence[str], context: str) -> None:
        schema = get_table_schema(table)
        if schema is None:
            return
        known = set(schema.column_names)
        unknown = [name for name in names if name not in known]
        if unknown:
            raise ValidationError(
                message=f"Unknown column(s) in {context} for '{table}': {', '.join(unknown)}",
                errors={name: f"unknown column in {context}" for name in unknown},
            )

    def _apply_where(self, query: Any, table: str, where: Optional[Dict[str, Any]]) -> Any:
        if not where:
            return query
        self._check_columns(table, list(where), "where")
        for column, value in where.items():
            if value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, _encode(value))
        return query

    # ==========================================================================
    # RAW ACCESS
    # ==========================================================================

    async def _rpc_sql(self, sql: str, params: Optional[Dict[str, Any]]) -> List[Record]:
        client = self._require_client()
        async with self._errors("execute_sql"):
            response = await client.rpc(
                "execute_sql",
                {"query": sql, "parameters": _encode(params or {})},
            ).execute()
        data = response.data
        if data is None:
            return []
        return list(data) if isinstance(data, list) else [data]

    async def query(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Record]:
        return await self._rpc_sql(sql, params)

    async def execute(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> ExecuteResult:
        rows = await self._rpc_sql(sql, params)
        insert_id = rows[0].get("id") if rows and isinstance(rows[0], dict) else None
        return ExecuteResult(affected_rows=len(rows), insert_id=insert_id)

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a Postgres function exposed through PostgREST."""
        client = self._require_client()
        async with self._errors(function):
            response = await client.rpc(function, _encode(params or {})).execute()
        return response.data

    # ==========================================================================
    # READ OPERATIONS
    # ==========================================================================

    async def find_by_id(self, table: str, id: str) -> Optional[Record]:
        client = self._require_client()
        async with self._errors(table):
            response = await client.table(table).select("*").eq("id", id).limit(1).execute()
        rows = response.data or []
        return self._decode(table, rows[0]) if rows else None

    async def find_all(
        self,
        table: str,
        options: Optional[QueryOptions] = None,
    ) -> List[Record]:
        opts = options or QueryOptions()
        if opts.limit == 0:
            return []
        client = self._require_client()

        if opts.select is not None:
            if not opts.select:
                raise ValidationError(
                    message=f"Empty select for '{table}'",
                    errors={"select": "must name at least one column"},
                )
            self._check_columns(table, opts.select, "select")
        query = client.table(table).select(",".join(opts.select) if opts.select is not None else "*")
        query = self._apply_where(query, table, opts.where)

        for order in opts.order_by:
            self._check_columns(table, [order.column], "order_by")
            query = query.order(order.column, desc=order.descending)

        if opts.offset:
            page = opts.limit if opts.limit is not None else DatabaseConstants.SUPABASE_DEFAULT_RANGE
            query = query.range(opts.offset, opts.offset + page - 1)
        elif opts.limit is not None:
            query = query.limit(opts.limit)

        async with self._errors(table):
            response = await query.execute()
        return self._decode_all(table, response.data)

    async def count(
        self,
        table: str,
        criteria: Optional[Dict[str, Any]] = None,
    ) -> int:
        client = self._require_client()
        query = client.table(table).select("*", count="exact", head=True)
        query = self._apply_where(query, table, criteria)
        async with self._errors(table):
            response = await query.execute()
        return int(response.count or 0)

    # ==========================================================================
    # WRITE OPERATIONS
    # ==========================================================================

    def _insert_row(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        record = self._prepare_create(data, with_updated_at=table_has_updated_at(table))
        self._check_columns(table, list(record), "data")
        return _encode_row(record)

    def _update_row(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        changes = self._prepare_update(data, with_updated_at=table_has_updated_at(table))
        self._check_columns(table, list(changes), "data")
        return _encode_row(changes)

    def _not_found(self, table: str, id: str) -> NotFoundError:
        return NotFoundError(
            message=f"No '{table}' record with id '{id}'",
            resource_type=table,
            resource_id=id,
        )

    async def create(self, table: str, data: Dict[str, Any]) -> Record:
        client = self._require_client()
        row = self._insert_row(table, data)
        async with self._errors(table):
            response = await client.table(table).insert(row).execute()
        created = self._decode(table, (response.data or [row])[0])
        if self._journal is not None:
            self._journal.record("create", table, created)
        return created

    async def update(self, table: str, id: str, data: Dict[str, Any]) -> Record:
        client = self._require_client()
        changes = self._update_row(table, data)

        before = None
        if self._journal is not None:
            before = await self.find_by_id(table, id)
            if before is None:
                raise self._not_found(table, id)

        async with self._errors(table):
            response = await client.table(table).update(changes).eq("id", id).execute()
        rows = response.data or []
        if not rows:
            raise self._not_found(table, id)

        if before is not None:
            self._journal.record("update", table, before)
        return self._decode(table, rows[0])

    async def delete(self, table: str, id: str) -> bool:
        client = self._require_client()
        async with self._errors(table):
            response = await client.table(table).delete().eq("id", id).execute()
        rows = response.data or []
        if rows and self._journal is not None:
            self._journal.record("delete", table, self._decode(table, rows[0]))
        return bool(rows)

    # ==========================================================================
    # BULK OPERATIONS
    # ==========================================================================

    async def bulk_create(
        self,
        table: str,
        rows: Sequence[Dict[str, Any]],
    ) -> List[Record]:
        """One multi-row INSERT; PostgREST applies it atomically."""
        if not rows:
            return []
        client = self._require_client()
        prepared = [self._insert_row(table, row) for row in rows]
        async with self._errors(table):
            response = await client.table(table).insert(prepared).execute()
        created = self._decode_all(table, response.data or prepared)
        if self._journal is not None:
            for record in created:
                self._journal.record("create", table, record)
        return created

    async def bulk_update(
        self,
        table: str,
        updates: Sequence[BulkUpdate],
    ) -> List[Record]:
        """
        Apply per-row updates, all or nothing.

        Missing ids are rejected before any write. A failure midway undoes
        the rows already updated and re-raises the original error.
        """
        if not updates:
            return []
        client = self._require_client()
        ids = [item.id for item in updates]
        async with self._errors(table):
            response = await client.table(table).select("id").in_("id", ids).execute()
        existing = {row["id"] for row in response.data or []}
        missing = [id_ for id_ in ids if id_ not in existing]
        if missing:
            raise self._not_found(table, missing[0])

        async def _apply(handle: BaseDatabaseAdapter) -> List[Record]:
            return [await handle.update(table, item.id, item.data) for item in updates]

        return await self._run_compensated(_apply)

    async def bulk_delete(self, table: str, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        client = self._require_client()
        async with self._errors(table):
            response = await client.table(table).delete().in_("id", list(ids)).execute()
        rows = response.data or []
        if self._journal is not None:
            for row in rows:
                self._journal.record("delete", table, self._decode(table, row))
        return len(rows)

    # ==========================================================================
    # TRANSACTIONS (COMPENSATING)
    # ==========================================================================

    def _bind(self, journal: _Journal) -> "SupabaseAdapter":
        handle = copy.copy(self)
        handle._journal = journal
        return handle

    async def _run_compensated(self, fn: Callable[[BaseDatabaseAdapter], Awaitable[R]]) -> R:
        """Run ``fn`` with a journaling handle; undo its writes if it raises."""
        if self._journal is not None:
            mark = len(self._journal)
            try:
                return await fn(self)
            except Exception:
                await self._compensate(self._journal.pop_since(mark))
                raise

        journal = _Journal()
        try:
            return await fn(self._bind(journal))
        except Exception:
            await self._compensate(journal.pop_since(0))
            raise

    async def transaction(
        self,
        callback: Callable[[BaseDatabaseAdapter], Awaitable[R]],
    ) -> R:
        try:
            return await self._run_compensated(callback)
        except Exception as exc:
            logger.warning(f"Supabase transaction compensated: {exc!r}")
            raise TransactionAbortedError(original=exc) from exc

    async def _compensate(self, entries: List[Tuple[str, str, Record]]) -> None:
        """Undo journal entries newest first."""
        client = self._require_client()
        failures = 0
        for operation, table, row in entries:
            try:
                if operation == "create":
                    await client.table(table).delete().eq("id", row["id"]).execute()
                elif operation == "update":
                    restore = {k: v for k, v in row.items() if k != DatabaseConstants.ID_COLUMN}
                    await client.table(table).update(_encode_row(restore)).eq("id", row["id"]).execute()
                elif operation == "delete":
                    await client.table(table).insert(_encode_row(row)).execute()
            except (APIError, httpx.HTTPError) as e:
                failures += 1
                logger.error(
                    f"Compensation of {operation} on {table}/{row.get('id')} failed: {e!r}"
                )
        if failures:
            logger.error(f"{failures} compensation step(s) failed; data may be inconsistent")

    # ==========================================================================
    # REALTIME
    # ==========================================================================

    def _to_event(self, table: str, payload: Dict[str, Any]) -> RealtimeEvent:
        data = payload.get("data", payload) if isinstance(payload, dict) else {}
        kind = data.get("type") or data.get("eventType") or "UPDATE"
        record = data.get("record") or data.get("new") or None
        old_record = data.get("old_record") or data.get("old") or None
        timestamp = data.get("commit_timestamp")
        return RealtimeEvent(
            type=RealtimeEventType(str(kind).upper()),
            table=data.get("table") or table,
            record=self._decode(table, record) if record else None,
            old_record=self._decode(table, old_record) if old_record else None,
            schema=data.get("schema") or "public",
            timestamp=parse_datetime(timestamp) if timestamp else utc_now(),
        )

    def _dispatch(self, callback: RealtimeCallback, event: RealtimeEvent) -> None:
        result = callback(event)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_tasks.discard)

    async def subscribe(self, table: str, callback: RealtimeCallback) -> Unsubscribe:
        """
        Subscribe to INSERT/UPDATE/DELETE on ``table``.

        ``callback`` may be sync or async. Returns an async callable that
        removes the channel.
        """
        client = self._require_client()
        subscription_id = generate_uuid()

        def _on_change(payload: Dict[str, Any]) -> None:
            try:
                self._dispatch(callback, self._to_event(table, payload))
            except Exception:
                logger.exception(f"Realtime callback for '{table}' raised")

        channel = client.channel(f"table_{table}_{subscription_id}")
        channel.on_postgres_changes("*", callback=_on_change, table=table, schema="public")
        async with self._errors(table):
            await channel.subscribe()
        self._channels[subscription_id] = channel
        logger.info(f"Subscribed to realtime changes on '{table}'")

        async def unsubscribe() -> None:
            subscribed = self._channels.pop(subscription_id, None)
            if subscribed is not None and self._client is not None:
                await self._client.remove_channel(subscribed)
                logger.info(f"Unsubscribed from realtime changes on '{table}'")

        return unsubscribe

    # ==========================================================================
    # SCHEMA OPERATIONS
    # ==========================================================================

    def _ddl_unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            message=f"{operation} must be done through Supabase migrations or the SQL editor",
            provider=self.provider_name,
            operation=operation,
        )

    async def has_table(self, table: str) -> bool:
        client = self._require_client()
        try:
            await client.table(table).select("*").limit(1).execute()
        except APIError as e:
            if e.code in PostgresErrorCodes.MISSING_TABLE_CODES:
                return False
            raise QueryError(
                message=f"Could not inspect table '{table}': {e.message}",
                details={"table": table, "code": e.code},
            ) from e
        return True

    async def create_table(self, table: str, schema: TableSchema) -> None:
        raise self._ddl_unsupported("create_table")

    async def drop_table(self, table: str) -> None:
        raise self._ddl_unsupported("drop_table")

    async def add_column(self, table: str, column: ColumnDefinition) -> None:
        raise self._ddl_unsupported("add_column")

    async def drop_column(self, table: str, column: str) -> None:
        raise self._ddl_unsupported("drop_column")

    # ==========================================================================
    # INTROSPECTION
    # ==========================================================================

    def get_pool_status(self) -> Dict[str, Any]:
        return {
            "realtime_channels": len(self._channels),
            "pending_callbacks": len(self._callback_tasks),
        }
