# ==============================================================================
# SQLALCHEMY ADAPTER - Shared SQL Implementation
# ==============================================================================
# SQLAlchemy 2 async Core implementation of the adapter contract.
# SQLite and PostgreSQL only differ in engine construction.
# ==============================================================================

from __future__ import annotations

import asyncio
import copy
import logging
import re
from abc import abstractmethod
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    TypeVar,
)

import sqlalchemy as sa
from sqlalchemy import (
    Column,
    ForeignKeyConstraint,
    Index,
    MetaData,
    Table,
    delete,
    func,
    insert,
    inspect,
    select,
    text,
    update,
)
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    NoSuchTableError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from skystage_db.core.exceptions import (
    AppException,
    ConstraintViolationError,
    DatabaseConnectionError,
    NotFoundError,
    QueryError,
    TransactionAbortedError,
    ValidationError,
)
from skystage_db.database.adapters.base_adapter import (
    AdapterCapabilities,
    BaseDatabaseAdapter,
)
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.types import (
    BulkUpdate,
    ColumnDefinition,
    ColumnType,
    ExecuteResult,
    QueryOptions,
    Record,
    TableSchema,
)
from skystage_db.utils.helpers import ensure_utc, parse_datetime

logger = logging.getLogger(__name__)

R = TypeVar("R")

_DDL_STATEMENT = re.compile(r"^\s*(create|alter|drop)\s", re.IGNORECASE)


def column_type(definition: ColumnDefinition) -> sa.types.TypeEngine:
    """Map a portable column type onto a SQLAlchemy type."""
    kind = ColumnType(definition.type)
    if kind == ColumnType.STRING:
        return sa.String(definition.length or 255)
    if kind == ColumnType.TEXT:
        return sa.Text()
    if kind == ColumnType.INTEGER:
        return sa.Integer()
    if kind == ColumnType.BIGINT:
        return sa.BigInteger()
    if kind == ColumnType.DECIMAL:
        return sa.Float()
    if kind == ColumnType.BOOLEAN:
        return sa.Boolean()
    if kind == ColumnType.DATETIME:
        return sa.DateTime(timezone=True)
    if kind == ColumnType.DATE:
        return sa.Date()
    if kind == ColumnType.JSON:
        return sa.JSON()
    return sa.String(36)


def server_default(definition: ColumnDefinition) -> Any:
    """Render a column default as a server-side DEFAULT clause."""
    value = definition.default
    if value is None:
        return None
    if isinstance(value, bool):
        return sa.true() if value else sa.false()
    if isinstance(value, (int, float)):
        return text(str(value))
    if value == "now" and ColumnType(definition.type) == ColumnType.DATETIME:
        return func.current_timestamp()
    return str(value)


class _TableCatalog:
    """Reflected tables, shared between an adapter and its transaction handles."""

    def __init__(self) -> None:
        self.metadata = MetaData()
        self.lock = asyncio.Lock()

    def get(self, name: str) -> Optional[Table]:
        return self.metadata.tables.get(name)

    def invalidate(self) -> None:
        self.metadata = MetaData()


class SQLAlchemyAdapter(BaseDatabaseAdapter):
    """
    Adapter contract on top of SQLAlchemy async Core.

    Tables are reflected on first use and cached until a schema operation
    runs. Transaction handles are shallow copies pinned to one
    ``AsyncConnection``; every operation on a handle runs on that
    connection, and nested ``transaction`` calls open a savepoint.

    Subclasses provide ``_create_engine`` and may hook ``_before_connect``.
    """

    provider_name = "sql"
    capabilities = AdapterCapabilities(transactions="native", realtime=False, schema_ddl=True)

    def __init__(self) -> None:
        self._engine: Optional[AsyncEngine] = None
        self._config: Optional[DatabaseConfig] = None
        self._catalog = _TableCatalog()
        self._conn: Optional[AsyncConnection] = None
        self._ping_timeout: float = 5.0

    # ==========================================================================
    # ENGINE HOOKS
    # ==========================================================================

    @abstractmethod
    def _create_engine(self, config: DatabaseConfig) -> AsyncEngine:
        """Build the async engine for ``config``."""

    def _before_connect(self, config: DatabaseConfig) -> None:
        """Prepare anything the engine needs (directories, ...)."""

    def _insert_id(self, result: Any) -> Optional[Any]:
        return None

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    async def connect(self, config: DatabaseConfig) -> None:
        """
        Create the engine and verify it with one round-trip.

        The verification is bounded by ``config.connect_timeout``.

        Raises:
            DatabaseConnectionError: If the backend cannot be reached
        """
        if self._engine is not None:
            logger.debug(f"{self.provider_name} adapter already connected")
            return

        self._config = config
        self._ping_timeout = config.ping_timeout
        engine: Optional[AsyncEngine] = None
        connected = False

        try:
            self._before_connect(config)
            engine = self._create_engine(config)
            await asyncio.wait_for(self._verify(engine), timeout=config.connect_timeout)
            connected = True
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Failed to connect to {self.provider_name}: {e!r}")
            raise DatabaseConnectionError(
                message=f"{self.provider_name} connection failed: {e!r}",
                details={"provider": self.provider_name},
            ) from e
        finally:
            # Also runs when a caller's timeout cancels the attempt
            if not connected and engine is not None:
                await engine.dispose()

        self._engine = engine
        self._catalog.invalidate()
        logger.info(f"{self.provider_name} adapter connected successfully")

    @staticmethod
    async def _verify(engine: AsyncEngine) -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self) -> None:
        """Dispose the engine and its pool."""
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        await engine.dispose()
        self._catalog.invalidate()
        logger.info(f"{self.provider_name} adapter disconnected")

    def is_connected(self) -> bool:
        return self._engine is not None

    async def ping(self) -> bool:
        """
        Verify database connectivity.

        Returns:
            True if ``SELECT 1`` completed within the ping timeout
        """
        if self._engine is None:
            return False
        try:
            await asyncio.wait_for(self._verify(self._engine), timeout=self._ping_timeout)
            return True
        except Exception as e:
            logger.warning(f"{self.provider_name} ping failed: {e!r}")
            return False

    # ==========================================================================
    # CONNECTION HANDLING
    # ==========================================================================

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseConnectionError(
                message=f"{self.provider_name} adapter is not connected",
                details={"provider": self.provider_name},
            )
        return self._engine

    @asynccontextmanager
    async def _begin(self) -> AsyncIterator[AsyncConnection]:
        """Pinned transaction connection, or a fresh one committed on exit."""
        if self._conn is not None:
            yield self._conn
            return
        async with self._require_engine().begin() as conn:
            yield conn

    def _bind(self, conn: AsyncConnection) -> "SQLAlchemyAdapter":
        handle = copy.copy(self)
        handle._conn = conn
        return handle

    @asynccontextmanager
    async def _errors(self, table: Optional[str] = None) -> AsyncIterator[None]:
        """Translate SQLAlchemy / driver errors into the layer's taxonomy."""
        try:
            yield
        except AppException:
            raise
        except IntegrityError as e:
            constraint = self._constraint_name(e)
            raise ConstraintViolationError(
                message=f"Constraint violation on '{table}': {e.orig}",
                table=table,
                constraint=constraint,
            ) from e
        except NoSuchTableError as e:
            raise QueryError(
                message=f"Table '{table}' does not exist",
                details={"table": table},
            ) from e
        except DBAPIError as e:
            if e.connection_invalidated:
                raise DatabaseConnectionError(
                    message=f"Connection lost during query on '{table}': {e.orig}",
                    details={"table": table},
                ) from e
            raise QueryError(
                message=f"Query on '{table}' failed: {e.orig}",
                details={"table": table},
            ) from e
        except SQLAlchemyError as e:
            raise QueryError(
                message=f"Query on '{table}' failed: {e}",
                details={"table": table},
            ) from e
        except (OSError, asyncio.TimeoutError) as e:
            raise DatabaseConnectionError(
                message=f"{self.provider_name} unreachable: {e!r}",
                details={"table": table},
            ) from e

    @staticmethod
    def _constraint_name(error: IntegrityError) -> Optional[str]:
        orig = error.orig
        for candidate in (orig, getattr(orig, "__cause__", None)):
            name = getattr(candidate, "constraint_name", None)
            if name:
                return name
        message = str(orig)
        if "constraint failed:" in message:
            return message.split("constraint failed:", 1)[1].strip()
        return None

    # ==========================================================================
    # TABLE METADATA
    # ==========================================================================

    async def _table(self, name: str) -> Table:
        table = self._catalog.get(name)
        if table is not None:
            return table

        # Table() registers itself before reflection finishes
        async with self._catalog.lock:
            table = self._catalog.get(name)
            if table is not None:
                return table
            metadata = self._catalog.metadata
            async with self._begin() as conn:
                return await conn.run_sync(
                    lambda sync_conn: Table(name, metadata, autoload_with=sync_conn)
                )

    @staticmethod
    def _check_columns(table: Table, names: Iterable[str], context: str) -> None:
        unknown = [name for name in names if name not in table.c]
        if unknown:
            raise ValidationError(
                message=f"Unknown column(s) in {context} for '{table.name}': {', '.join(unknown)}",
                errors={name: f"unknown column in {context}" for name in unknown},
            )

    @staticmethod
    def _coerce(table: Table, data: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize datetimes to UTC and parse ISO strings for date columns."""
        values: Dict[str, Any] = {}
        for key, value in data.items():
            column_type_ = table.c[key].type
            try:
                if isinstance(value, datetime):
                    value = ensure_utc(value)
                elif isinstance(value, str) and isinstance(column_type_, sa.DateTime):
                    value = parse_datetime(value)
                elif isinstance(value, str) and isinstance(column_type_, sa.Date):
                    value = date.fromisoformat(value)
                elif value is None and isinstance(column_type_, sa.JSON):
                    # SQL NULL rather than the JSON literal 'null'
                    value = sa.null()
            except ValueError as e:
                raise ValidationError(
                    message=f"Invalid date value for '{table.name}.{key}'",
                    errors={key: str(e)},
                ) from e
            values[key] = value
        return values

    def _conditions(self, table: Table, where: Optional[Dict[str, Any]]) -> List[Any]:
        if not where:
            return []
        self._check_columns(table, where, "where")
        values = self._coerce(table, {k: v for k, v in where.items() if v is not None})
        conditions = []
        for key, value in where.items():
            column = table.c[key]
            conditions.append(column.is_(None) if value is None else column == values[key])
        return conditions

    @staticmethod
    def _to_record(row: Any) -> Record:
        record = dict(row._mapping)
        for key, value in record.items():
            if isinstance(value, datetime):
                record[key] = ensure_utc(value)
        return record

    def _select(self, table: Table, options: QueryOptions) -> Any:
        if options.select is not None:
            if not options.select:
                raise ValidationError(
                    message=f"Empty select for '{table.name}'",
                    errors={"select": "must name at least one column"},
                )
            self._check_columns(table, options.select, "select")
            stmt = select(*[table.c[name] for name in options.select])
        else:
            stmt = select(table)

        conditions = self._conditions(table, options.where)
        if conditions:
            stmt = stmt.where(*conditions)

        for order in options.order_by:
            self._check_columns(table, [order.column], "order_by")
            column = table.c[order.column]
            stmt = stmt.order_by(column.desc() if order.descending else column.asc())

        if options.offset:
            stmt = stmt.offset(options.offset)
        if options.limit is not None:
            stmt = stmt.limit(options.limit)
        return stmt

    # ==========================================================================
    # RAW ACCESS
    # ==========================================================================

    async def query(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Record]:
        async with self._errors():
            async with self._begin() as conn:
                result = await conn.execute(text(sql), params or {})
                return [self._to_record(row) for row in result]

    async def execute(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> ExecuteResult:
        async with self._errors():
            async with self._begin() as conn:
                result = await conn.execute(text(sql), params or {})
                outcome = ExecuteResult(
                    affected_rows=max(result.rowcount or 0, 0),
                    insert_id=self._insert_id(result),
                )
        if _DDL_STATEMENT.match(sql):
            self._catalog.invalidate()
        return outcome

    # ==========================================================================
    # READ OPERATIONS
    # ==========================================================================

    async def find_by_id(self, table: str, id: str) -> Optional[Record]:
        async with self._errors(table):
            tbl = await self._table(table)
            async with self._begin() as conn:
                result = await conn.execute(select(tbl).where(tbl.c.id == id))
                row = result.first()
        return self._to_record(row) if row is not None else None

    async def find_all(
        self,
        table: str,
        options: Optional[QueryOptions] = None,
    ) -> List[Record]:
        async with self._errors(table):
            tbl = await self._table(table)
            stmt = self._select(tbl, options or QueryOptions())
            async with self._begin() as conn:
                result = await conn.execute(stmt)
                return [self._to_record(row) for row in result]

    async def count(
        self,
        table: str,
        criteria: Optional[Dict[str, Any]] = None,
    ) -> int:
        async with self._errors(table):
            tbl = await self._table(table)
            stmt = select(func.count()).select_from(tbl)
            conditions = self._conditions(tbl, criteria)
            if conditions:
                stmt = stmt.where(*conditions)
            async with self._begin() as conn:
                result = await conn.execute(stmt)
                return int(result.scalar_one() or 0)

    # ==========================================================================
    # WRITE OPERATIONS
    # ==========================================================================

    def _insert_values(self, table: Table, data: Dict[str, Any]) -> Dict[str, Any]:
        record = self._prepare_create(data, with_updated_at="updated_at" in table.c)
        self._check_columns(table, record, "data")
        return self._coerce(table, record)

    def _update_values(self, table: Table, data: Dict[str, Any]) -> Dict[str, Any]:
        changes = self._prepare_update(data, with_updated_at="updated_at" in table.c)
        self._check_columns(table, changes, "data")
        return self._coerce(table, changes)

    async def _fetch(self, conn: AsyncConnection, table: Table, id: str) -> Optional[Record]:
        result = await conn.execute(select(table).where(table.c.id == id))
        row = result.first()
        return self._to_record(row) if row is not None else None

    async def _update_row(
        self,
        conn: AsyncConnection,
        table: Table,
        id: str,
        changes: Dict[str, Any],
    ) -> Record:
        if changes:
            result = await conn.execute(
                update(table).where(table.c.id == id).values(**changes)
            )
            found = result.rowcount > 0
            record = await self._fetch(conn, table, id) if found else None
        else:
            record = await self._fetch(conn, table, id)

        if record is None:
            raise NotFoundError(
                message=f"No '{table.name}' record with id '{id}'",
                resource_type=table.name,
                resource_id=id,
            )
        return record

    async def create(self, table: str, data: Dict[str, Any]) -> Record:
        async with self._errors(table):
            tbl = await self._table(table)
            values = self._insert_values(tbl, data)
            async with self._begin() as conn:
                await conn.execute(insert(tbl).values(**values))
                record = await self._fetch(conn, tbl, values["id"])
        logger.debug(f"Created {table} record {values['id']}")
        return record

    async def update(self, table: str, id: str, data: Dict[str, Any]) -> Record:
        async with self._errors(table):
            tbl = await self._table(table)
            changes = self._update_values(tbl, data)
            async with self._begin() as conn:
                return await self._update_row(conn, tbl, id, changes)

    async def delete(self, table: str, id: str) -> bool:
        async with self._errors(table):
            tbl = await self._table(table)
            async with self._begin() as conn:
                result = await conn.execute(delete(tbl).where(tbl.c.id == id))
                return result.rowcount > 0

    # ==========================================================================
    # BULK OPERATIONS
    # ==========================================================================

    async def bulk_create(
        self,
        table: str,
        rows: Sequence[Dict[str, Any]],
    ) -> List[Record]:
        if not rows:
            return []
        async with self._errors(table):
            tbl = await self._table(table)
            prepared = [self._insert_values(tbl, row) for row in rows]
            async with self._begin() as conn:
                for values in prepared:
                    await conn.execute(insert(tbl).values(**values))
                ids = [values["id"] for values in prepared]
                result = await conn.execute(select(tbl).where(tbl.c.id.in_(ids)))
                by_id = {row.id: self._to_record(row) for row in result}
        logger.debug(f"Bulk created {len(prepared)} {table} records")
        return [by_id[id_] for id_ in ids]

    async def bulk_update(
        self,
        table: str,
        updates: Sequence[BulkUpdate],
    ) -> List[Record]:
        if not updates:
            return []
        async with self._errors(table):
            tbl = await self._table(table)
            prepared = [(item.id, self._update_values(tbl, item.data)) for item in updates]
            async with self._begin() as conn:
                return [
                    await self._update_row(conn, tbl, id_, changes)
                    for id_, changes in prepared
                ]

    async def bulk_delete(self, table: str, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        async with self._errors(table):
            tbl = await self._table(table)
            async with self._begin() as conn:
                result = await conn.execute(delete(tbl).where(tbl.c.id.in_(list(ids))))
                return max(result.rowcount or 0, 0)

    # ==========================================================================
    # TRANSACTIONS
    # ==========================================================================

    async def transaction(
        self,
        callback: Callable[[BaseDatabaseAdapter], Awaitable[R]],
    ) -> R:
        """
        Run ``callback`` on one pinned connection.

        Commits when the callback returns; rolls back and raises
        ``TransactionAbortedError`` when it raises. Called on a handle,
        opens a savepoint instead.
        """
        if self._conn is not None:
            return await self._savepoint(callback)

        async with self._errors():
            async with self._require_engine().connect() as conn:
                trans = await conn.begin()
                try:
                    result = await callback(self._bind(conn))
                except Exception as exc:
                    await trans.rollback()
                    logger.warning(f"Transaction rolled back: {exc!r}")
                    raise TransactionAbortedError(original=exc) from exc
                await trans.commit()
                return result

    async def _savepoint(self, callback: Callable[[BaseDatabaseAdapter], Awaitable[R]]) -> R:
        conn = self._conn
        assert conn is not None
        savepoint = await conn.begin_nested()
        try:
            result = await callback(self)
        except Exception as exc:
            await savepoint.rollback()
            logger.debug(f"Savepoint rolled back: {exc!r}")
            raise TransactionAbortedError(
                message="Nested transaction rolled back to savepoint",
                original=exc,
            ) from exc
        await savepoint.commit()
        return result

    # ==========================================================================
    # SCHEMA OPERATIONS
    # ==========================================================================

    def build_table(self, name: str, schema: TableSchema, metadata: MetaData) -> Table:
        """Construct a SQLAlchemy ``Table`` from a portable definition."""
        columns = [
            Column(
                definition.name,
                column_type(definition),
                primary_key=definition.primary_key,
                nullable=definition.nullable and not definition.primary_key,
                unique=definition.unique or None,
                server_default=server_default(definition),
            )
            for definition in schema.columns
        ]
        constraints = [
            ForeignKeyConstraint(
                fk.columns,
                [f"{fk.referenced_table}.{column}" for column in fk.referenced_columns],
                ondelete=fk.on_delete,
                onupdate=fk.on_update,
            )
            for fk in schema.foreign_keys
        ]
        table = Table(name, metadata, *columns, *constraints)
        for index in schema.indexes:
            Index(index.name, *[table.c[column] for column in index.columns], unique=index.unique)
        return table

    async def has_table(self, table: str) -> bool:
        async with self._errors(table):
            async with self._begin() as conn:
                return await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).has_table(table)
                )

    async def create_table(self, table: str, schema: TableSchema) -> None:
        def _create(sync_conn: Any) -> None:
            metadata = MetaData()
            for fk in schema.foreign_keys:
                if fk.referenced_table != table:
                    Table(fk.referenced_table, metadata, autoload_with=sync_conn)
            self.build_table(table, schema, metadata).create(sync_conn, checkfirst=True)

        async with self._errors(table):
            async with self._begin() as conn:
                await conn.run_sync(_create)
        self._catalog.invalidate()
        logger.info(f"Created table '{table}'")

    async def drop_table(self, table: str) -> None:
        async with self._errors(table):
            async with self._begin() as conn:
                await conn.run_sync(
                    lambda sync_conn: Table(table, MetaData()).drop(sync_conn, checkfirst=True)
                )
        self._catalog.invalidate()
        logger.info(f"Dropped table '{table}'")

    async def add_column(self, table: str, column: ColumnDefinition) -> None:
        def _add(sync_conn: Any) -> None:
            dialect = sync_conn.dialect
            quote = dialect.identifier_preparer.quote
            ddl = (
                f"ALTER TABLE {quote(table)} ADD COLUMN {quote(column.name)} "
                f"{column_type(column).compile(dialect=dialect)}"
            )
            if column.default is not None:
                literal = sa.literal(column.default).compile(
                    dialect=dialect, compile_kwargs={"literal_binds": True}
                )
                ddl += f" DEFAULT {literal}"
            if not column.nullable:
                ddl += " NOT NULL"
            if column.unique:
                ddl += " UNIQUE"
            sync_conn.execute(text(ddl))

        async with self._errors(table):
            async with self._begin() as conn:
                await conn.run_sync(_add)
        self._catalog.invalidate()

    async def drop_column(self, table: str, column: str) -> None:
        async with self._errors(table):
            async with self._begin() as conn:
                quote = conn.dialect.identifier_preparer.quote
                await conn.execute(
                    text(f"ALTER TABLE {quote(table)} DROP COLUMN {quote(column)}")
                )
        self._catalog.invalidate()

    # ==========================================================================
    # INTROSPECTION
    # ==========================================================================

    def get_pool_status(self) -> Dict[str, Any]:
        """
        Get current connection pool statistics.

        Returns:
            Dict with size, checked_in, checked_out and overflow when the
            pool exposes them
        """
        if self._engine is None:
            return {"size": 0, "checked_in": 0, "checked_out": 0, "overflow": 0}

        pool = self._engine.pool
        status: Dict[str, Any] = {"pool": type(pool).__name__}
        for key, attr in (
            ("size", "size"),
            ("checked_in", "checkedin"),
            ("checked_out", "checkedout"),
            ("overflow", "overflow"),
        ):
            getter = getattr(pool, attr, None)
            if callable(getter):
                status[key] = getter()
        return status
