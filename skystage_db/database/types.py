# ==============================================================================
# DATABASE TYPES - Provider-Neutral Value Objects
# ==============================================================================
# Query options, bulk payloads, realtime events and table definitions
# exchanged between repositories, adapters and the migration runner
# ==============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from skystage_db.utils.helpers import utc_now

# Plain record shape returned by every adapter
Record = Dict[str, Any]


# ==============================================================================
# QUERY OPTIONS
# ==============================================================================

class SortDirection(str, Enum):
    """Ordering direction for a single ORDER BY column."""
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class OrderBy:
    """One ordering key; keys are applied in list order."""
    column: str
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def desc(cls, column: str) -> "OrderBy":
        return cls(column, SortDirection.DESC)

    @classmethod
    def asc(cls, column: str) -> "OrderBy":
        return cls(column, SortDirection.ASC)

    @property
    def descending(self) -> bool:
        return SortDirection(self.direction) == SortDirection.DESC


@dataclass
class QueryOptions:
    """
    Options shared by ``find_all`` and ``find_by``.

    Attributes:
        limit: Maximum rows returned (None means backend default)
        offset: Rows skipped before the first returned row
        order_by: Ordering keys, applied in order
        select: Column projection (None returns whole rows)
        where: Equality predicates; a None value matches IS NULL
    """
    limit: Optional[int] = None
    offset: Optional[int] = None
    order_by: List[OrderBy] = field(default_factory=list)
    select: Optional[List[str]] = None
    where: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be >= 0")
        if self.offset is not None and self.offset < 0:
            raise ValueError("offset must be >= 0")

    def with_defaults(self, order_by: Sequence[OrderBy]) -> "QueryOptions":
        """Copy with ``order_by`` filled in when the caller gave none."""
        return QueryOptions(
            limit=self.limit,
            offset=self.offset,
            order_by=list(self.order_by) or list(order_by),
            select=list(self.select) if self.select is not None else None,
            where=dict(self.where) if self.where is not None else None,
        )


# ==============================================================================
# WRITE PAYLOADS
# ==============================================================================

@dataclass
class BulkUpdate:
    """One row of a ``bulk_update`` batch."""
    id: str
    data: Dict[str, Any]


@dataclass
class ExecuteResult:
    """Outcome of a raw ``execute`` statement."""
    affected_rows: int = 0
    insert_id: Optional[Any] = None


# ==============================================================================
# REALTIME
# ==============================================================================

class RealtimeEventType(str, Enum):
    """Kinds of row change pushed by realtime-capable backends."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class RealtimeEvent:
    """
    A single row-change notification.

    ``old_record`` is only populated for UPDATE and DELETE, and only with
    the columns the backend replicates.
    """
    type: RealtimeEventType
    table: str
    record: Optional[Record] = None
    old_record: Optional[Record] = None
    schema: str = "public"
    timestamp: datetime = field(default_factory=utc_now)


RealtimeCallback = Callable[[RealtimeEvent], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], Awaitable[None]]


# ==============================================================================
# TABLE DEFINITIONS
# ==============================================================================

class ColumnType(str, Enum):
    """Portable column types understood by every SQL adapter."""
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIGINT = "bigint"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    JSON = "json"
    UUID = "uuid"


@dataclass
class ColumnDefinition:
    """
    Declarative column description.

    ``default`` is a Python value applied by the database on insert
    (rendered as a server default); ``"now"`` on a datetime column means
    the current timestamp.
    """
    name: str
    type: ColumnType
    length: Optional[int] = None
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    default: Any = None


@dataclass
class IndexDefinition:
    name: str
    columns: List[str]
    unique: bool = False


@dataclass
class ForeignKeyDefinition:
    columns: List[str]
    referenced_table: str
    referenced_columns: List[str] = field(default_factory=lambda: ["id"])
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


@dataclass
class TableSchema:
    """Columns, indexes and foreign keys of one table."""
    columns: List[ColumnDefinition]
    indexes: List[IndexDefinition] = field(default_factory=list)
    foreign_keys: List[ForeignKeyDefinition] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def has_column(self, name: str) -> bool:
        return any(column.name == name for column in self.columns)
