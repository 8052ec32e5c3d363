# ==============================================================================
# BASE REPOSITORY - Generic Data Access Abstraction
# ==============================================================================
# Repository Pattern implementation over the provider contract.
# Repositories are provider-agnostic: the same code runs on every backend.
# ==============================================================================

from __future__ import annotations

import logging
from typing import (
    Any,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from skystage_db.core.exceptions import ValidationError
from skystage_db.database.adapters.base_adapter import BaseDatabaseAdapter
from skystage_db.database.context import get_database
from skystage_db.database.types import BulkUpdate, OrderBy, QueryOptions, Record

logger = logging.getLogger(__name__)

# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=BaseModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

S = TypeVar("S", bound=BaseModel)
RepoT = TypeVar("RepoT", bound="BaseRepository")

WriteInput = Union[BaseModel, Mapping[str, Any]]


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base repository providing standard CRUD operations for one table.

    Generic Parameters:
        ModelType: Entity schema returned by reads and writes
        CreateSchemaType: Pydantic schema validating ``create`` input
        UpdateSchemaType: Pydantic schema validating ``update`` input

    Adapter resolution:
        An injected adapter (e.g. a transaction handle) is used as is.
        Otherwise the active provider is looked up on every call, so a
        repository built before initialization works once the database
        is ready, and follows a provider switch.

    Example:
        >>> class UserRepository(BaseRepository[User, UserCreate, UserUpdate]):
        ...     table_name = "users"
        ...     entity_schema = User
        ...     create_schema = UserCreate
        ...     update_schema = UserUpdate
        ...
        >>> repo = UserRepository()
        >>> user = await repo.create(UserCreate(email="test@example.com", password_hash="x"))
    """

    table_name: str
    entity_schema: Type[ModelType]
    create_schema: Type[CreateSchemaType]
    update_schema: Type[UpdateSchemaType]
    default_order: Tuple[OrderBy, ...] = ()

    def __init__(self, adapter: Optional[BaseDatabaseAdapter] = None) -> None:
        """
        Args:
            adapter: Adapter or transaction handle; the active provider
                when None
        """
        self._adapter = adapter

    @property
    def adapter(self) -> BaseDatabaseAdapter:
        if self._adapter is not None:
            return self._adapter
        return get_database()

    def with_adapter(self: RepoT, adapter: BaseDatabaseAdapter) -> RepoT:
        """Same repository bound to ``adapter`` (typically a transaction handle)."""
        return type(self)(adapter)

    # ==========================================================================
    # CONVERSION
    # ==========================================================================

    def _to_entity(self, data: Record) -> ModelType:
        """Convert a stored record to the entity schema."""
        return self.entity_schema.model_validate(data)

    def _to_entities(self, rows: Sequence[Record]) -> List[ModelType]:
        return [self._to_entity(row) for row in rows]

    @staticmethod
    def _validate(schema: Type[S], data: WriteInput) -> S:
        """
        Coerce ``data`` into ``schema``.

        Raises:
            ValidationError: Field-level errors keyed by dotted field path
        """
        if isinstance(data, schema):
            return data
        raw = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
        try:
            return schema.model_validate(raw)
        except PydanticValidationError as e:
            errors = {
                ".".join(str(part) for part in err["loc"]) or "__root__": err["msg"]
                for err in e.errors()
            }
            raise ValidationError(
                message=f"Invalid {schema.__name__}",
                errors=errors,
            ) from e

    def _create_payload(self, data: WriteInput) -> Dict[str, Any]:
        return self._validate(self.create_schema, data).model_dump()

    def _update_payload(self, data: WriteInput) -> Dict[str, Any]:
        return self._validate(self.update_schema, data).model_dump(exclude_unset=True)

    def _options(self, options: Optional[QueryOptions]) -> QueryOptions:
        return (options or QueryOptions()).with_defaults(self.default_order)

    def _rows_to_result(
        self,
        rows: List[Record],
        options: QueryOptions,
    ) -> List[Any]:
        # Partial rows are not entities
        if options.select is not None:
            return rows
        return self._to_entities(rows)

    # ==========================================================================
    # READ OPERATIONS
    # ==========================================================================

    async def find_by_id(self, id: str) -> Optional[ModelType]:
        """
        Retrieve entity by ID.

        Returns:
            Entity if found, None otherwise
        """
        row = await self.adapter.find_by_id(self.table_name, id)
        return self._to_entity(row) if row else None

    async def find_all(self, options: Optional[QueryOptions] = None) -> List[Any]:
        """
        List entities (plain dicts when ``options.select`` projects).

        The repository's default ordering applies when none is given.
        """
        opts = self._options(options)
        rows = await self.adapter.find_all(self.table_name, opts)
        return self._rows_to_result(rows, opts)

    async def find_by(
        self,
        criteria: Dict[str, Any],
        options: Optional[QueryOptions] = None,
    ) -> List[Any]:
        opts = self._options(options)
        rows = await self.adapter.find_by(self.table_name, criteria, opts)
        return self._rows_to_result(rows, opts)

    async def find_one(self, criteria: Dict[str, Any]) -> Optional[ModelType]:
        row = await self.adapter.find_one(self.table_name, criteria)
        return self._to_entity(row) if row else None

    async def count(self, criteria: Optional[Dict[str, Any]] = None) -> int:
        return await self.adapter.count(self.table_name, criteria)

    async def exists(self, id: str) -> bool:
        return await self.adapter.find_by_id(self.table_name, id) is not None

    # ==========================================================================
    # WRITE OPERATIONS
    # ==========================================================================

    async def create(self, data: WriteInput) -> ModelType:
        """
        Create a new entity.

        Args:
            data: Create schema instance or mapping validated against it

        Returns:
            Created entity with generated id and timestamps

        Raises:
            ValidationError: Input does not match the create schema
            ConstraintViolationError: Unique or required constraint broken
        """
        row = await self.adapter.create(self.table_name, self._create_payload(data))
        return self._to_entity(row)

    async def update(self, id: str, data: WriteInput) -> ModelType:
        """
        Merge the fields set in ``data`` into an existing entity.

        Raises:
            NotFoundError: No entity has this id
        """
        row = await self.adapter.update(self.table_name, id, self._update_payload(data))
        return self._to_entity(row)

    async def delete(self, id: str) -> bool:
        """Delete by id; False when the id was absent."""
        return await self.adapter.delete(self.table_name, id)

    # ==========================================================================
    # BULK OPERATIONS
    # ==========================================================================

    async def bulk_create(self, items: Sequence[WriteInput]) -> List[ModelType]:
        """Create many entities, all or nothing, in input order."""
        payloads = [self._create_payload(item) for item in items]
        rows = await self.adapter.bulk_create(self.table_name, payloads)
        return self._to_entities(rows)

    async def bulk_update(
        self,
        updates: Sequence[Tuple[str, WriteInput]],
    ) -> List[ModelType]:
        """Apply ``(id, changes)`` pairs, all or nothing."""
        batch = [
            BulkUpdate(id=id, data=self._update_payload(changes))
            for id, changes in updates
        ]
        rows = await self.adapter.bulk_update(self.table_name, batch)
        return self._to_entities(rows)

    async def bulk_delete(self, ids: Sequence[str]) -> int:
        return await self.adapter.bulk_delete(self.table_name, ids)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(table='{self.table_name}')"
