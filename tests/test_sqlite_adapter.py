# ==============================================================================
# SQLITE ADAPTER TESTS
# ==============================================================================
# Record contract of the SQL adapters, exercised on a migrated SQLite file
# ==============================================================================

import asyncio
import uuid
from datetime import timezone

import pytest

from skystage_db.core.exceptions import (
    ConstraintViolationError,
    DatabaseConnectionError,
    NotFoundError,
    QueryError,
    TransactionAbortedError,
    ValidationError,
)
from skystage_db.database.adapters.sqlite_adapter import SQLiteAdapter
from skystage_db.database.config import DatabaseConfig
from skystage_db.database.types import BulkUpdate, OrderBy, QueryOptions


class TestLifecycle:
    """Tests for connect, ping and disconnect."""

    @pytest.mark.asyncio
    async def test_connect_creates_data_directory(self, sqlite_config: DatabaseConfig):
        """Test the parent directory of the database file is created."""
        adapter = SQLiteAdapter()
        await adapter.connect(sqlite_config)
        try:
            assert sqlite_config.sqlite_path().parent.exists()
            assert adapter.is_connected()
            assert await adapter.ping() is True
        finally:
            await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, sqlite_config: DatabaseConfig):
        """Test disconnecting twice is harmless and ping reports False."""
        adapter = SQLiteAdapter()
        await adapter.connect(sqlite_config)
        await adapter.disconnect()
        await adapter.disconnect()

        assert not adapter.is_connected()
        assert await adapter.ping() is False

    @pytest.mark.asyncio
    async def test_cancelled_connect_disposes_engine(
        self, sqlite_config: DatabaseConfig, monkeypatch
    ):
        """Test an outer timeout during verification still disposes the engine."""
        disposed = []

        class Engine:
            async def dispose(self):
                disposed.append(True)

        async def hang(engine):
            await asyncio.sleep(10)

        adapter = SQLiteAdapter()
        monkeypatch.setattr(adapter, "_create_engine", lambda config: Engine())
        monkeypatch.setattr(adapter, "_verify", hang)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(adapter.connect(sqlite_config), timeout=0.05)

        assert disposed == [True]
        assert not adapter.is_connected()

    @pytest.mark.asyncio
    async def test_operation_before_connect_fails(self):
        """Test using an unconnected adapter raises a connection error."""
        adapter = SQLiteAdapter()
        with pytest.raises(DatabaseConnectionError):
            await adapter.find_all("users")

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        """Test an in-memory database keeps its tables across operations."""
        adapter = SQLiteAdapter()
        await adapter.connect(DatabaseConfig(provider="sqlite", url=":memory:"))
        try:
            await adapter.execute("CREATE TABLE notes (id VARCHAR(36) PRIMARY KEY, body TEXT)")
            await adapter.execute(
                "INSERT INTO notes (id, body) VALUES (:id, :body)",
                {"id": "n1", "body": "hello"},
            )
            rows = await adapter.query("SELECT body FROM notes")
            assert rows == [{"body": "hello"}]
        finally:
            await adapter.disconnect()


class TestCreateAndRead:
    """Tests for create, find_by_id and layer-managed columns."""

    @pytest.mark.asyncio
    async def test_create_assigns_managed_columns(self, sqlite_adapter: SQLiteAdapter):
        """Test id and timestamps are generated and caller values discarded."""
        record = await sqlite_adapter.create(
            "users",
            {
                "id": "caller-chosen",
                "email": "pilot@example.com",
                "password_hash": "x",
                "created_at": "1999-01-01T00:00:00+00:00",
            },
        )

        assert record["id"] != "caller-chosen"
        assert uuid.UUID(record["id"]).version == 4
        assert record["created_at"].tzinfo is not None
        assert record["created_at"].year != 1999
        assert record["updated_at"] == record["created_at"]

    @pytest.mark.asyncio
    async def test_create_then_find_by_id(self, sqlite_adapter: SQLiteAdapter):
        """Test a created record reads back with server defaults applied."""
        created = await sqlite_adapter.create(
            "users",
            {"email": "reader@example.com", "password_hash": "x", "preferences": {"theme": "dark"}},
        )

        found = await sqlite_adapter.find_by_id("users", created["id"])

        assert found["email"] == "reader@example.com"
        assert found["user_type"] == "customer"
        assert found["is_active"] in (True, 1)
        assert found["preferences"] == {"theme": "dark"}
        assert found["created_at"].utcoffset() == timezone.utc.utcoffset(None)

    @pytest.mark.asyncio
    async def test_find_by_id_missing_returns_none(self, sqlite_adapter: SQLiteAdapter):
        """Test an unknown id is not an error."""
        assert await sqlite_adapter.find_by_id("users", "does-not-exist") is None

    @pytest.mark.asyncio
    async def test_table_without_updated_at(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test tables lacking updated_at only receive created_at."""
        user = await make_user()
        session = await sqlite_adapter.create(
            "user_sessions",
            {
                "user_id": user["id"],
                "session_token": "tok",
                "expires_at": "2030-01-01T00:00:00Z",
            },
        )

        assert "updated_at" not in session
        assert session["expires_at"].year == 2030


class TestFindAll:
    """Tests for find_all options and count."""

    @pytest.mark.asyncio
    async def test_where_order_limit_offset(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test filtering, ordering and paging combine."""
        for name in ["carol", "alice", "bob"]:
            await make_user(full_name=name, user_type="operator")
        await make_user(full_name="zed", user_type="customer")

        rows = await sqlite_adapter.find_all(
            "users",
            QueryOptions(
                where={"user_type": "operator"},
                order_by=[OrderBy.asc("full_name")],
                limit=2,
                offset=1,
            ),
        )

        assert [row["full_name"] for row in rows] == ["bob", "carol"]

    @pytest.mark.asyncio
    async def test_select_projects_columns(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test select returns only the named columns."""
        await make_user()

        rows = await sqlite_adapter.find_all("users", QueryOptions(select=["id", "email"]))

        assert set(rows[0]) == {"id", "email"}

    @pytest.mark.asyncio
    async def test_where_none_matches_null(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test a None criterion matches IS NULL, including JSON columns."""
        await make_user(company_name="SkyWorks", preferences={"a": 1})
        await make_user(company_name=None, preferences=None)

        no_company = await sqlite_adapter.find_by("users", {"company_name": None})
        no_prefs = await sqlite_adapter.find_by("users", {"preferences": None})

        assert len(no_company) == 1
        assert len(no_prefs) == 1
        assert no_prefs[0]["company_name"] is None

    @pytest.mark.asyncio
    async def test_count_with_criteria(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test count honours equality criteria."""
        await make_user(user_type="artist")
        await make_user(user_type="artist")
        await make_user(user_type="admin")

        assert await sqlite_adapter.count("users") == 3
        assert await sqlite_adapter.count("users", {"user_type": "artist"}) == 2

    @pytest.mark.asyncio
    async def test_find_one(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test find_one returns the first match or None."""
        user = await make_user(email="one@example.com")

        assert (await sqlite_adapter.find_one("users", {"email": "one@example.com"}))["id"] == user["id"]
        assert await sqlite_adapter.find_one("users", {"email": "none@example.com"}) is None

    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, sqlite_adapter: SQLiteAdapter):
        """Test unknown columns in where or select raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            await sqlite_adapter.find_all("users", QueryOptions(where={"nickname": "x"}))
        assert "nickname" in exc_info.value.errors

        with pytest.raises(ValidationError):
            await sqlite_adapter.find_all("users", QueryOptions(select=["nickname"]))

    @pytest.mark.asyncio
    async def test_empty_select_rejected(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test an empty projection is refused instead of selecting every column."""
        await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await sqlite_adapter.find_all("users", QueryOptions(select=[]))
        assert "select" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_missing_table(self, sqlite_adapter: SQLiteAdapter):
        """Test a table that does not exist raises QueryError."""
        with pytest.raises(QueryError):
            await sqlite_adapter.find_all("no_such_table")


class TestUpdateAndDelete:
    """Tests for update merge semantics and delete idempotence."""

    @pytest.mark.asyncio
    async def test_update_merges_and_refreshes_updated_at(
        self, sqlite_adapter: SQLiteAdapter, make_user
    ):
        """Test update changes only the given fields."""
        user = await make_user(full_name="Before", location="Berlin")

        updated = await sqlite_adapter.update(
            "users",
            user["id"],
            {"full_name": "After", "id": "other", "created_at": "2000-01-01T00:00:00Z"},
        )

        assert updated["id"] == user["id"]
        assert updated["full_name"] == "After"
        assert updated["location"] == "Berlin"
        assert updated["created_at"] == user["created_at"]
        assert updated["updated_at"] >= user["updated_at"]

    @pytest.mark.asyncio
    async def test_update_missing_record(self, sqlite_adapter: SQLiteAdapter):
        """Test updating an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            await sqlite_adapter.update("users", "missing", {"full_name": "x"})
        assert exc_info.value.resource_id == "missing"

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test the second delete of the same id reports False."""
        user = await make_user()

        assert await sqlite_adapter.delete("users", user["id"]) is True
        assert await sqlite_adapter.delete("users", user["id"]) is False
        assert await sqlite_adapter.find_by_id("users", user["id"]) is None


class TestConstraints:
    """Tests for constraint translation."""

    @pytest.mark.asyncio
    async def test_unique_violation(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test a duplicate email raises ConstraintViolationError."""
        await make_user(email="dup@example.com")

        with pytest.raises(ConstraintViolationError) as exc_info:
            await make_user(email="dup@example.com")

        assert exc_info.value.table == "users"
        assert "email" in (exc_info.value.constraint or "")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_not_null_violation(self, sqlite_adapter: SQLiteAdapter):
        """Test a missing required column raises ConstraintViolationError."""
        with pytest.raises(ConstraintViolationError):
            await sqlite_adapter.create("users", {"email": "nohash@example.com"})

    @pytest.mark.asyncio
    async def test_foreign_key_violation(self, sqlite_adapter: SQLiteAdapter):
        """Test foreign keys are enforced."""
        with pytest.raises(ConstraintViolationError):
            await sqlite_adapter.create(
                "bookings",
                {
                    "user_id": str(uuid.uuid4()),
                    "contact_name": "Nobody",
                    "contact_email": "nobody@example.com",
                },
            )

    @pytest.mark.asyncio
    async def test_invalid_date_string(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test an unparseable datetime string raises ValidationError."""
        user = await make_user()
        with pytest.raises(ValidationError):
            await sqlite_adapter.update("users", user["id"], {"last_login": "yesterday-ish"})


class TestBulkOperations:
    """Tests for all-or-nothing bulk writes."""

    @pytest.mark.asyncio
    async def test_bulk_create_preserves_order(self, sqlite_adapter: SQLiteAdapter):
        """Test records come back in input order."""
        rows = [
            {"email": f"bulk{i}@example.com", "password_hash": "x"} for i in range(5)
        ]

        created = await sqlite_adapter.bulk_create("users", rows)

        assert [r["email"] for r in created] == [r["email"] for r in rows]
        assert len({r["id"] for r in created}) == 5

    @pytest.mark.asyncio
    async def test_bulk_create_is_atomic(self, sqlite_adapter: SQLiteAdapter):
        """Test one bad row leaves the table untouched."""
        rows = [
            {"email": "first@example.com", "password_hash": "x"},
            {"email": "first@example.com", "password_hash": "x"},
        ]

        with pytest.raises(ConstraintViolationError):
            await sqlite_adapter.bulk_create("users", rows)

        assert await sqlite_adapter.count("users") == 0

    @pytest.mark.asyncio
    async def test_bulk_update_missing_id_changes_nothing(
        self, sqlite_adapter: SQLiteAdapter, make_user
    ):
        """Test a missing id aborts the whole batch."""
        user = await make_user(full_name="Original")

        with pytest.raises(NotFoundError):
            await sqlite_adapter.bulk_update(
                "users",
                [
                    BulkUpdate(id=user["id"], data={"full_name": "Changed"}),
                    BulkUpdate(id="missing", data={"full_name": "Ghost"}),
                ],
            )

        assert (await sqlite_adapter.find_by_id("users", user["id"]))["full_name"] == "Original"

    @pytest.mark.asyncio
    async def test_bulk_update_and_delete(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test bulk update applies every change and bulk delete counts removals."""
        a, b = await make_user(), await make_user()

        updated = await sqlite_adapter.bulk_update(
            "users",
            [BulkUpdate(id=a["id"], data={"location": "Oslo"}),
             BulkUpdate(id=b["id"], data={"location": "Lima"})],
        )
        removed = await sqlite_adapter.bulk_delete("users", [a["id"], b["id"], "missing"])

        assert [row["location"] for row in updated] == ["Oslo", "Lima"]
        assert removed == 2

    @pytest.mark.asyncio
    async def test_empty_batches(self, sqlite_adapter: SQLiteAdapter):
        """Test empty inputs are no-ops."""
        assert await sqlite_adapter.bulk_create("users", []) == []
        assert await sqlite_adapter.bulk_update("users", []) == []
        assert await sqlite_adapter.bulk_delete("users", []) == 0


class TestTransactions:
    """Tests for transaction commit, rollback and savepoints."""

    @pytest.mark.asyncio
    async def test_commit(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test writes through the handle are visible after commit."""
        user = await make_user()

        async def work(tx):
            await tx.create(
                "bookings",
                {"user_id": user["id"], "contact_name": "A", "contact_email": "a@example.com"},
            )
            await tx.update("users", user["id"], {"full_name": "Booked"})
            return "done"

        assert await sqlite_adapter.transaction(work) == "done"
        assert await sqlite_adapter.count("bookings") == 1
        assert (await sqlite_adapter.find_by_id("users", user["id"]))["full_name"] == "Booked"

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test a failing callback rolls back every write and chains the cause."""
        user = await make_user()

        async def work(tx):
            await tx.create(
                "bookings",
                {"user_id": user["id"], "contact_name": "A", "contact_email": "a@example.com"},
            )
            await tx.update("users", user["id"], {"full_name": "Should vanish"})
            raise RuntimeError("payment declined")

        with pytest.raises(TransactionAbortedError) as exc_info:
            await sqlite_adapter.transaction(work)

        assert isinstance(exc_info.value.original, RuntimeError)
        assert exc_info.value.__cause__ is exc_info.value.original
        assert await sqlite_adapter.count("bookings") == 0
        assert (await sqlite_adapter.find_by_id("users", user["id"]))["full_name"] != "Should vanish"

    @pytest.mark.asyncio
    async def test_handle_reads_own_writes(self, sqlite_adapter: SQLiteAdapter):
        """Test reads through the handle see uncommitted writes."""

        async def work(tx):
            created = await tx.create("users", {"email": "tx@example.com", "password_hash": "x"})
            return await tx.find_by_id("users", created["id"])

        found = await sqlite_adapter.transaction(work)
        assert found["email"] == "tx@example.com"

    @pytest.mark.asyncio
    async def test_nested_transaction_uses_savepoint(self, sqlite_adapter: SQLiteAdapter):
        """Test an inner failure only undoes the inner writes."""

        async def inner(tx):
            await tx.create("users", {"email": "inner@example.com", "password_hash": "x"})
            raise ValueError("inner failure")

        async def outer(tx):
            await tx.create("users", {"email": "outer@example.com", "password_hash": "x"})
            with pytest.raises(TransactionAbortedError):
                await tx.transaction(inner)
            return await tx.count("users")

        assert await sqlite_adapter.transaction(outer) == 1
        emails = [row["email"] for row in await sqlite_adapter.find_all("users")]
        assert emails == ["outer@example.com"]


class TestRawAccess:
    """Tests for query and execute."""

    @pytest.mark.asyncio
    async def test_query_and_execute(self, sqlite_adapter: SQLiteAdapter, make_user):
        """Test raw statements use named parameters."""
        await make_user(user_type="artist")
        await make_user(user_type="artist")

        result = await sqlite_adapter.execute(
            "UPDATE users SET location = :location WHERE user_type = :kind",
            {"location": "Seoul", "kind": "artist"},
        )
        first = await sqlite_adapter.query_first(
            "SELECT COUNT(*) AS n FROM users WHERE location = :location",
            {"location": "Seoul"},
        )

        assert result.affected_rows == 2
        assert first == {"n": 2}

    @pytest.mark.asyncio
    async def test_bad_sql_raises_query_error(self, sqlite_adapter: SQLiteAdapter):
        """Test driver errors are translated."""
        with pytest.raises(QueryError):
            await sqlite_adapter.query("SELEKT nothing")
