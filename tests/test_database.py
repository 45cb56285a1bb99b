"""
Tests for the document stores.

Covers:
- In-memory store isolation, counters and failure injection
- PostgreSQL store: statements sent and error classification
"""

import asyncio
import json

import pytest

from work_order_tracker.core.exceptions import PermanentStoreError, TransientStoreError
from work_order_tracker.utils.database import InMemoryDocumentStore, PostgresDocumentStore


class FakeConnection:
    """Records statements and replays canned results, like an asyncpg connection."""

    def __init__(self, results=None):
        self.results = dict(results or {})
        self.statements = []

    def _record(self, method, sql, args):
        self.statements.append((method, " ".join(sql.split()), args))
        return self.results.get(method)

    async def fetchrow(self, sql, *args):
        return self._record("fetchrow", sql, args)

    async def fetch(self, sql, *args):
        return self._record("fetch", sql, args) or []

    async def fetchval(self, sql, *args):
        return self._record("fetchval", sql, args)

    async def execute(self, sql, *args):
        return self._record("execute", sql, args)


class FakePool:
    def __init__(self, connection):
        self.connection = connection

    def acquire(self):
        return self

    async def __aenter__(self):
        return self.connection

    async def __aexit__(self, exc_type, exc, tb):
        return False


def postgres_with(connection):
    store = PostgresDocumentStore("postgresql://localhost/tracker")
    store.pool = FakePool(connection)
    return store


class TestInMemoryDocumentStore:
    """Tests for the dictionary-backed store."""

    async def test_documents_are_copied(self, store):
        data = {"description": "Pump leak", "tags": ["hydraulics"]}
        doc_id = await store.create("work_orders", data)
        data["tags"].append("mutated")

        fetched = await store.get("work_orders", doc_id)
        fetched["tags"].append("also mutated")

        assert (await store.get("work_orders", doc_id))["tags"] == ["hydraulics"]
        assert fetched["id"] == doc_id

    async def test_query_and_count(self, store):
        await store.create("work_orders", {"owner_id": "U1"})
        await store.create("work_orders", {"owner_id": "U2"})
        await store.create("parts", {"designation": "Seal"})

        assert await store.count("work_orders") == 2
        assert len(await store.query("work_orders", "owner_id", "U1")) == 1
        assert len(await store.list_all("parts")) == 1

    async def test_update_missing_document(self, store):
        with pytest.raises(PermanentStoreError):
            await store.update("work_orders", "missing", {})

    async def test_increment_creates_counter(self, store):
        assert await store.increment("counters", "work_orders", "value", initial=4) == 5
        assert await store.increment("counters", "work_orders", "value", initial=4) == 6

    async def test_injected_failures_are_consumed_in_order(self, store):
        first = TransientStoreError("get", "timeout")
        second = PermanentStoreError("get", "gone")
        store.inject_failure("get", first, second)

        with pytest.raises(TransientStoreError):
            await store.get("work_orders", "x")
        with pytest.raises(PermanentStoreError):
            await store.get("work_orders", "x")
        assert await store.get("work_orders", "x") is None
        assert store.calls == ["get", "get", "get"]


class TestPostgresErrorClassification:
    """Tests for mapping driver errors onto store errors."""

    @pytest.fixture
    def postgres(self):
        return PostgresDocumentStore("postgresql://localhost/tracker")

    @pytest.mark.parametrize("error", [ConnectionResetError("reset"), asyncio.TimeoutError()])
    async def test_connection_problems_are_transient(self, postgres, error):
        with pytest.raises(TransientStoreError) as exc_info:
            async with postgres._translate("update", "work_orders"):
                raise error

        assert exc_info.value.__cause__ is error

    async def test_other_errors_are_permanent(self, postgres):
        with pytest.raises(PermanentStoreError):
            async with postgres._translate("update", "work_orders"):
                raise ValueError("invalid input syntax for type json")

    async def test_uninitialized_pool(self, postgres):
        with pytest.raises(PermanentStoreError):
            await postgres.get("work_orders", "x")

        assert not await postgres.is_healthy()


class TestPostgresStatements:
    """Tests for the SQL sent by the PostgreSQL store."""

    async def test_get_reads_one_document(self):
        connection = FakeConnection({"fetchrow": {"id": "abc", "data": json.dumps({"description": "Pump"})}})

        document = await postgres_with(connection).get("work_orders", "abc")

        assert document == {"id": "abc", "description": "Pump"}
        method, sql, args = connection.statements[0]
        assert method == "fetchrow"
        assert "WHERE collection = $1 AND id = $2" in sql
        assert args == ("work_orders", "abc")

    async def test_get_missing_document(self):
        assert await postgres_with(FakeConnection()).get("work_orders", "abc") is None

    async def test_query_matches_jsonb_field(self):
        rows = [{"id": "1", "data": json.dumps({"status": "submitted"})}]
        connection = FakeConnection({"fetch": rows})

        documents = await postgres_with(connection).query("work_orders", "status", "submitted")

        assert documents == [{"id": "1", "status": "submitted"}]
        _, sql, args = connection.statements[0]
        assert "data -> $2 = $3::jsonb" in sql
        assert args == ("work_orders", "status", '"submitted"')

    async def test_create_strips_id_from_body(self):
        connection = FakeConnection({"execute": "INSERT 0 1"})

        doc_id = await postgres_with(connection).create("work_orders", {"id": None, "description": "Pump"})

        _, sql, args = connection.statements[0]
        assert sql.startswith("INSERT INTO documents")
        assert args[:2] == ("work_orders", doc_id)
        assert json.loads(args[2]) == {"description": "Pump"}

    async def test_update_writes_body(self):
        connection = FakeConnection({"execute": "UPDATE 1"})

        await postgres_with(connection).update("work_orders", "abc", {"id": "abc", "description": "Pump"})

        _, sql, args = connection.statements[0]
        assert sql.startswith("UPDATE documents SET data = $3::jsonb")
        assert args[:2] == ("work_orders", "abc")
        assert json.loads(args[2]) == {"description": "Pump"}

    async def test_update_of_missing_document_is_permanent(self):
        connection = FakeConnection({"execute": "UPDATE 0"})

        with pytest.raises(PermanentStoreError):
            await postgres_with(connection).update("work_orders", "abc", {"description": "Pump"})

    async def test_increment_is_one_upsert(self):
        connection = FakeConnection({"fetchval": 5})

        value = await postgres_with(connection).increment("counters", "work_orders", "value", initial=4)

        assert value == 5
        assert len(connection.statements) == 1
        _, sql, args = connection.statements[0]
        assert "ON CONFLICT (collection, id) DO UPDATE" in sql
        assert args == ("counters", "work_orders", "value", 4, 1)

    async def test_count_defaults_to_zero(self):
        connection = FakeConnection({"fetchval": None})

        assert await postgres_with(connection).count("work_orders") == 0
