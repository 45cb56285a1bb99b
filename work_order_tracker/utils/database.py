"""
Document store utilities for Work Order Tracker

Provides the document store interface the tracker persists through, an
in-memory implementation for development and tests, and a PostgreSQL
implementation keeping JSONB documents in a single table.
"""

import asyncio
import copy
import json
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Any, Deque

import asyncpg

from ..core.exceptions import StoreError, TransientStoreError, PermanentStoreError


class DocumentStore(ABC):
    """
    Minimal document store contract.

    Documents are plain dictionaries grouped into named collections. Every
    document returned by a read carries its identifier under ``"id"``.
    Implementations raise ``TransientStoreError`` for failures that may clear
    on retry and ``PermanentStoreError`` for everything else.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one document, or None when absent."""

    @abstractmethod
    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """Fetch documents whose top-level ``field`` equals ``value``."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Number of documents in a collection."""

    @abstractmethod
    async def create(self, collection: str, data: Dict[str, Any]) -> str:
        """Insert a document and return its store-assigned identifier."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Replace the body of an existing document."""

    @abstractmethod
    async def increment(self, collection: str, doc_id: str, field: str,
                        amount: int = 1, initial: int = 0) -> int:
        """
        Atomically add ``amount`` to a numeric field and return the new value.

        A missing document is created with the field set to ``initial + amount``.
        """

    @abstractmethod
    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        """Every document in a collection."""


class InMemoryDocumentStore(DocumentStore):
    """
    Dictionary-backed document store.

    Reads and writes deep-copy documents so callers never share state with
    the store. Failures can be queued per operation with ``inject_failure``
    to exercise retry behaviour.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._failures: Dict[str, Deque[Exception]] = defaultdict(deque)
        self.calls: List[str] = []

    def inject_failure(self, operation: str, *errors: Exception):
        """Raise ``errors`` one by one on the next calls to ``operation``."""
        self._failures[operation].extend(errors)

    def _enter(self, operation: str):
        self.calls.append(operation)
        pending = self._failures.get(operation)
        if pending:
            raise pending.popleft()

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        self._enter("get")
        document = self._collections[collection].get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        self._enter("query")
        return [
            copy.deepcopy(document)
            for document in self._collections[collection].values()
            if document.get(field) == value
        ]

    async def count(self, collection: str) -> int:
        self._enter("count")
        return len(self._collections[collection])

    async def create(self, collection: str, data: Dict[str, Any]) -> str:
        self._enter("create")
        doc_id = uuid.uuid4().hex
        document = copy.deepcopy(data)
        document["id"] = doc_id
        self._collections[collection][doc_id] = document
        return doc_id

    async def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._enter("update")
        if doc_id not in self._collections[collection]:
            raise PermanentStoreError("update", f"document {doc_id} does not exist", collection)
        document = copy.deepcopy(data)
        document["id"] = doc_id
        self._collections[collection][doc_id] = document

    async def increment(self, collection: str, doc_id: str, field: str,
                        amount: int = 1, initial: int = 0) -> int:
        self._enter("increment")
        document = self._collections[collection].setdefault(doc_id, {"id": doc_id, field: initial})
        document[field] = document.get(field, initial) + amount
        return document[field]

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        self._enter("list_all")
        return [copy.deepcopy(document) for document in self._collections[collection].values()]


_TRANSIENT_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
    ConnectionError,
    asyncio.TimeoutError,
)


class PostgresDocumentStore(DocumentStore):
    """
    Document store on PostgreSQL.

    All collections share one ``documents`` table with a JSONB body, keyed by
    ``(collection, id)``. Connection pooling follows asyncpg's pool.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS documents (
            collection TEXT NOT NULL,
            id TEXT NOT NULL,
            data JSONB NOT NULL,
            PRIMARY KEY (collection, id)
        )
    """

    def __init__(self, connection_string: str, min_size: int = 1, max_size: int = 10,
                 command_timeout: float = 30):
        """
        Initialize the store.

        Args:
            connection_string: PostgreSQL connection string
            min_size: Minimum pool size
            max_size: Maximum pool size
            command_timeout: Per-statement timeout in seconds
        """
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self) -> None:
        """Create the connection pool and the documents table."""
        async with self._translate("initialize", None):
            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout
            )
            async with self.pool.acquire() as connection:
                await connection.execute(self.SCHEMA)

    async def close(self) -> None:
        """Close database connection pool."""
        if self.pool:
            await self.pool.close()

    async def is_healthy(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.get_connection() as connection:
                await connection.execute("SELECT 1")
                return True
        except Exception:
            return False

    @asynccontextmanager
    async def get_connection(self):
        """Get a database connection from the pool."""
        if not self.pool:
            raise PermanentStoreError("connection", "Database pool not initialized")

        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def _translate(self, operation: str, collection: Optional[str]):
        try:
            yield
        except StoreError:
            raise
        except _TRANSIENT_ERRORS as e:
            raise TransientStoreError(operation, str(e), collection) from e
        except Exception as e:
            raise PermanentStoreError(operation, str(e), collection) from e

    @staticmethod
    def _row_to_document(row) -> Dict[str, Any]:
        document = json.loads(row["data"])
        document["id"] = row["id"]
        return document

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        async with self._translate("get", collection):
            async with self.get_connection() as conn:
                row = await conn.fetchrow(
                    "SELECT id, data FROM documents WHERE collection = $1 AND id = $2",
                    collection, doc_id
                )
                return self._row_to_document(row) if row else None

    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        async with self._translate("query", collection):
            async with self.get_connection() as conn:
                rows = await conn.fetch(
                    "SELECT id, data FROM documents WHERE collection = $1 AND data -> $2 = $3::jsonb",
                    collection, field, json.dumps(value, default=str)
                )
                return [self._row_to_document(row) for row in rows]

    async def count(self, collection: str) -> int:
        async with self._translate("count", collection):
            async with self.get_connection() as conn:
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM documents WHERE collection = $1", collection
                )
                return total or 0

    async def create(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        body = {key: value for key, value in data.items() if key != "id"}
        async with self._translate("create", collection):
            async with self.get_connection() as conn:
                await conn.execute(
                    "INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb)",
                    collection, doc_id, json.dumps(body, default=str)
                )
        return doc_id

    async def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        body = {key: value for key, value in data.items() if key != "id"}
        async with self._translate("update", collection):
            async with self.get_connection() as conn:
                status = await conn.execute(
                    "UPDATE documents SET data = $3::jsonb WHERE collection = $1 AND id = $2",
                    collection, doc_id, json.dumps(body, default=str)
                )
                if status.endswith(" 0"):
                    raise PermanentStoreError("update", f"document {doc_id} does not exist", collection)

    async def increment(self, collection: str, doc_id: str, field: str,
                        amount: int = 1, initial: int = 0) -> int:
        async with self._translate("increment", collection):
            async with self.get_connection() as conn:
                return await conn.fetchval("""
                    INSERT INTO documents (collection, id, data)
                    VALUES ($1, $2, jsonb_build_object($3::text, $4::bigint + $5::bigint))
                    ON CONFLICT (collection, id) DO UPDATE SET
                        data = jsonb_set(
                            documents.data,
                            ARRAY[$3::text],
                            to_jsonb(COALESCE((documents.data ->> $3)::bigint, $4::bigint) + $5::bigint)
                        )
                    RETURNING (data ->> $3)::bigint
                """, collection, doc_id, field, initial, amount)

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        async with self._translate("list_all", collection):
            async with self.get_connection() as conn:
                rows = await conn.fetch(
                    "SELECT id, data FROM documents WHERE collection = $1", collection
                )
                return [self._row_to_document(row) for row in rows]
