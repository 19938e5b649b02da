"""PostgreSQL document store backing the ledger."""

import json
from typing import Any

import asyncpg

from ..common import DocumentNotFoundError
from ..config import settings
from .public_api import DocumentStore


class PostgresDocumentStore(DocumentStore):
    """JSONB documents in the ``ledger_documents`` table, one collection per instance."""

    def __init__(self, database_url: str | None = None, collection: str | None = None):
        self._database_url = database_url or settings.database_url
        self._collection = collection or settings.ledger_collection
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Establish database connection pool.

        Note: Schema is managed by Alembic migrations. Run migrations before
        starting the application:
            alembic upgrade head
        """
        self._pool = await asyncpg.create_pool(
            self._database_url,
            min_size=1,
            max_size=5,
        )

    async def close(self) -> None:
        """Close database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    async def _get_pool(self) -> asyncpg.Pool:
        """Get the connection pool, connecting if needed."""
        if self._pool is None:
            await self.connect()
        return self._pool  # type: ignore

    async def get(self, doc_id: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            "SELECT data FROM ledger_documents WHERE collection = $1 AND doc_id = $2",
            self._collection,
            doc_id,
        )
        if row is None:
            return None
        return self._decode(row["data"])

    async def set(self, doc_id: str, data: dict[str, Any]) -> None:
        pool = await self._get_pool()
        await pool.execute(
            """
            INSERT INTO ledger_documents (collection, doc_id, data, updated_at)
            VALUES ($1, $2, $3::jsonb, NOW())
            ON CONFLICT (collection, doc_id) DO UPDATE SET
                data = EXCLUDED.data,
                updated_at = NOW()
            """,
            self._collection,
            doc_id,
            json.dumps(data),
        )

    async def update(self, doc_id: str, updates: dict[str, Any]) -> None:
        pool = await self._get_pool()
        result = await pool.fetchval(
            """
            UPDATE ledger_documents
            SET data = data || $3::jsonb, updated_at = NOW()
            WHERE collection = $1 AND doc_id = $2
            RETURNING doc_id
            """,
            self._collection,
            doc_id,
            json.dumps(updates),
        )
        if result is None:
            raise DocumentNotFoundError(self._collection, doc_id)

    async def update_if(
        self,
        doc_id: str,
        expected: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        """Conditional update in a single statement.

        The containment check and the write happen under the row lock taken
        by UPDATE, so concurrent callers cannot both see the old value.
        """
        pool = await self._get_pool()
        result = await pool.fetchval(
            """
            UPDATE ledger_documents
            SET data = data || $3::jsonb, updated_at = NOW()
            WHERE collection = $1 AND doc_id = $2 AND data @> $4::jsonb
            RETURNING doc_id
            """,
            self._collection,
            doc_id,
            json.dumps(updates),
            json.dumps(expected),
        )
        return result is not None

    async def find_first(self, field: str, value: Any) -> tuple[str, dict[str, Any]] | None:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            """
            SELECT doc_id, data FROM ledger_documents
            WHERE collection = $1 AND data @> $2::jsonb
            ORDER BY doc_id
            LIMIT 1
            """,
            self._collection,
            json.dumps({field: value}),
        )
        if row is None:
            return None
        return row["doc_id"], self._decode(row["data"])

    def _decode(self, value: Any) -> dict[str, Any]:
        return json.loads(value) if isinstance(value, str) else dict(value)


# Global instance
_document_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """Get the global document store instance."""
    global _document_store
    if _document_store is None:
        _document_store = PostgresDocumentStore()
    return _document_store
