"""PostgreSQL-backed document store (JSONB rows keyed by collection + key)"""
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

import psycopg
from psycopg.types.json import Jsonb

from engagement.db.connection import Database, db as default_db
from engagement.db.documents import (
    Document,
    DocumentStore,
    FieldFilter,
    Mutator,
    deep_merge,
)
from engagement.exceptions import wrap_external_exception

logger = logging.getLogger(__name__)


DOCUMENTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    key TEXT NOT NULL,
    data JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (collection, key)
);
CREATE INDEX IF NOT EXISTS idx_documents_points_pair
    ON documents ((data->>'pair_id'), ((data->>'created_at')))
    WHERE collection = 'points';
"""

UPSERT_SQL = """
INSERT INTO documents (collection, key, data)
VALUES (%s, %s, %s)
ON CONFLICT (collection, key)
DO UPDATE SET data = EXCLUDED.data, updated_at = CURRENT_TIMESTAMP
"""


# FieldFilter operator -> SQL operator
SQL_OPS = {"==": "=", "<": "<", "<=": "<=", ">": ">", ">=": ">="}


def _cast_for(value: Any) -> str:
    """SQL cast applied to the JSONB text value before comparing with value"""
    if isinstance(value, bool):
        return "::boolean"
    if isinstance(value, datetime):
        return "::timestamptz"
    if isinstance(value, (int, float)):
        return "::numeric"
    return ""


def build_range_query(
    collection: str,
    filters: list[FieldFilter],
    order_by: Optional[str] = None,
) -> tuple[str, list[Any]]:
    """Compose the SELECT for query_by_field_range (operators are whitelisted by FieldFilter)"""
    clauses = ["collection = %s"]
    params: list[Any] = [collection]
    for f in filters:
        clauses.append(f"(data->>%s){_cast_for(f.value)} {SQL_OPS[f.op]} %s")
        params.extend([f.field, f.value])

    query = f"SELECT key, data FROM documents WHERE {' AND '.join(clauses)}"
    if order_by:
        sample = next((f.value for f in filters if f.field == order_by), None)
        query += f" ORDER BY (data->>%s){_cast_for(sample)} ASC"
        params.append(order_by)
    return query, params


class PostgresDocumentStore(DocumentStore):
    """Document store over a single JSONB table"""

    def __init__(self, database: Database = default_db):
        self.db = database

    async def init_schema(self) -> None:
        """Create the documents table if missing"""
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(DOCUMENTS_SCHEMA)
                await conn.commit()
            logger.info("Document schema ready")
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="init_schema")

    async def get_document(self, collection: str, key: str) -> Optional[Document]:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT data FROM documents WHERE collection = %s AND key = %s",
                        (collection, key)
                    )
                    row = await cur.fetchone()
                    return dict(row["data"]) if row else None
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="get_document", context={"collection": collection, "key": key}
            )

    async def set_document(self, collection: str, key: str, value: Document, merge: bool = False) -> None:
        if merge:
            await self.update_document(collection, key, lambda _current: value)
            return
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(UPSERT_SQL, (collection, key, Jsonb(value)))
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="set_document", context={"collection": collection, "key": key}
            )

    async def update_document(self, collection: str, key: str, mutator: Mutator) -> Optional[Document]:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    # Row lock is held until commit
                    await cur.execute(
                        "SELECT data FROM documents WHERE collection = %s AND key = %s FOR UPDATE",
                        (collection, key)
                    )
                    row = await cur.fetchone()
                    current = dict(row["data"]) if row else None

                    patch = mutator(current)
                    if patch is None:
                        await conn.commit()
                        return current

                    merged = deep_merge(current, patch) if current is not None else patch
                    await cur.execute(UPSERT_SQL, (collection, key, Jsonb(merged)))
                await conn.commit()
                return merged
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="update_document", context={"collection": collection, "key": key}
            )

    async def add_document(self, collection: str, value: Document) -> str:
        key = str(uuid4())
        await self.set_document(collection, key, value)
        return key

    async def query_by_field_range(
        self,
        collection: str,
        filters: list[FieldFilter],
        order_by: Optional[str] = None,
    ) -> list[Document]:
        query, params = build_range_query(collection, filters, order_by)
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    rows = await cur.fetchall()
                    return [dict(row["data"]) for row in rows]
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="query_by_field_range", context={"collection": collection}
            )
