"""
In-memory document store

Used by the test suite and for local runs with STORE_BACKEND=memory.
Nothing is persisted across process restarts.
"""

import asyncio
import copy
import logging
from collections import defaultdict
from typing import Optional
from uuid import uuid4

from engagement.db.documents import (
    Document,
    DocumentStore,
    FieldFilter,
    Mutator,
    coerce_for_compare,
    deep_merge,
)

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store with per-document locks for read-modify-write"""

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        logger.debug("InMemoryDocumentStore initialized")

    def _lock_for(self, collection: str, key: str) -> asyncio.Lock:
        lock = self._locks.get((collection, key))
        if lock is None:
            lock = asyncio.Lock()
            self._locks[(collection, key)] = lock
        return lock

    async def get_document(self, collection: str, key: str) -> Optional[Document]:
        doc = self._collections[collection].get(key)
        return copy.deepcopy(doc) if doc is not None else None

    async def set_document(self, collection: str, key: str, value: Document, merge: bool = False) -> None:
        async with self._lock_for(collection, key):
            self._write(collection, key, value, merge)

    async def update_document(self, collection: str, key: str, mutator: Mutator) -> Optional[Document]:
        async with self._lock_for(collection, key):
            current = self._collections[collection].get(key)
            patch = mutator(copy.deepcopy(current) if current is not None else None)
            if patch is not None:
                self._write(collection, key, patch, merge=True)
            stored = self._collections[collection].get(key)
            return copy.deepcopy(stored) if stored is not None else None

    async def add_document(self, collection: str, value: Document) -> str:
        key = str(uuid4())
        self._write(collection, key, value, merge=False)
        return key

    async def query_by_field_range(
        self,
        collection: str,
        filters: list[FieldFilter],
        order_by: Optional[str] = None,
    ) -> list[Document]:
        rows = [
            copy.deepcopy(doc)
            for doc in self._collections[collection].values()
            if all(f.matches(doc) for f in filters)
        ]
        if order_by:
            sample = next((f.value for f in filters if f.field == order_by), None)
            rows.sort(key=lambda d: coerce_for_compare(d.get(order_by), sample))
        return rows

    def _write(self, collection: str, key: str, value: Document, merge: bool) -> None:
        existing = self._collections[collection].get(key)
        if merge and existing is not None:
            self._collections[collection][key] = deep_merge(existing, value)
        else:
            self._collections[collection][key] = copy.deepcopy(value)
        logger.debug(f"Wrote {collection}/{key} (merge={merge})")

    def clear(self) -> None:
        """Drop every collection (test helper)"""
        self._collections.clear()
        self._locks.clear()
