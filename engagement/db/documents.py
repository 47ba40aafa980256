"""
Document store contract

The engine only needs point lookups, merge-style partial updates, an atomic
read-modify-write per document, and field range scans (for points events).
Documents are plain JSON-compatible dicts; models are dumped with
``model_dump(mode="json")`` before they are written.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

Document = dict[str, Any]
# Receives the current document (None if absent) and returns the patch to
# merge, or None to leave the document untouched.
Mutator = Callable[[Optional[Document]], Optional[Document]]

SUPPORTED_OPS = ("==", "<", "<=", ">", ">=")


@dataclass(frozen=True)
class FieldFilter:
    """Single filter clause for query_by_field_range"""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in SUPPORTED_OPS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, doc: Document) -> bool:
        if self.field not in doc or doc[self.field] is None:
            return False
        left = coerce_for_compare(doc[self.field], self.value)
        right = self.value
        if isinstance(right, datetime):
            right = _as_utc(right)
        try:
            if self.op == "==":
                return left == right
            if self.op == "<":
                return left < right
            if self.op == "<=":
                return left <= right
            if self.op == ">":
                return left > right
            return left >= right
        except TypeError:
            return False


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_for_compare(stored: Any, reference: Any) -> Any:
    """Bring a stored JSON value into the type of the value it is compared with"""
    if isinstance(reference, datetime) and isinstance(stored, str):
        return _as_utc(datetime.fromisoformat(stored))
    if isinstance(reference, datetime) and isinstance(stored, datetime):
        return _as_utc(stored)
    return stored


def deep_merge(base: Document, patch: Document) -> Document:
    """
    Merge patch into a copy of base

    Nested dicts merge key by key; any other value in patch replaces the
    value in base. Mirrors set-with-merge semantics of document databases.
    """
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class DocumentStore(ABC):
    """Read/write contract the engine requires from its backing store"""

    @abstractmethod
    async def get_document(self, collection: str, key: str) -> Optional[Document]:
        """Point lookup; None when the document does not exist"""

    @abstractmethod
    async def set_document(self, collection: str, key: str, value: Document, merge: bool = False) -> None:
        """Write a document, replacing it or merging into the existing one"""

    @abstractmethod
    async def update_document(self, collection: str, key: str, mutator: Mutator) -> Optional[Document]:
        """
        Atomic read-modify-write of one document

        Returns the document as stored after the call (None if it still
        does not exist).
        """

    @abstractmethod
    async def add_document(self, collection: str, value: Document) -> str:
        """Append a document under a generated key and return the key"""

    @abstractmethod
    async def query_by_field_range(
        self,
        collection: str,
        filters: list[FieldFilter],
        order_by: Optional[str] = None,
    ) -> list[Document]:
        """Return every document matching all filters, optionally ordered ascending"""
