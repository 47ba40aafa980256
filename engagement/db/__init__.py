"""Document store backends"""
import logging
from typing import Optional

from engagement import config
from engagement.db.documents import DocumentStore, FieldFilter, deep_merge
from engagement.db.memory_store import InMemoryDocumentStore

logger = logging.getLogger(__name__)


def create_store(backend: Optional[str] = None) -> DocumentStore:
    """Build the configured DocumentStore ('memory' or 'postgres')"""
    backend = (backend or config.STORE_BACKEND).lower()
    if backend == "postgres":
        from engagement.db.postgres_store import PostgresDocumentStore
        logger.info("Using PostgreSQL document store")
        return PostgresDocumentStore()
    if backend == "memory":
        logger.warning("Using in-memory document store - data is NOT persisted")
        return InMemoryDocumentStore()

    from engagement.exceptions import ConfigurationError
    raise ConfigurationError(f"Unknown store backend: {backend}", config_key="STORE_BACKEND")


__all__ = ["DocumentStore", "FieldFilter", "deep_merge", "InMemoryDocumentStore", "create_store"]
