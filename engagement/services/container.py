"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from engagement import config
from engagement.db.documents import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    The document store is injected.
    """

    # Infrastructure dependencies (injected)
    store: DocumentStore

    # Services (lazy-loaded via properties)
    _engagement_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def engagement_service(self):
        """Get EngagementService instance (lazy-loaded)"""
        if self._engagement_service is None:
            from engagement.services.engagement_service import EngagementService
            self._engagement_service = EngagementService(self.store)
            logger.debug("EngagementService instantiated")
        return self._engagement_service


# Global container instance (initialized by the hosting application)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized
    """
    if _container is None:
        raise RuntimeError("Service container not initialized. Call init_container() first.")
    return _container


def init_container(store: DocumentStore) -> ServiceContainer:
    """
    Initialize the global service container.

    Also configures root logging from LOG_LEVEL.

    Args:
        store: Document store instance

    Returns:
        Initialized ServiceContainer
    """
    global _container
    config.setup_logging()
    _container = ServiceContainer(store=store)
    logger.info("Service container initialized")
    return _container


def reset_container() -> None:
    """Drop the global container (tests)"""
    global _container
    _container = None
