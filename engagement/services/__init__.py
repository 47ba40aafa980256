"""Service layer for the engagement engine"""
from engagement.services.engagement_service import EngagementService, OperationResult
from engagement.services.container import ServiceContainer, get_container, init_container

__all__ = [
    "EngagementService",
    "OperationResult",
    "ServiceContainer",
    "get_container",
    "init_container",
]
