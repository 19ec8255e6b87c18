"""Service registry collaborator for publishing managers and chains."""

from .registry import Factory, ServiceContainer, ServiceRegistry

__all__ = ["Factory", "ServiceContainer", "ServiceRegistry"]
