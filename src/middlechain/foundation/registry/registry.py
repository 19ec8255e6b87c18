"""Named singleton store used to publish managers and chains.

The chain manager only needs `register(key, factory)` plus `has`/`get`
lookups, so it depends on the `ServiceRegistry` protocol. Hosts with their
own dependency-injection container can pass that instead of
`ServiceContainer`, as long as it satisfies the protocol.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")
Factory = Callable[[], T]

logger = logging.getLogger("middlechain.registry")


@runtime_checkable
class ServiceRegistry(Protocol):
    """Protocol for the registry the manager publishes itself into."""

    def register(self, key: str, factory: Factory[object]) -> None: ...
    def has(self, key: str) -> bool: ...
    def get(self, key: str) -> object: ...


class ServiceContainer:
    """In-memory singleton registry.

    Factories run lazily on first `get` and the instance is cached.
    Registering an existing key replaces both factory and cached instance.

    Example:
        >>> container = ServiceContainer()
        >>> container.register("db", lambda: Database())
        >>> container.get("db") is container.get("db")
        True
    """

    __slots__ = ("_factories", "_instances")

    def __init__(self) -> None:
        self._factories: dict[str, Factory[object]] = {}
        self._instances: dict[str, object] = {}

    def register(self, key: str, factory: Factory[object]) -> None:
        if key in self._factories:
            logger.debug(f"Replacing service '{key}'")
        self._factories[key] = factory
        self._instances.pop(key, None)

    def has(self, key: str) -> bool:
        return key in self._factories

    def get(self, key: str) -> object:
        """Resolve a service, raising KeyError if the key was never registered."""
        if key not in self._instances:
            if key not in self._factories:
                raise KeyError(f"Service '{key}' is not registered")
            self._instances[key] = self._factories[key]()
        return self._instances[key]

    def keys(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, key: str) -> bool:
        return key in self._factories

    def __len__(self) -> int:
        return len(self._factories)
