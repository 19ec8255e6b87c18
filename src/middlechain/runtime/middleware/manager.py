"""Registry of named chains with priority-ordered batch registration.

The manager keeps a `MiddlewareDefinition` for every handler it registers
so handlers can be looked up, listed, and removed by name across chains.
Chains are created lazily the first time a definition names them.

Example:
    >>> container = ServiceContainer()
    >>> manager = MiddlewareManager(container)
    >>> manager.register_all([
    ...     MiddlewareDefinition(name="auth", handler=auth, priority=10),
    ...     MiddlewareDefinition(name="audit", handler=audit, chain="ws"),
    ... ])
    >>> await manager.execute(ctx)          # "default" chain
    >>> await manager.execute(ctx, "ws")
    >>> container.has("middleware:ws")
    True
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Self

from pydantic import BaseModel, ConfigDict

from middlechain.foundation.config import MiddlewareSettings, get_settings
from middlechain.foundation.errors import DuplicateMiddlewareError
from middlechain.foundation.registry import ServiceRegistry

from .chain import MiddlewareChain
from .condition import MatchCondition
from .context import ErrorHandler, Handler
from .stats import MiddlewareStats

logger = logging.getLogger("middlechain.manager")

DEFAULT_CHAIN = "default"
DEFAULT_PRIORITY = 100
MANAGER_KEY = "middlewareManager"
CHAIN_KEY_PREFIX = "middleware:"


@dataclass(frozen=True, slots=True)
class MiddlewareDefinition:
    """Durable record of a managed handler. Lower priority runs first."""
    name: str
    handler: Handler
    condition: MatchCondition | None = None
    priority: int = DEFAULT_PRIORITY
    chain: str = DEFAULT_CHAIN


@dataclass(frozen=True, slots=True)
class ErrorMiddlewareDefinition:
    """Error handler bound for a named chain."""
    name: str
    handler: ErrorHandler
    chain: str = DEFAULT_CHAIN


class ManagerOptions(BaseModel):
    """Manager construction options.

    `continue_on_error` is carried for hosts that read it; dispatch always
    routes handler exceptions to error handlers, or re-raises without them.
    """

    model_config = ConfigDict(frozen=True)

    enable_performance_monitoring: bool = False
    continue_on_error: bool = True

    @classmethod
    def from_settings(cls, settings: MiddlewareSettings | None = None) -> Self:
        settings = settings or get_settings()
        return cls(
            enable_performance_monitoring=settings.performance_monitoring,
            continue_on_error=settings.continue_on_error,
        )


class MiddlewareManager:
    """Named chains plus a manager-wide table of handler definitions.

    Handler names are unique across all chains. Error handler names follow
    the per-chain rule of `MiddlewareChain.use_error`.

    Constructing a manager publishes it in `registry` under
    `"middlewareManager"`; each chain is published as `"middleware:<name>"`
    when first created.
    """

    __slots__ = ("_registry", "_options", "_monitoring", "_chains", "_definitions")

    def __init__(self, registry: ServiceRegistry, options: ManagerOptions | None = None) -> None:
        self._registry = registry
        self._options = options or ManagerOptions.from_settings()
        self._monitoring = self._options.enable_performance_monitoring
        self._chains: dict[str, MiddlewareChain[Any]] = {}
        self._definitions: dict[str, MiddlewareDefinition] = {}
        registry.register(MANAGER_KEY, lambda: self)

    @property
    def options(self) -> ManagerOptions:
        return self._options

    @property
    def monitoring_enabled(self) -> bool:
        return self._monitoring

    def _ensure_chain(self, name: str) -> MiddlewareChain[Any]:
        if (chain := self._chains.get(name)) is None:
            chain = self._chains[name] = MiddlewareChain()
            if self._monitoring:
                chain.enable_performance_monitoring()
            self._registry.register(f"{CHAIN_KEY_PREFIX}{name}", lambda: chain)
            logger.debug(f"Created chain '{name}'")
        return chain

    # ─────────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────────

    def register(self, definition: MiddlewareDefinition) -> None:
        """Register a handler into its chain.

        Raises:
            DuplicateMiddlewareError: If the name exists in any chain
        """
        if definition.name in self._definitions:
            owner = self._definitions[definition.name].chain
            raise DuplicateMiddlewareError.for_name(definition.name, chain=owner)
        chain = self._ensure_chain(definition.chain)
        chain.use(definition.handler, definition.condition, definition.name)
        self._definitions[definition.name] = definition

    def register_error(self, definition: ErrorMiddlewareDefinition) -> None:
        self._ensure_chain(definition.chain).use_error(definition.handler, definition.name)

    def register_all(self, definitions: Iterable[MiddlewareDefinition]) -> None:
        """Register definitions in ascending priority; ties keep input order."""
        for definition in sorted(definitions, key=lambda d: d.priority):
            self.register(definition)

    def remove(self, name: str) -> bool:
        """Remove a handler from its chain and the definition table."""
        if (definition := self._definitions.pop(name, None)) is None:
            return False
        if (chain := self._chains.get(definition.chain)) is not None:
            chain.remove(name)
        return True

    # ─────────────────────────────────────────────────────────────────
    # Accessors
    # ─────────────────────────────────────────────────────────────────

    def has(self, name: str) -> bool:
        return name in self._definitions

    def get(self, name: str) -> MiddlewareDefinition | None:
        return self._definitions.get(name)

    def list(self) -> list[str]:
        return list(self._definitions)

    def list_by_chain(self, chain_name: str) -> list[str]:
        return [name for name, d in self._definitions.items() if d.chain == chain_name]

    def list_chains(self) -> list[str]:
        return list(self._chains)

    def get_chain(self, chain_name: str = DEFAULT_CHAIN) -> MiddlewareChain[Any] | None:
        return self._chains.get(chain_name)

    def get_middleware_count(self) -> int:
        return len(self._definitions)

    def get_chain_count(self) -> int:
        return len(self._chains)

    # ─────────────────────────────────────────────────────────────────
    # Execution
    # ─────────────────────────────────────────────────────────────────

    async def execute(self, ctx: object, chain_name: str = DEFAULT_CHAIN) -> None:
        """Execute a named chain; a chain that does not exist yet is a no-op."""
        if (chain := self._chains.get(chain_name)) is None:
            logger.debug(f"No chain '{chain_name}', skipping execution")
            return
        await chain.execute(ctx)

    # ─────────────────────────────────────────────────────────────────
    # Monitoring & lifecycle
    # ─────────────────────────────────────────────────────────────────

    def enable_performance_monitoring(self) -> None:
        """Turn monitoring on for existing chains and chains created later."""
        self._monitoring = True
        for chain in self._chains.values():
            chain.enable_performance_monitoring()

    def disable_performance_monitoring(self) -> None:
        self._monitoring = False
        for chain in self._chains.values():
            chain.disable_performance_monitoring()

    def get_stats(self, chain_name: str | None = None) -> list[MiddlewareStats]:
        """Stats for one chain, or for every chain when no name is given."""
        if chain_name is not None:
            chain = self._chains.get(chain_name)
            return chain.get_stats() if chain is not None else []
        return [entry for chain in self._chains.values() for entry in chain.get_stats()]

    def clear_stats(self, chain_name: str | None = None) -> None:
        if chain_name is not None:
            if (chain := self._chains.get(chain_name)) is not None:
                chain.clear_stats()
            return
        for chain in self._chains.values():
            chain.clear_stats()

    def clear_chain(self, chain_name: str) -> None:
        """Empty a chain and forget every definition that targets it."""
        if (chain := self._chains.get(chain_name)) is not None:
            chain.clear()
        for name in self.list_by_chain(chain_name):
            del self._definitions[name]

    def clear(self) -> None:
        """Empty every chain and the definition table; chains stay registered."""
        for chain in self._chains.values():
            chain.clear()
        self._definitions.clear()

    def dispose(self) -> None:
        """Clear everything and drop the chains themselves."""
        self.clear()
        self._chains.clear()
        logger.debug("Manager disposed")


def create_middleware_manager(
    registry: ServiceRegistry,
    options: ManagerOptions | None = None,
) -> MiddlewareManager:
    """Create a manager published in `registry`."""
    return MiddlewareManager(registry, options)
