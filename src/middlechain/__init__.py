"""middlechain - protocol-agnostic async middleware execution engine.

An ordered pipeline of handlers over a mutable context, with conditional
activation, error interception, dynamic reordering, and per-handler
performance stats. Hosts (HTTP servers, WebSocket gateways, queue
consumers) build a chain once and call `execute` per unit of work.

Example:
    >>> from middlechain import Context, MiddlewareChain
    >>> chain = MiddlewareChain()
    >>> async def auth(ctx, next):
    ...     if ctx.get("user") is None:
    ...         ctx.error = ErrorInfo(status=401, message="unauthorized")
    ...     await next()
    >>> chain.use(auth, MatchCondition(path="/admin"))
    >>> await chain.execute(Context(path="/admin/users"))

Multiple chains:
    >>> manager = MiddlewareManager(ServiceContainer())
    >>> manager.register(MiddlewareDefinition(name="auth", handler=auth, chain="http"))
    >>> await manager.execute(ctx, "http")
"""

from middlechain.foundation.config import LoggingSettings, MiddlewareSettings, clear_settings_cache, get_settings
from middlechain.foundation.errors import (
    DuplicateMiddlewareError,
    ErrorCode,
    ErrorInfo,
    MiddlewareError,
    MiddlewareException,
)
from middlechain.foundation.registry import ServiceContainer, ServiceRegistry
from middlechain.runtime.middleware import (
    CHAIN_KEY_PREFIX,
    DEFAULT_CHAIN,
    MANAGER_KEY,
    CaptureErrorMiddleware,
    Context,
    ErrorHandler,
    ErrorMiddlewareDefinition,
    Handler,
    LoggingMiddleware,
    LogMetricsBackend,
    ManagerOptions,
    MatchCondition,
    MetricsBackend,
    MetricsMiddleware,
    MiddlewareChain,
    MiddlewareDefinition,
    MiddlewareManager,
    MiddlewareStats,
    Next,
    combine_conditions,
    create_middleware,
    create_middleware_chain,
    create_middleware_manager,
    match_condition,
    match_method,
    match_path,
)
from middlechain.runtime.observability import configure_logging

__version__ = "0.1.0"

__all__ = [
    # Context & types
    "Context", "Handler", "ErrorHandler", "Next",
    # Conditions
    "MatchCondition", "match_condition", "match_path", "match_method", "combine_conditions",
    # Chain
    "MiddlewareChain", "MiddlewareStats", "create_middleware_chain", "create_middleware",
    # Manager
    "MiddlewareManager", "MiddlewareDefinition", "ErrorMiddlewareDefinition", "ManagerOptions",
    "create_middleware_manager", "DEFAULT_CHAIN", "MANAGER_KEY", "CHAIN_KEY_PREFIX",
    # Plugins
    "CaptureErrorMiddleware", "LoggingMiddleware", "LogMetricsBackend", "MetricsBackend", "MetricsMiddleware",
    # Errors
    "DuplicateMiddlewareError", "ErrorCode", "ErrorInfo", "MiddlewareError", "MiddlewareException",
    # Registry
    "ServiceContainer", "ServiceRegistry",
    # Config & logging
    "LoggingSettings", "MiddlewareSettings", "get_settings", "clear_settings_cache", "configure_logging",
]
