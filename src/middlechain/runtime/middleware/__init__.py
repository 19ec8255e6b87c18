"""Middleware chain engine.

Provides the context model, condition matching, the single-chain
dispatcher with error routing and per-handler stats, and the multi-chain
manager with priority-ordered registration.

Example:
    >>> from middlechain.runtime.middleware import MiddlewareChain, Context
    >>> chain = MiddlewareChain()
    >>> chain.use(LoggingMiddleware())
    >>> chain.use("/api", api_handler, name="api")
    >>> chain.use_error(CaptureErrorMiddleware())
    >>> await chain.execute(Context(path="/api/users", method="GET"))
"""

from .chain import (
    ErrorMiddlewareRegistration,
    MiddlewareChain,
    MiddlewareRegistration,
    create_middleware,
    create_middleware_chain,
)
from .condition import MatchCondition, combine_conditions, match_condition, match_method, match_path
from .context import Context, ErrorHandler, Handler, Next, context_field, set_context_field
from .manager import (
    CHAIN_KEY_PREFIX,
    DEFAULT_CHAIN,
    DEFAULT_PRIORITY,
    MANAGER_KEY,
    ErrorMiddlewareDefinition,
    ManagerOptions,
    MiddlewareDefinition,
    MiddlewareManager,
    create_middleware_manager,
)
from .plugins import (
    CaptureErrorMiddleware,
    LoggingMiddleware,
    LogMetricsBackend,
    MetricsBackend,
    MetricsMiddleware,
)
from .stats import MiddlewareStats, StatsRecorder

__all__ = [
    # Context
    "Context", "Handler", "ErrorHandler", "Next", "context_field", "set_context_field",
    # Conditions
    "MatchCondition", "match_condition", "match_path", "match_method", "combine_conditions",
    # Chain
    "MiddlewareChain", "MiddlewareRegistration", "ErrorMiddlewareRegistration",
    "create_middleware_chain", "create_middleware",
    # Stats
    "MiddlewareStats", "StatsRecorder",
    # Manager
    "MiddlewareManager", "MiddlewareDefinition", "ErrorMiddlewareDefinition", "ManagerOptions",
    "create_middleware_manager", "DEFAULT_CHAIN", "DEFAULT_PRIORITY", "MANAGER_KEY", "CHAIN_KEY_PREFIX",
    # Plugins
    "CaptureErrorMiddleware", "LoggingMiddleware", "LogMetricsBackend", "MetricsBackend", "MetricsMiddleware",
]
