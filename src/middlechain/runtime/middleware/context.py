"""Execution context and handler types for middleware chains.

Handlers follow continuation-passing style: each receives the context and
a `next` function that hands control to the next matching handler.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Callable, TypeAlias

_RESERVED = frozenset({"path", "method", "error"})


@dataclass(slots=True)
class Context:
    """Request-scoped data bag passed through a chain.

    `path` and `method` drive condition matching; any `error` other than None
    stops the chain at the next step. Everything else lives in `data` and is
    reached with item access.

    Example:
        >>> ctx = Context(path="/api/users", method="GET")
        >>> ctx["user_id"] = 42
        >>> ctx.get("user_id")
        42
        >>> ctx["path"]
        '/api/users'
    """

    path: str | None = None
    method: str | None = None
    error: object = None
    data: dict[str, object] = field(default_factory=dict)

    def __getitem__(self, key: str) -> object:
        if key in _RESERVED:
            return getattr(self, key)
        return self.data[key]

    def __setitem__(self, key: str, value: object) -> None:
        if key in _RESERVED:
            setattr(self, key, value)
        else:
            self.data[key] = value

    def __contains__(self, key: str) -> bool:
        if key in _RESERVED:
            return getattr(self, key) is not None
        return key in self.data

    def get(self, key: str, default: object = None) -> object:
        if key in _RESERVED:
            value = getattr(self, key)
            return default if value is None else value
        return self.data.get(key, default)


def context_field(ctx: object, key: str) -> Any:
    """Read a reserved field from a Context, a plain mapping, or any object."""
    if isinstance(ctx, Mapping):
        return ctx.get(key)
    return getattr(ctx, key, None)


def set_context_field(ctx: object, key: str, value: object) -> None:
    """Write a value into a Context, a mutable mapping, or any object."""
    if isinstance(ctx, (Context, MutableMapping)):
        ctx[key] = value
    else:
        setattr(ctx, key, value)


Next: TypeAlias = Callable[[], Awaitable[None]]
Handler: TypeAlias = Callable[[Any, Next], Awaitable[None] | None]
ErrorHandler: TypeAlias = Callable[[Any, Exception, Next], Awaitable[None] | None]
