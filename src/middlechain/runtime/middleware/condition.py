"""Match conditions gating whether a handler runs for a context.

A condition holds up to three constraints, all of which must hold:

- path: str (prefix), compiled regex (searched), or predicate
- method: str or sequence of str (case-insensitive), or predicate
- match: predicate over the whole context

A path or method constraint is skipped when the context has no such field,
so path-less contexts (queue messages, timers) still reach handlers.

Example:
    >>> cond = MatchCondition(path="/api", method=["GET", "POST"])
    >>> match_condition(cond, {"path": "/api/users", "method": "get"})
    True
    >>> match_condition(cond, {"path": "/api/users", "method": "PUT"})
    False
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, TypeAlias

from .context import context_field

PathPattern: TypeAlias = str | re.Pattern[str] | Callable[[str], bool]
MethodPattern: TypeAlias = str | Sequence[str] | Callable[[str], bool]
ContextPredicate: TypeAlias = Callable[[Any], bool]


@dataclass(frozen=True, slots=True)
class MatchCondition:
    """Immutable set of constraints; omitted fields always match."""

    path: PathPattern | None = None
    method: MethodPattern | None = None
    match: ContextPredicate | None = None

    def __post_init__(self) -> None:
        method = self.method
        if method is not None and not isinstance(method, str) and not callable(method):
            object.__setattr__(self, "method", tuple(method))


def _path_matches(pattern: PathPattern, path: str) -> bool:
    if isinstance(pattern, str):
        return path.startswith(pattern)
    if isinstance(pattern, re.Pattern):
        return pattern.search(path) is not None
    return bool(pattern(path))


def _method_matches(pattern: MethodPattern, method: str) -> bool:
    if isinstance(pattern, str):
        return method.lower() == pattern.lower()
    if callable(pattern):
        return bool(pattern(method))
    lowered = method.lower()
    return any(candidate.lower() == lowered for candidate in pattern)


def match_condition(condition: MatchCondition | None, ctx: object) -> bool:
    """Check whether `ctx` satisfies every constraint in `condition`.

    Pure: safe to call repeatedly with the same context.
    """
    if condition is None:
        return True

    if condition.path is not None:
        path = context_field(ctx, "path")
        if path is not None and not _path_matches(condition.path, path):
            return False

    if condition.method is not None:
        method = context_field(ctx, "method")
        if method is not None and not _method_matches(condition.method, method):
            return False

    if condition.match is not None and not condition.match(ctx):
        return False

    return True


def match_path(pattern: PathPattern) -> MatchCondition:
    """Condition with only a path constraint."""
    return MatchCondition(path=pattern)


def match_method(pattern: MethodPattern) -> MatchCondition:
    """Condition with only a method constraint."""
    return MatchCondition(method=pattern)


def combine_conditions(*conditions: MatchCondition) -> MatchCondition:
    """Condition that matches only when every given condition matches."""
    parts = tuple(conditions)
    return MatchCondition(match=lambda ctx: all(match_condition(c, ctx) for c in parts))
