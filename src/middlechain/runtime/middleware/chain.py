"""Single middleware chain: registration, matching, and dispatch.

Handlers run cooperatively in registration order. Each receives the
context and a `next` continuation; code before `await next()` runs on the
way in, code after it runs on the way out:

    >>> chain = MiddlewareChain()
    >>> async def timing(ctx, next):
    ...     start = time.perf_counter()
    ...     await next()
    ...     ctx["elapsed"] = time.perf_counter() - start
    >>> chain.use(timing)
    >>> chain.use("/api", api_handler, name="api")
    >>> await chain.execute(Context(path="/api/users"))

Exceptions raised by a handler are routed to the error handlers registered
with `use_error`. With none registered, `execute` re-raises the original
exception. An exception raised by an error handler always escapes `execute`.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Awaitable, Coroutine
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, overload

from middlechain.foundation.errors import DuplicateMiddlewareError

from .condition import MatchCondition, match_condition
from .context import ErrorHandler, Handler, context_field
from .stats import MiddlewareStats, StatsRecorder

C = TypeVar("C")

logger = logging.getLogger("middlechain.chain")


@dataclass(frozen=True, slots=True)
class MiddlewareRegistration:
    """A named handler with its optional condition."""
    name: str
    handler: Handler
    condition: MatchCondition | None = None


@dataclass(frozen=True, slots=True)
class ErrorMiddlewareRegistration:
    """A named error handler."""
    name: str
    handler: ErrorHandler


def _declared_name(handler: Callable[..., object]) -> str | None:
    """Name a handler declares for itself: function __name__ or a `name` attribute."""
    name = getattr(handler, "__name__", None)
    if isinstance(name, str) and name and name != "<lambda>":
        return name
    name = getattr(handler, "name", None)
    return name if isinstance(name, str) and name else None


class _Continuation:
    """The `next` callable handed to handlers.

    Calling it returns a coroutine that advances the chain. Coroutines that
    a handler creates but never awaits, sync or async, are driven by
    `invoke` once the handler returns.
    """

    __slots__ = ("_step", "_pending")

    def __init__(self, step: Callable[[], Coroutine[Any, Any, None]]) -> None:
        self._step = step
        self._pending: list[Coroutine[Any, Any, None]] = []

    def __call__(self) -> Coroutine[Any, Any, None]:
        coro = self._step()
        self._pending.append(coro)
        return coro

    async def invoke(self, handler: Callable[..., Awaitable[None] | None], *args: object) -> None:
        mark = len(self._pending)
        try:
            result = handler(*args, self)
            if inspect.isawaitable(result):
                await result
            for coro in self._pending[mark:]:
                if inspect.getcoroutinestate(coro) == inspect.CORO_CREATED:
                    logger.debug(f"Driving un-awaited next() from '{_declared_name(handler) or handler!r}'")
                    await coro
        finally:
            del self._pending[mark:]


class _Run:
    """Per-execute state: the matched handlers, a cursor, and the escaping error."""

    __slots__ = ("ctx", "matched", "index", "escaping")

    def __init__(self, ctx: object, matched: list[MiddlewareRegistration]) -> None:
        self.ctx = ctx
        self.matched = matched
        self.index = 0
        self.escaping: BaseException | None = None


class MiddlewareChain(Generic[C]):
    """Ordered handlers plus error handlers, executed over a shared context.

    Names are unique among normal handlers and, separately, among error
    handlers. Registration order is execution order.

    Example:
        >>> chain = MiddlewareChain()
        >>> chain.use(auth, MatchCondition(path="/admin"))
        >>> chain.use_error(render_error)
        >>> chain.enable_performance_monitoring()
        >>> await chain.execute({"path": "/admin/users", "method": "GET"})
        >>> [s.name for s in chain.get_stats()]
        ['auth']
    """

    __slots__ = ("_middlewares", "_error_middlewares", "_monitoring", "_stats")

    def __init__(self) -> None:
        self._middlewares: list[MiddlewareRegistration] = []
        self._error_middlewares: list[ErrorMiddlewareRegistration] = []
        self._monitoring = False
        self._stats = StatsRecorder()

    # ─────────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────────

    @overload
    def use(self, handler: Handler, condition: MatchCondition | str | None = None, name: str | None = None) -> str: ...
    @overload
    def use(self, handler: str, condition: Handler, name: str | None = None) -> str: ...

    def use(
        self,
        handler: Handler | str,
        condition: MatchCondition | str | Handler | None = None,
        name: str | None = None,
    ) -> str:
        """Register a handler and return its resolved name.

        Accepts `use(handler, condition=None, name=None)` where condition may
        be a `MatchCondition` or a path prefix string, and the path-first
        shorthand `use("/api", handler, name=None)`.

        Raises:
            DuplicateMiddlewareError: If the resolved name is already registered
        """
        if isinstance(handler, str):
            handler, condition = condition, MatchCondition(path=handler)
        elif isinstance(condition, str):
            condition = MatchCondition(path=condition)
        registration = self._build(handler, condition, name, len(self._middlewares))
        self._middlewares.append(registration)
        logger.debug(f"Registered middleware '{registration.name}'")
        return registration.name

    def use_error(self, handler: ErrorHandler, name: str | None = None) -> str:
        """Register an error handler and return its resolved name.

        Raises:
            DuplicateMiddlewareError: If the name is taken among error handlers
        """
        resolved = name or _declared_name(handler) or f"error-middleware-{len(self._error_middlewares)}"
        if self.has_error_middleware(resolved):
            raise DuplicateMiddlewareError.for_name(resolved, kind="Error middleware")
        self._error_middlewares.append(ErrorMiddlewareRegistration(resolved, handler))
        logger.debug(f"Registered error middleware '{resolved}'")
        return resolved

    def insert_before(
        self,
        target: str,
        handler: Handler,
        condition: MatchCondition | str | None = None,
        name: str | None = None,
    ) -> bool:
        """Insert a handler directly before `target`. False if target is missing."""
        return self._insert(target, 0, handler, condition, name)

    def insert_after(
        self,
        target: str,
        handler: Handler,
        condition: MatchCondition | str | None = None,
        name: str | None = None,
    ) -> bool:
        """Insert a handler directly after `target`. False if target is missing."""
        return self._insert(target, 1, handler, condition, name)

    def _insert(
        self,
        target: str,
        offset: int,
        handler: Handler,
        condition: MatchCondition | str | None,
        name: str | None,
    ) -> bool:
        position = self._index_of(target)
        if position is None:
            return False
        if isinstance(condition, str):
            condition = MatchCondition(path=condition)
        registration = self._build(handler, condition, name, len(self._middlewares))
        self._middlewares.insert(position + offset, registration)
        logger.debug(f"Inserted middleware '{registration.name}' {'after' if offset else 'before'} '{target}'")
        return True

    def _build(
        self,
        handler: Handler,
        condition: MatchCondition | None,
        name: str | None,
        position: int,
    ) -> MiddlewareRegistration:
        if not callable(handler):
            raise TypeError(f"Middleware must be callable, got {type(handler).__name__}")
        resolved = name or _declared_name(handler) or f"middleware-{position}"
        if self.has_middleware(resolved):
            raise DuplicateMiddlewareError.for_name(resolved)
        return MiddlewareRegistration(resolved, handler, condition)

    def _index_of(self, name: str) -> int | None:
        return next((i for i, r in enumerate(self._middlewares) if r.name == name), None)

    def remove(self, name: str) -> bool:
        """Remove a handler and its stats. Returns True if found."""
        if (position := self._index_of(name)) is None:
            return False
        del self._middlewares[position]
        self._stats.discard(name)
        logger.debug(f"Removed middleware '{name}'")
        return True

    def remove_error(self, name: str) -> bool:
        """Remove an error handler. Returns True if found."""
        for i, registration in enumerate(self._error_middlewares):
            if registration.name == name:
                del self._error_middlewares[i]
                return True
        return False

    # ─────────────────────────────────────────────────────────────────
    # Accessors
    # ─────────────────────────────────────────────────────────────────

    def get_middleware(self, name: str) -> Handler | None:
        return next((r.handler for r in self._middlewares if r.name == name), None)

    def get_error_middleware(self, name: str) -> ErrorHandler | None:
        return next((r.handler for r in self._error_middlewares if r.name == name), None)

    def has_middleware(self, name: str) -> bool:
        return any(r.name == name for r in self._middlewares)

    def has_error_middleware(self, name: str) -> bool:
        return any(r.name == name for r in self._error_middlewares)

    def list_middlewares(self) -> list[str]:
        return [r.name for r in self._middlewares]

    def list_error_middlewares(self) -> list[str]:
        return [r.name for r in self._error_middlewares]

    def get_middleware_count(self) -> int:
        return len(self._middlewares)

    def get_error_middleware_count(self) -> int:
        return len(self._error_middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)

    def __contains__(self, name: str) -> bool:
        return self.has_middleware(name)

    # ─────────────────────────────────────────────────────────────────
    # Execution
    # ─────────────────────────────────────────────────────────────────

    async def execute(self, ctx: C) -> None:
        """Run every handler whose condition matches `ctx`.

        Raises:
            Exception: The handler's own exception when no error handler is
                registered, or whatever an error handler raises.
        """
        run = _Run(ctx, [r for r in self._middlewares if match_condition(r.condition, ctx)])
        nxt = _Continuation(lambda: self._advance(run, nxt))
        await nxt()

    async def _advance(self, run: _Run, nxt: _Continuation) -> None:
        if context_field(run.ctx, "error") is not None:
            return
        if run.index >= len(run.matched):
            return

        registration = run.matched[run.index]
        run.index += 1
        timed = self._monitoring
        start = time.perf_counter()

        try:
            await nxt.invoke(registration.handler, run.ctx)
        except Exception as exc:
            if timed:
                self._stats.record(registration.name, (time.perf_counter() - start) * 1000, failed=True)
            if exc is run.escaping:
                raise
            logger.debug(f"Middleware '{registration.name}' raised {type(exc).__name__}: {exc}")
            await self._handle_error(run, exc)
            return

        if timed:
            self._stats.record(registration.name, (time.perf_counter() - start) * 1000)

    async def _handle_error(self, run: _Run, error: Exception) -> None:
        handlers = list(self._error_middlewares)
        if not handlers:
            logger.warning(f"Unhandled {type(error).__name__} in middleware chain: {error}")
            run.escaping = error
            raise error

        index = 0

        async def step() -> None:
            nonlocal index
            if index >= len(handlers):
                return
            registration = handlers[index]
            index += 1
            try:
                await nxt.invoke(registration.handler, run.ctx, error)
            except Exception as exc:
                if exc is not run.escaping:
                    logger.debug(f"Error middleware '{registration.name}' raised {type(exc).__name__}: {exc}")
                    run.escaping = exc
                raise

        nxt = _Continuation(step)
        await nxt()

    # ─────────────────────────────────────────────────────────────────
    # Monitoring
    # ─────────────────────────────────────────────────────────────────

    def enable_performance_monitoring(self) -> None:
        self._monitoring = True

    def disable_performance_monitoring(self) -> None:
        self._monitoring = False

    @property
    def monitoring_enabled(self) -> bool:
        return self._monitoring

    def get_stats(self) -> list[MiddlewareStats]:
        return self._stats.snapshot()

    def clear_stats(self) -> None:
        self._stats.clear()

    def clear(self) -> None:
        """Drop all handlers, error handlers, and stats."""
        self._middlewares.clear()
        self._error_middlewares.clear()
        self._stats.clear()


def create_middleware_chain() -> MiddlewareChain[Any]:
    """Create an empty chain."""
    return MiddlewareChain()


H = TypeVar("H", bound=Callable[..., object])


def create_middleware(handler: H) -> H:
    """Return `handler` unchanged; usable as a decorator to mark middleware."""
    return handler
