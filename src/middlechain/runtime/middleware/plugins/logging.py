"""Logging middleware for chain execution."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from ..context import Next, context_field, set_context_field

logger = logging.getLogger("middlechain.middleware")


@dataclass(slots=True)
class LoggingMiddleware:
    """Log each pass through the chain with timing and outcome.

    Logs at INFO level when downstream handlers complete, WARNING when they
    leave an error in the context, and with traceback when they raise.
    Duration is stored in context as 'duration_ms'.

    Args:
        log: Logger instance to use (defaults to middlechain.middleware)
        name: Registration name used by the chain

    Example:
        >>> chain.use(LoggingMiddleware())
    """

    log: logging.Logger = field(default_factory=lambda: logger)
    name: str = "logging"

    async def __call__(self, ctx: object, next: Next) -> None:
        label = " ".join(str(v) for v in (context_field(ctx, "method"), context_field(ctx, "path")) if v) or "-"
        start = time.perf_counter()
        self.log.info(f"[{label}] Starting")

        try:
            await next()
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            set_context_field(ctx, "duration_ms", duration_ms)
            self.log.exception(f"[{label}] EXCEPTION ({duration_ms:.1f}ms): {e}")
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        set_context_field(ctx, "duration_ms", duration_ms)
        failed = context_field(ctx, "error") is not None
        level = logging.WARNING if failed else logging.INFO
        self.log.log(level, f"[{label}] {'ERROR' if failed else 'OK'} ({duration_ms:.1f}ms)")
