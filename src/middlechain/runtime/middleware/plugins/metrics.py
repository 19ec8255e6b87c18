"""Counters and timings for everything downstream of a chain position."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ..context import Next, context_field

logger = logging.getLogger("middlechain.middleware")

_TAG_FIELDS = ("path", "method")


@runtime_checkable
class MetricsBackend(Protocol):
    """Sink for chain metrics; statsd-style clients satisfy it as-is."""

    def increment(self, metric: str, value: int = 1, tags: dict[str, str] | None = None) -> None: ...
    def timing(self, metric: str, value_ms: float, tags: dict[str, str] | None = None) -> None: ...


def _render_tags(tags: dict[str, str] | None) -> str:
    return "".join(f" {k}={v}" for k, v in sorted((tags or {}).items()))


@dataclass(slots=True)
class LogMetricsBackend:
    """Writes each metric as a DEBUG line, e.g. `middleware.calls=1 method=GET`."""

    log: logging.Logger = field(default_factory=lambda: logger)

    def increment(self, metric: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self.log.debug(f"METRIC {metric}={value}{_render_tags(tags)}")

    def timing(self, metric: str, value_ms: float, tags: dict[str, str] | None = None) -> None:
        self.log.debug(f"METRIC {metric}={value_ms:.2f}ms{_render_tags(tags)}")


@dataclass(slots=True)
class MetricsMiddleware:
    """Report calls, outcomes, and latency of the handlers after this one.

    Metric names (prefixed with `prefix`):
    - `.calls` once per pass
    - `.errors` when a downstream handler left `ctx.error` set
    - `.exceptions` when a downstream handler raised
    - `.duration_ms` downstream latency, on non-raising passes only

    Tags carry the context's `path` and `method` when they are set.

    Example:
        >>> chain.use(MetricsMiddleware(backend=statsd_client, prefix="gateway"))
    """

    backend: MetricsBackend = field(default_factory=LogMetricsBackend)
    prefix: str = "middleware"
    name: str = "metrics"

    async def __call__(self, ctx: object, next: Next) -> None:
        tags = {key: str(value) for key in _TAG_FIELDS if (value := context_field(ctx, key)) is not None}
        emit = self.backend.increment
        began = time.perf_counter()

        try:
            await next()
        except Exception:
            emit(f"{self.prefix}.calls", tags=tags)
            emit(f"{self.prefix}.exceptions", tags=tags)
            raise

        elapsed_ms = (time.perf_counter() - began) * 1000
        emit(f"{self.prefix}.calls", tags=tags)
        self.backend.timing(f"{self.prefix}.duration_ms", elapsed_ms, tags=tags)
        if context_field(ctx, "error") is not None:
            emit(f"{self.prefix}.errors", tags=tags)
