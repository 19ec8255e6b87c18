"""Per-handler execution statistics."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, NonNegativeFloat, NonNegativeInt


class MiddlewareStats(BaseModel):
    """Running aggregate for one handler name. Durations are milliseconds."""

    name: Annotated[str, Field(min_length=1)]
    count: NonNegativeInt = 0
    total_time: NonNegativeFloat = 0.0
    average_time: NonNegativeFloat = 0.0
    max_time: NonNegativeFloat = 0.0
    min_time: NonNegativeFloat = 0.0
    error_count: NonNegativeInt = 0

    def record(self, duration_ms: float, *, failed: bool = False) -> None:
        duration_ms = max(duration_ms, 0.0)
        self.min_time = duration_ms if self.count == 0 else min(self.min_time, duration_ms)
        self.count += 1
        self.total_time += duration_ms
        self.average_time = self.total_time / self.count
        self.max_time = max(self.max_time, duration_ms)
        if failed:
            self.error_count += 1


class StatsRecorder:
    """Stats table keyed by handler name, in first-recorded order.

    Updates are plain read-modify-write; concurrent executions of the same
    chain share one table.
    """

    __slots__ = ("_stats",)

    def __init__(self) -> None:
        self._stats: dict[str, MiddlewareStats] = {}

    def record(self, name: str, duration_ms: float, *, failed: bool = False) -> None:
        if (entry := self._stats.get(name)) is None:
            entry = self._stats[name] = MiddlewareStats(name=name)
        entry.record(duration_ms, failed=failed)

    def discard(self, name: str) -> None:
        self._stats.pop(name, None)

    def snapshot(self) -> list[MiddlewareStats]:
        """Copies of every entry; mutating them leaves the table untouched."""
        return [entry.model_copy() for entry in self._stats.values()]

    def clear(self) -> None:
        self._stats.clear()
