"""Shared fixtures for middlechain tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from middlechain import ManagerOptions, MiddlewareChain, MiddlewareManager, ServiceContainer, clear_settings_cache


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from MIDDLECHAIN_* variables and the settings cache."""
    for var in ("MIDDLECHAIN_PERFORMANCE_MONITORING", "MIDDLECHAIN_CONTINUE_ON_ERROR",
                "MIDDLECHAIN_LOG_LEVEL", "MIDDLECHAIN_LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def chain() -> MiddlewareChain[object]:
    return MiddlewareChain()


@pytest.fixture
def container() -> ServiceContainer:
    return ServiceContainer()


@pytest.fixture
def manager(container: ServiceContainer) -> MiddlewareManager:
    return MiddlewareManager(container, ManagerOptions())
