"""Foundation layer: configuration, errors, service registry."""

from .config import LoggingSettings, MiddlewareSettings, clear_settings_cache, get_settings
from .errors import DuplicateMiddlewareError, ErrorCode, ErrorInfo, MiddlewareError, MiddlewareException
from .registry import ServiceContainer, ServiceRegistry

__all__ = [
    # Config
    "LoggingSettings", "MiddlewareSettings", "clear_settings_cache", "get_settings",
    # Errors
    "DuplicateMiddlewareError", "ErrorCode", "ErrorInfo", "MiddlewareError", "MiddlewareException",
    # Registry
    "ServiceContainer", "ServiceRegistry",
]
