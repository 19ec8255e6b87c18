"""Error handling for middlechain.

- ErrorCode: Standard error codes
- MiddlewareError/MiddlewareException: Structured configuration errors
- DuplicateMiddlewareError: Name collision on registration
- ErrorInfo: Conventional shape of `ctx.error`
"""

from .errors import (
    DuplicateMiddlewareError,
    ErrorCode,
    ErrorInfo,
    MiddlewareError,
    MiddlewareException,
)

__all__ = [
    "DuplicateMiddlewareError",
    "ErrorCode",
    "ErrorInfo",
    "MiddlewareError",
    "MiddlewareException",
]
