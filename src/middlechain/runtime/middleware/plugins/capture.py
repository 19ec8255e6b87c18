"""Error middleware that records handler failures in the context."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from middlechain.foundation.errors import ErrorCode, ErrorInfo

from ..context import Next, set_context_field

logger = logging.getLogger("middlechain.middleware")


@dataclass(slots=True)
class CaptureErrorMiddleware:
    """Write an `ErrorInfo` for the failure into `ctx.error`, then continue.

    Register with `chain.use_error(...)`. Hosts read `ctx.error` after
    `execute` returns to build their response.

    Args:
        status: Status hint stored on the ErrorInfo
        expose_message: Include the exception message (False hides it)
        log: Logger for the captured failure
        name: Registration name used by the chain

    Example:
        >>> chain.use_error(CaptureErrorMiddleware(status=502))
        >>> await chain.execute(ctx)
        >>> ctx.error.status
        502
    """

    status: int = 500
    expose_message: bool = True
    log: logging.Logger = field(default_factory=lambda: logger)
    name: str = "capture-error"

    async def __call__(self, ctx: object, error: Exception, next: Next) -> None:
        info = ErrorInfo.from_exception(
            error,
            status=self.status,
            code=ErrorCode.HANDLER_FAILED,
            expose_message=self.expose_message,
        )
        set_context_field(ctx, "error", info)
        self.log.warning(f"Captured {type(error).__name__} as status {self.status}: {info.message}")
        await next()
