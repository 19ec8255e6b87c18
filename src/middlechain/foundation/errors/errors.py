"""Standardized error handling for middleware chains.

Provides error codes, structured configuration errors, and the
`ErrorInfo` model used for the `ctx.error` stop convention.
Uses Pydantic for validation and serialization.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ErrorCode(StrEnum):
    """Standard error codes for middleware failures.

    Used for programmatic error handling and for `ErrorInfo.code`.
    """
    DUPLICATE_NAME = "DUPLICATE_NAME"
    HANDLER_FAILED = "HANDLER_FAILED"
    UNKNOWN = "UNKNOWN"


class MiddlewareError(BaseModel):
    """Structured description of a middleware configuration failure.

    Attributes:
        name: Middleware name involved in the failure
        message: Human-readable error message
        code: Machine-readable error code
        chain: Chain name, when the failure is scoped to a managed chain
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Middleware Error",
            "examples": [{
                "name": "auth",
                "message": 'Middleware "auth" is already registered',
                "code": "DUPLICATE_NAME",
            }],
        },
    )

    name: Annotated[str, Field(min_length=1, description="Middleware name")]
    message: Annotated[str, Field(min_length=1, description="Human-readable error message")]
    code: ErrorCode = Field(default=ErrorCode.UNKNOWN, description="Machine-readable classification")
    chain: str | None = Field(default=None, description="Owning chain, if any")

    def render(self) -> str:
        where = f" (chain {self.chain!r})" if self.chain else ""
        return f"[{self.code}] {self.message}{where}"

    __str__ = render


class MiddlewareException(Exception):
    """Exception wrapping a MiddlewareError for raising."""

    __slots__ = ("error",)

    def __init__(self, error: MiddlewareError) -> None:
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @classmethod
    def create(
        cls,
        name: str,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        *,
        chain: str | None = None,
    ) -> Self:
        """Create middleware exception."""
        return cls(MiddlewareError(name=name, message=message, code=code, chain=chain))


class DuplicateMiddlewareError(MiddlewareException):
    """Raised when a middleware name is already taken in its namespace."""

    @classmethod
    def for_name(cls, name: str, *, kind: str = "Middleware", chain: str | None = None) -> Self:
        return cls.create(
            name,
            f'{kind} "{name}" is already registered',
            ErrorCode.DUPLICATE_NAME,
            chain=chain,
        )


class ErrorInfo(BaseModel):
    """Structured value for `ctx.error`.

    Any `ctx.error` other than None stops the pipeline at the next step;
    this model is the conventional shape hosts and plugins write there.
    Extra keys are kept so hosts can attach their own fields.

    Example:
        >>> ctx.error = ErrorInfo(status=401, message="unauthorized")
        >>> await next()  # downstream handlers are skipped
    """

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    status: int | None = Field(default=None, ge=100, le=599, description="Status code hint for the host")
    message: str | None = None
    code: ErrorCode = ErrorCode.UNKNOWN

    @computed_field
    @property
    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        status: int = 500,
        code: ErrorCode = ErrorCode.HANDLER_FAILED,
        expose_message: bool = True,
    ) -> Self:
        """Build an ErrorInfo from a caught exception."""
        message = (str(exc) or type(exc).__name__) if expose_message else "Internal error"
        return cls(status=status, message=message, code=code, exception_type=type(exc).__name__)
