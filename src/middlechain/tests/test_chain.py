"""Tests for MiddlewareChain registration, dispatch, and error routing.

Validates:
- Nested continuation ordering
- Conditional filtering and registration overloads
- Error routing to error handlers, and re-raise without them
- ctx.error halting the pipeline
- Name uniqueness, removal, insertion
"""

from __future__ import annotations

import asyncio

import pytest

from middlechain import (
    Context,
    DuplicateMiddlewareError,
    ErrorCode,
    ErrorInfo,
    MatchCondition,
    MiddlewareChain,
    Next,
    create_middleware,
    create_middleware_chain,
)


def marker(log: list[str], label: str):
    """Handler that records pre/post markers around its continuation."""
    async def handler(ctx: object, next: Next) -> None:
        log.append(f"{label}-pre")
        await next()
        log.append(f"{label}-post")
    return handler


# ═════════════════════════════════════════════════════════════════════════════
# Ordering
# ═════════════════════════════════════════════════════════════════════════════


class TestOrdering:

    @pytest.mark.asyncio
    async def test_nested_continuation_order(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []
        chain.use(marker(log, "A"), name="A")
        chain.use(marker(log, "B"), name="B")

        await chain.execute({})

        assert log == ["A-pre", "B-pre", "B-post", "A-post"]

    @pytest.mark.asyncio
    async def test_handler_that_skips_next_truncates_chain(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []

        async def gate(ctx: object, next: Next) -> None:
            log.append("gate")

        chain.use(gate)
        chain.use(marker(log, "after"), name="after")
        await chain.execute({})

        assert log == ["gate"]

    @pytest.mark.asyncio
    async def test_context_is_shared(self, chain: MiddlewareChain[Context]) -> None:
        async def first(ctx: Context, next: Next) -> None:
            ctx["user"] = "alice"
            await next()

        async def second(ctx: Context, next: Next) -> None:
            ctx["greeting"] = f"hi {ctx['user']}"
            await next()

        chain.use(first)
        chain.use(second)
        ctx = Context()
        await chain.execute(ctx)

        assert ctx.get("greeting") == "hi alice"

    @pytest.mark.asyncio
    async def test_sync_handlers_forward_control(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []

        def sync_handler(ctx: dict[str, object], next: Next) -> None:
            log.append("sync")
            next()

        chain.use(sync_handler)
        chain.use(marker(log, "async"), name="async")
        await chain.execute({})

        assert log == ["sync", "async-pre", "async-post"]

    @pytest.mark.asyncio
    async def test_unawaited_next_in_async_handler_is_driven(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []

        async def fire_and_forget(ctx: object, next: Next) -> None:
            log.append("outer")
            next()
            log.append("outer-done")

        chain.use(fire_and_forget)
        chain.use(marker(log, "inner"), name="inner")
        await chain.execute({})

        assert log == ["outer", "outer-done", "inner-pre", "inner-post"]

    @pytest.mark.asyncio
    async def test_handlers_may_suspend(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []

        async def slow(ctx: object, next: Next) -> None:
            await asyncio.sleep(0.001)
            log.append("slow")
            await next()

        chain.use(slow)
        chain.use(marker(log, "fast"), name="fast")
        await chain.execute({})

        assert log == ["slow", "fast-pre", "fast-post"]

    @pytest.mark.asyncio
    async def test_empty_chain_is_noop(self, chain: MiddlewareChain[object]) -> None:
        await chain.execute({"path": "/"})


# ═════════════════════════════════════════════════════════════════════════════
# Registration
# ═════════════════════════════════════════════════════════════════════════════


class TestRegistration:

    @pytest.mark.asyncio
    async def test_condition_filters_handlers(self, chain: MiddlewareChain[object]) -> None:
        seen: list[str] = []

        async def api(ctx: dict[str, str], next: Next) -> None:
            seen.append(ctx["path"])
            await next()

        chain.use(api, MatchCondition(path="/api"))
        await chain.execute({"path": "/api/users"})
        await chain.execute({"path": "/other"})

        assert seen == ["/api/users"]

    @pytest.mark.asyncio
    async def test_method_list_condition(self, chain: MiddlewareChain[object]) -> None:
        seen: list[str] = []

        async def rw(ctx: dict[str, str], next: Next) -> None:
            seen.append(ctx["method"])
            await next()

        chain.use(rw, MatchCondition(method=["GET", "POST"]))
        for method in ("get", "PUT", "POST"):
            await chain.execute({"method": method})

        assert seen == ["get", "POST"]

    @pytest.mark.asyncio
    async def test_path_first_overload(self, chain: MiddlewareChain[object]) -> None:
        hits: list[str] = []

        async def handler(ctx: dict[str, str], next: Next) -> None:
            hits.append(ctx["path"])
            await next()

        name = chain.use("/api", handler, "api-middleware")
        await chain.execute({"path": "/api/users"})
        await chain.execute({"path": "/other"})

        assert name == "api-middleware"
        assert hits == ["/api/users"]

    @pytest.mark.asyncio
    async def test_string_condition_is_path_prefix(self, chain: MiddlewareChain[object]) -> None:
        hits: list[str] = []
        chain.use(lambda ctx, next: hits.append(ctx["path"]), "/admin")

        await chain.execute({"path": "/admin/panel"})
        await chain.execute({"path": "/public"})

        assert hits == ["/admin/panel"]

    def test_name_resolution(self, chain: MiddlewareChain[object]) -> None:
        async def named_handler(ctx: object, next: Next) -> None:
            await next()

        assert chain.use(named_handler) == "named_handler"
        assert chain.use(lambda ctx, next: None) == "middleware-1"
        assert chain.use(lambda ctx, next: None, name="explicit") == "explicit"
        assert chain.list_middlewares() == ["named_handler", "middleware-1", "explicit"]

    def test_callable_object_uses_name_attribute(self, chain: MiddlewareChain[object]) -> None:
        class Tagged:
            name = "tagged"

            async def __call__(self, ctx: object, next: Next) -> None:
                await next()

        assert chain.use(Tagged()) == "tagged"

    def test_duplicate_name_rejected(self, chain: MiddlewareChain[object]) -> None:
        chain.use(lambda ctx, next: None, name="dup")

        with pytest.raises(DuplicateMiddlewareError) as info:
            chain.use(lambda ctx, next: None, name="dup")

        assert info.value.code == ErrorCode.DUPLICATE_NAME
        assert "already registered" in str(info.value)
        assert chain.get_middleware_count() == 1

    def test_error_namespace_is_separate(self, chain: MiddlewareChain[object]) -> None:
        chain.use(lambda ctx, next: None, name="shared")
        chain.use_error(lambda ctx, err, next: None, name="shared")

        with pytest.raises(DuplicateMiddlewareError):
            chain.use_error(lambda ctx, err, next: None, name="shared")

        assert chain.get_middleware_count() == 1
        assert chain.get_error_middleware_count() == 1

    def test_error_handler_auto_names(self, chain: MiddlewareChain[object]) -> None:
        assert chain.use_error(lambda ctx, err, next: None) == "error-middleware-0"
        assert chain.use_error(lambda ctx, err, next: None) == "error-middleware-1"

    def test_non_callable_rejected(self, chain: MiddlewareChain[object]) -> None:
        with pytest.raises(TypeError):
            chain.use(42)  # type: ignore[call-overload]


# ═════════════════════════════════════════════════════════════════════════════
# Error Handling
# ═════════════════════════════════════════════════════════════════════════════


class TestErrorHandling:

    @pytest.mark.asyncio
    async def test_error_routed_to_error_handler(self, chain: MiddlewareChain[object]) -> None:
        seen: list[str] = []

        async def boom(ctx: object, next: Next) -> None:
            raise ValueError("test error")

        async def on_error(ctx: object, error: Exception, next: Next) -> None:
            seen.append(str(error))
            await next()

        chain.use(boom)
        chain.use_error(on_error)
        await chain.execute({})

        assert seen == ["test error"]

    @pytest.mark.asyncio
    async def test_unhandled_error_reraised(self, chain: MiddlewareChain[object]) -> None:
        original = ValueError("unhandled")

        async def boom(ctx: object, next: Next) -> None:
            raise original

        chain.use(marker([], "outer"), name="outer")
        chain.use(boom)

        with pytest.raises(ValueError) as info:
            await chain.execute({})

        assert info.value is original

    @pytest.mark.asyncio
    async def test_error_handlers_run_in_order(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []

        async def boom(ctx: object, next: Next) -> None:
            raise RuntimeError("x")

        async def first(ctx: object, error: Exception, next: Next) -> None:
            log.append("first")
            await next()

        async def second(ctx: object, error: Exception, next: Next) -> None:
            log.append("second")
            await next()

        chain.use(boom)
        chain.use_error(first)
        chain.use_error(second)
        await chain.execute({})

        assert log == ["first", "second"]

    @pytest.mark.asyncio
    async def test_error_handler_failure_escapes_once(self, chain: MiddlewareChain[object]) -> None:
        calls: list[str] = []

        async def boom(ctx: object, next: Next) -> None:
            raise ValueError("inner")

        async def broken(ctx: object, error: Exception, next: Next) -> None:
            calls.append("broken")
            raise RuntimeError("handler failed")

        async def never(ctx: object, error: Exception, next: Next) -> None:
            calls.append("never")

        chain.use(marker([], "outer"), name="outer")
        chain.use(boom)
        chain.use_error(broken)
        chain.use_error(never)

        with pytest.raises(RuntimeError, match="handler failed"):
            await chain.execute({})

        assert calls == ["broken"]

    @pytest.mark.asyncio
    async def test_recovered_error_resumes_upstream(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []

        async def boom(ctx: object, next: Next) -> None:
            raise ValueError("x")

        async def recover(ctx: object, error: Exception, next: Next) -> None:
            log.append("recovered")

        chain.use(marker(log, "A"), name="A")
        chain.use(boom)
        chain.use_error(recover)
        await chain.execute({})

        assert log == ["A-pre", "recovered", "A-post"]

    @pytest.mark.asyncio
    async def test_context_error_halts_pipeline(self, chain: MiddlewareChain[Context]) -> None:
        ran: list[str] = []

        async def fail_soft(ctx: Context, next: Next) -> None:
            ctx.error = ErrorInfo(status=403, message="forbidden")
            await next()

        async def downstream(ctx: Context, next: Next) -> None:
            ran.append("downstream")
            await next()

        chain.use(fail_soft)
        chain.use(downstream)
        ctx = Context()
        await chain.execute(ctx)

        assert ran == []
        assert isinstance(ctx.error, ErrorInfo)
        assert ctx.error.status == 403

    @pytest.mark.asyncio
    async def test_context_error_in_dict(self, chain: MiddlewareChain[object]) -> None:
        ran: list[str] = []

        async def fail_soft(ctx: dict[str, object], next: Next) -> None:
            ctx["error"] = {"message": "stop"}
            await next()

        chain.use(fail_soft)
        chain.use(lambda ctx, next: ran.append("x"))
        await chain.execute({})

        assert ran == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [{}, 0, "", False])
    async def test_falsy_context_error_still_halts(self, chain: MiddlewareChain[object], value: object) -> None:
        ran: list[str] = []

        async def setter(ctx: dict[str, object], next: Next) -> None:
            ctx["error"] = value
            await next()

        async def after(ctx: object, next: Next) -> None:
            ran.append("after")
            await next()

        chain.use(setter)
        chain.use(after)
        await chain.execute({})

        assert ran == []

    @pytest.mark.asyncio
    async def test_cancellation_is_not_intercepted(self, chain: MiddlewareChain[object]) -> None:
        handled: list[Exception] = []

        async def cancelled(ctx: object, next: Next) -> None:
            raise asyncio.CancelledError()

        chain.use(cancelled)
        chain.use_error(lambda ctx, err, next: handled.append(err))

        with pytest.raises(asyncio.CancelledError):
            await chain.execute({})
        assert handled == []


# ═════════════════════════════════════════════════════════════════════════════
# Management
# ═════════════════════════════════════════════════════════════════════════════


class TestManagement:

    @pytest.mark.asyncio
    async def test_remove(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []
        chain.use(marker(log, "keep"), name="keep")
        chain.use(marker(log, "drop"), name="drop")

        assert chain.remove("drop") is True
        assert chain.remove("drop") is False
        await chain.execute({})

        assert log == ["keep-pre", "keep-post"]

    def test_remove_error(self, chain: MiddlewareChain[object]) -> None:
        chain.use_error(lambda ctx, err, next: None, name="eh")

        assert chain.remove_error("eh") is True
        assert chain.remove_error("eh") is False
        assert not chain.has_error_middleware("eh")

    def test_accessors(self, chain: MiddlewareChain[object]) -> None:
        async def handler(ctx: object, next: Next) -> None:
            await next()

        async def error_handler(ctx: object, error: Exception, next: Next) -> None:
            await next()

        chain.use(handler, MatchCondition(), "my-middleware")
        chain.use_error(error_handler, "my-error-handler")

        assert chain.get_middleware("my-middleware") is handler
        assert chain.get_middleware("missing") is None
        assert chain.get_error_middleware("my-error-handler") is error_handler
        assert chain.has_middleware("my-middleware")
        assert "my-middleware" in chain
        assert not chain.has_middleware("missing")
        assert chain.has_error_middleware("my-error-handler")
        assert chain.list_error_middlewares() == ["my-error-handler"]
        assert len(chain) == 1

    @pytest.mark.asyncio
    async def test_insert_before(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []
        chain.use(marker(log, "first"), name="first")
        chain.use(marker(log, "last"), name="last")

        assert chain.insert_before("last", marker(log, "mid"), name="mid") is True
        await chain.execute({})

        assert chain.list_middlewares() == ["first", "mid", "last"]
        assert log[:3] == ["first-pre", "mid-pre", "last-pre"]

    @pytest.mark.asyncio
    async def test_insert_after(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []
        chain.use(marker(log, "first"), name="first")
        chain.use(marker(log, "last"), name="last")

        assert chain.insert_after("first", marker(log, "mid"), name="mid") is True
        await chain.execute({})

        assert chain.list_middlewares() == ["first", "mid", "last"]
        assert log[:3] == ["first-pre", "mid-pre", "last-pre"]

    @pytest.mark.asyncio
    async def test_insert_with_condition(self, chain: MiddlewareChain[object]) -> None:
        log: list[str] = []
        chain.use(marker(log, "base"), name="base")
        chain.insert_before("base", marker(log, "api"), "/api", "api")

        await chain.execute({"path": "/web"})
        assert log == ["base-pre", "base-post"]

    def test_insert_missing_target(self, chain: MiddlewareChain[object]) -> None:
        assert chain.insert_before("missing", lambda ctx, next: None, name="x") is False
        assert chain.insert_after("missing", lambda ctx, next: None, name="x") is False
        assert chain.get_middleware_count() == 0

    def test_insert_duplicate_name(self, chain: MiddlewareChain[object]) -> None:
        chain.use(lambda ctx, next: None, name="a")
        chain.use(lambda ctx, next: None, name="b")

        with pytest.raises(DuplicateMiddlewareError):
            chain.insert_after("a", lambda ctx, next: None, name="b")
        assert chain.list_middlewares() == ["a", "b"]

    def test_clear_is_idempotent(self, chain: MiddlewareChain[object]) -> None:
        chain.use(lambda ctx, next: None, name="a")
        chain.use_error(lambda ctx, err, next: None, name="e")

        chain.clear()
        assert (chain.get_middleware_count(), chain.get_error_middleware_count()) == (0, 0)
        chain.clear()
        assert (chain.get_middleware_count(), chain.get_error_middleware_count()) == (0, 0)


class TestFactories:

    def test_create_middleware_chain(self) -> None:
        assert isinstance(create_middleware_chain(), MiddlewareChain)

    @pytest.mark.asyncio
    async def test_create_middleware_is_identity(self, chain: MiddlewareChain[object]) -> None:
        hits: list[int] = []

        @create_middleware
        async def counted(ctx: object, next: Next) -> None:
            hits.append(1)
            await next()

        chain.use(counted)
        await chain.execute({})

        assert chain.get_middleware("counted") is counted
        assert hits == [1]
