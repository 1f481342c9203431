"""Chain class and compose() — the middleware execution engine."""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from starlette.responses import Response

from fastapi_request_chain._types import Handler, Middleware
from fastapi_request_chain.context import RequestContext
from fastapi_request_chain.exceptions import ChainInternalError
from fastapi_request_chain.trace import ChainTrace, TraceEntry


def _name(middleware: Any) -> str:
    return getattr(middleware, "__name__", type(middleware).__name__)


def _check_callable(middleware: Any) -> None:
    if not callable(middleware):
        raise TypeError(f"Middleware must be callable, got {middleware!r}")


class _Continuation:
    """The ``call_next`` handed to one middleware invocation."""

    __slots__ = ("_dispatch", "_index", "called", "response")

    def __init__(self, dispatch: Any, index: int) -> None:
        self._dispatch = dispatch
        self._index = index
        self.called = False
        self.response: Response | None = None

    async def __call__(self) -> Response:
        if self.called:
            raise ChainInternalError("call_next() invoked more than once")
        self.called = True
        self.response = await self._dispatch(self._index)
        return self.response


def _settle(
    middleware: Middleware, result: Response | None, call_next: _Continuation
) -> Response:
    if result is not None:
        return result
    # Returning nothing after call_next() passes the downstream response up
    if call_next.response is not None:
        return call_next.response
    raise ChainInternalError(f"Middleware {_name(middleware)} returned no response")


def compose(
    middlewares: Iterable[Middleware], handler: Handler, *, debug: bool = False
) -> Handler:
    """Compose middleware around a terminal handler into a single handler.

    Middleware run nested: pre-``call_next`` code in declared order, post code
    in reverse. A middleware that never calls ``call_next`` short-circuits the
    rest of the chain. Exceptions are not caught here; they surface from the
    enclosing ``call_next()`` and finally from the composed handler itself.

    With ``debug=True`` a :class:`ChainTrace` is stored in
    ``ctx.state["trace"]``.
    """
    stack = tuple(middlewares)
    for middleware in stack:
        _check_callable(middleware)
    depth = len(stack)

    async def composed(ctx: RequestContext) -> Response:
        trace = ChainTrace() if debug else None

        async def dispatch(index: int) -> Response:
            if index == depth:
                return await handler(ctx)

            middleware = stack[index]
            call_next = _Continuation(dispatch, index + 1)
            if trace is None:
                result = await middleware(ctx, call_next)
                return _settle(middleware, result, call_next)

            started = time.perf_counter()
            try:
                result = await middleware(ctx, call_next)
                response = _settle(middleware, result, call_next)
            except Exception as exc:
                trace.entries.append(
                    TraceEntry(
                        middleware_name=_name(middleware),
                        duration_ms=(time.perf_counter() - started) * 1000,
                        outcome="FAILED",
                        reason=str(exc),
                    )
                )
                raise
            trace.entries.append(
                TraceEntry(
                    middleware_name=_name(middleware),
                    duration_ms=(time.perf_counter() - started) * 1000,
                    outcome="OK" if call_next.called else "SHORT_CIRCUIT",
                )
            )
            return response

        if trace is None:
            return await dispatch(0)

        chain_start = time.perf_counter()
        ctx.state["trace"] = trace
        try:
            return await dispatch(0)
        except Exception as exc:
            trace.outcome = "ERROR"
            trace.error = exc
            raise
        finally:
            trace.total_duration_ms = (time.perf_counter() - chain_start) * 1000

    return composed


@dataclass(frozen=True)
class ResolvedChain:
    """Immutable, pre-computed execution plan."""

    middlewares: tuple[Middleware, ...]
    debug: bool = False


class Chain:
    """Ordered container of middleware, composed around a terminal handler."""

    def __init__(self, *middlewares: Middleware | Chain, debug: bool = False) -> None:
        self._items: list[Middleware | Chain] = []
        self._debug = debug
        self._resolved: ResolvedChain | None = None
        self.add(*middlewares)

    def add(self, *middlewares: Middleware | Chain) -> Chain:
        for middleware in middlewares:
            if not isinstance(middleware, Chain):
                _check_callable(middleware)
        self._items.extend(middlewares)
        self._resolved = None
        return self

    def resolve(self) -> ResolvedChain:
        if self._resolved is not None:
            return self._resolved

        flat: list[Middleware] = []
        self._flatten(self._items, flat)

        self._resolved = ResolvedChain(middlewares=tuple(flat), debug=self._debug)
        return self._resolved

    def compose(self, handler: Handler) -> Handler:
        resolved = self.resolve()
        return compose(resolved.middlewares, handler, debug=resolved.debug)

    @staticmethod
    def _flatten(items: list[Middleware | Chain], out: list[Middleware]) -> None:
        for item in items:
            if isinstance(item, Chain):
                Chain._flatten(item._items, out)
            else:
                out.append(item)
