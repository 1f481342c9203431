"""Performance benchmark for chain execution and cache hit overhead."""

from __future__ import annotations

import time
from typing import Any

from starlette.responses import PlainTextResponse, Response

from fastapi_request_chain._types import CallNext
from fastapi_request_chain.cache import ResponseCache
from fastapi_request_chain.chain import Chain
from fastapi_request_chain.context import RequestContext


async def _passthrough(ctx: RequestContext, call_next: CallNext) -> Response:
    return await call_next()


async def _stateful(ctx: RequestContext, call_next: CallNext) -> Response:
    ctx.state["seen"] = True
    return await call_next()


async def _handler(ctx: RequestContext) -> Response:
    return PlainTextResponse("ok", headers={"ETag": '"v1"'})


async def _average_ms(call: Any, make_arg: Any, iterations: int = 1000) -> float:
    for _ in range(10):
        await call(make_arg())
    start = time.perf_counter()
    for _ in range(iterations):
        await call(make_arg())
    return (time.perf_counter() - start) * 1000 / iterations


class TestPerformance:
    async def test_five_middleware_chain_overhead(self, make_request: Any) -> None:
        """Chain overhead stays well under a millisecond for 5 middleware."""
        composed = Chain(
            _passthrough, _stateful, _passthrough, _stateful, _passthrough
        ).compose(_handler)
        request = make_request()

        avg_ms = await _average_ms(composed, lambda: RequestContext(request=request))
        # Generous margin for slow CI machines
        assert avg_ms < 1.0, f"Average chain overhead {avg_ms:.3f}ms exceeds 1ms"

    async def test_cache_hit_overhead(self, make_request: Any) -> None:
        cache = ResponseCache()
        handler = cache.memoize(_handler)
        request = make_request(path="/hot")
        await handler(RequestContext(request=request))
        await cache.drain()

        avg_ms = await _average_ms(handler, lambda: RequestContext(request=request))
        assert avg_ms < 1.0, f"Average cache hit {avg_ms:.3f}ms exceeds 1ms"
