"""ResponseTimer — records request timing in ctx.state."""

from __future__ import annotations

import time

from starlette.responses import Response

from fastapi_request_chain._types import CallNext
from fastapi_request_chain.context import RequestContext
from fastapi_request_chain.middleware import ChainMiddleware


class ResponseTimer(ChainMiddleware):
    """Stores start/end timestamps under ``state_key`` and sets a timing header."""

    def __init__(
        self, *, state_key: str = "timing", header: str | None = "X-Response-Time"
    ) -> None:
        self._state_key = state_key
        self._header = header

    async def dispatch(self, ctx: RequestContext, call_next: CallNext) -> Response:
        start = time.time()
        started = time.perf_counter()
        ctx.state[self._state_key] = {"start": start}

        response = await call_next()

        elapsed_ms = (time.perf_counter() - started) * 1000
        ctx.state[self._state_key] = {
            "start": start,
            "end": time.time(),
            "elapsed_ms": elapsed_ms,
        }
        if self._header is not None:
            response.headers[self._header] = f"{elapsed_ms:.2f}ms"
        return response
