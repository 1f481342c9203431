"""ChainMiddleware abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from starlette.responses import Response

from fastapi_request_chain._types import CallNext
from fastapi_request_chain.context import RequestContext


class ChainMiddleware(ABC):
    """Base for class-based middleware that carries its own configuration.

    Plain ``async def mw(ctx, call_next)`` functions work in a chain as well;
    subclass this when the middleware needs constructor arguments.
    """

    @abstractmethod
    async def dispatch(
        self, ctx: RequestContext, call_next: CallNext
    ) -> Response | None: ...

    async def __call__(
        self, ctx: RequestContext, call_next: CallNext
    ) -> Response | None:
        return await self.dispatch(ctx, call_next)
