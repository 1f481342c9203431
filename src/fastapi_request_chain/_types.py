"""Shared type aliases and protocols."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from starlette.responses import Response

if TYPE_CHECKING:
    from fastapi_request_chain.context import RequestContext
    from fastapi_request_chain.events import Event

# Continuation handed to each middleware: runs the remainder of the chain
CallNext = Callable[[], Awaitable[Response]]

Handler = Callable[["RequestContext"], Awaitable[Response]]
Middleware = Callable[["RequestContext", CallNext], Awaitable["Response | None"]]

KeyFunc = Callable[["RequestContext"], str]
Clock = Callable[[], float]

# Log sinks may be plain functions or coroutine functions
LogStringSink = Callable[[str], Any]
LogEventSink = Callable[["Event"], Any]
