"""RequestLogger — best-effort request and error logging off the response path."""

from __future__ import annotations

import inspect
import logging
from datetime import datetime, timezone
from typing import Any

import structlog

from fastapi_request_chain._types import LogEventSink, LogStringSink
from fastapi_request_chain.context import RequestContext
from fastapi_request_chain.events import Event

logger = logging.getLogger(__name__)

access_logger = logging.getLogger("fastapi_request_chain.access")


def default_log_string(line: str) -> None:
    access_logger.info(line)


def default_log_event(event: Event) -> None:
    fields = event.to_dict()
    structlog.get_logger("fastapi_request_chain.events").info(
        fields.pop("type"), event_id=fields.pop("id"), **fields
    )


async def _call_sink(sink: Any, arg: Any) -> Any:
    result = sink(arg)
    if inspect.isawaitable(result):
        result = await result
    return result


class RequestLogger:
    """Builds :class:`Event` records and forwards them to injected sinks.

    Both entry points are coroutines meant to be spawned, not awaited, by the
    request path. Sink failures are reported here and never re-raised.
    """

    def __init__(
        self,
        log_string: LogStringSink | None = None,
        log_event: LogEventSink | None = None,
    ) -> None:
        self._log_string = log_string or default_log_string
        self._log_event = log_event or default_log_event

    async def log_request(
        self,
        ctx: RequestContext,
        status: int,
        start: float,
        response_time_ms: float,
    ) -> Event:
        """Log a completed request.

        ``start`` is a POSIX timestamp taken when the request arrived.
        """
        date = datetime.fromtimestamp(start, tz=timezone.utc)
        request = ctx.request
        event = Event(
            id=f"{request.method}-{request.url}-{date.isoformat()}",
            type="request",
            date=date,
            data={
                "status": status,
                "response_time": f"{round(response_time_ms, 2)}ms",
                "request": request,
            },
        )

        line = (
            f"[{date.isoformat()}] {status} {request.method} {request.url} "
            f"{event.data['response_time']}"
        )
        try:
            await _call_sink(self._log_string, line)
        except Exception:
            logger.exception("log_string sink failed for %s", event.id)

        try:
            await _call_sink(self._log_event, event)
        except Exception:
            logger.exception("log_event sink failed for %s", event.id)

        return event

    async def log_error(
        self, error_id: str, error: Any, date: datetime | None = None
    ) -> Event:
        """Log an error raised while serving request ``error_id``."""
        date = date or datetime.now(timezone.utc)
        event = Event(
            id=f"ERROR-{error_id}-{date.isoformat()}",
            type="error",
            date=date,
            data={"error": error},
        )
        try:
            await _call_sink(self._log_event, event)
        except Exception:
            logger.exception("log_event sink failed for %s", event.id)
        return event
