"""chain_endpoint() — factory producing FastAPI/Starlette endpoints from a chain."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from fastapi_request_chain._tasks import BackgroundTaskSet
from fastapi_request_chain._types import Handler, Middleware
from fastapi_request_chain.chain import Chain
from fastapi_request_chain.context import RequestContext
from fastapi_request_chain.exceptions import ChainAbort
from fastapi_request_chain.logger import RequestLogger

logger = logging.getLogger(__name__)


def chain_endpoint(
    chain: Chain | Sequence[Middleware],
    handler: Handler,
    *,
    data: Mapping[str, Any] | None = None,
    request_logger: RequestLogger | None = None,
) -> Callable[[Request], Awaitable[Response]]:
    """Return an endpoint that runs ``handler`` behind ``chain``.

    The context's ``data`` is ``data`` overlaid with the route's path
    parameters. Logging is spawned once the outcome is known and never
    awaited. A :class:`ChainAbort` becomes an ``HTTPException`` with its
    status and an ``HTTPException`` raised downstream passes through as is.
    Any other exception becomes a 500 carrying a ``trackingID`` (also sent as
    ``X-Tracking-ID``) that matches the id passed to
    ``request_logger.log_error``.
    """
    if not isinstance(chain, Chain):
        chain = Chain(*chain)
    resolved = chain.resolve()
    composed = chain.compose(handler)
    route_data = dict(data or {})
    tasks = BackgroundTaskSet("request logging")

    def _log_request(
        ctx: RequestContext, status: int, start: float, started: float
    ) -> None:
        if request_logger is None:
            return
        elapsed_ms = (time.perf_counter() - started) * 1000
        tasks.spawn(request_logger.log_request(ctx, status, start, elapsed_ms))

    async def endpoint(request: Request) -> Response:
        ctx = RequestContext(
            request=request, data={**route_data, **request.path_params}
        )
        start = time.time()
        started = time.perf_counter()

        try:
            response = await composed(ctx)
        except ChainAbort as exc:
            _log_request(ctx, exc.status_code, start, started)
            raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
        except StarletteHTTPException as exc:
            _log_request(ctx, exc.status_code, start, started)
            raise
        except Exception as exc:
            tracking_id = str(uuid.uuid4())
            logger.error(
                "[%s] Unhandled exception in chain: %s", tracking_id, exc, exc_info=exc
            )
            if request_logger is not None:
                tasks.spawn(
                    request_logger.log_error(
                        tracking_id, repr(exc), datetime.now(timezone.utc)
                    )
                )
            response = JSONResponse(
                {"error": "Internal Server Error", "trackingID": tracking_id},
                status_code=500,
                headers={"X-Tracking-ID": tracking_id},
            )

        _log_request(ctx, response.status_code, start, started)
        return response

    endpoint._chain_resolved = resolved  # type: ignore[attr-defined]
    endpoint._chain_tasks = tasks  # type: ignore[attr-defined]

    return endpoint
