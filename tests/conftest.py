"""Shared pytest fixtures for fastapi-request-chain tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from starlette.requests import Request
from starlette.responses import Response

from fastapi_request_chain.context import RequestContext


@pytest.fixture
def make_request() -> Any:
    """Factory for creating mock Starlette Request objects."""

    def _make(
        method: str = "GET",
        path: str = "/",
        headers: dict[str, str] | None = None,
        query_string: str = "",
    ) -> Request:
        scope: dict[str, Any] = {
            "type": "http",
            "method": method,
            "scheme": "http",
            "server": ("testserver", 80),
            "path": path,
            "query_string": query_string.encode(),
            "headers": [
                (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
            ],
            "root_path": "",
        }
        return Request(scope)

    return _make


@pytest.fixture
def make_ctx(make_request: Any) -> Any:
    """Factory for RequestContext objects around a mock request."""

    def _make(
        path: str = "/",
        *,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        method: str = "GET",
        query_string: str = "",
    ) -> RequestContext:
        request = make_request(
            method=method, path=path, headers=headers, query_string=query_string
        )
        return RequestContext(request=request, data=data or {})

    return _make


@pytest.fixture
def counting_handler() -> AsyncMock:
    """Handler mock returning a fresh tagged response on every call."""
    mock = AsyncMock()

    async def _respond(ctx: RequestContext) -> Response:
        return Response(
            content=f"call-{mock.await_count}".encode(),
            media_type="text/plain",
            headers={"ETag": '"abc"'},
        )

    mock.side_effect = _respond
    return mock


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
