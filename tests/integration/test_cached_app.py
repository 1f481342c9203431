"""Scenario tests: memoized handlers behind a middleware chain over HTTP."""

from __future__ import annotations

import itertools
from typing import Any

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.responses import JSONResponse, Response

from fastapi_request_chain import (
    CacheOptions,
    Chain,
    RequestContext,
    ResponseCache,
    ResponseTimer,
    chain_endpoint,
)
from fastapi_request_chain._types import CallNext


def _build_app(cache: ResponseCache) -> tuple[FastAPI, list[str]]:
    calls: list[str] = []
    counter = itertools.count(1)

    async def list_items(ctx: RequestContext) -> Response:
        version = next(counter)
        calls.append(ctx.request.url.path)
        return JSONResponse(
            {"page": ctx.data.get("page"), "version": version},
            headers={"ETag": f'"v{version}"'},
        )

    async def paginate(ctx: RequestContext, call_next: CallNext) -> Response:
        ctx.state["page"] = ctx.request.query_params.get("page", "1")
        return await call_next()

    app = FastAPI()
    app.add_route(
        "/items",
        chain_endpoint(Chain(ResponseTimer(), paginate), cache.memoize(list_items)),
    )
    app.add_route(
        "/pages/{page}",
        chain_endpoint([], cache.memoize(list_items)),
    )
    return app, calls


class TestCachedApp:
    async def test_second_request_served_from_cache(self) -> None:
        cache = ResponseCache()
        app, calls = _build_app(cache)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            first = await client.get("/items")
            await cache.drain()
            second = await client.get("/items")

        assert calls == ["/items"]
        assert first.json() == second.json() == {"page": None, "version": 1}
        assert second.headers["etag"] == '"v1"'
        # Timer runs outside the cache, so each response gets its own header
        assert "x-response-time" in second.headers

    async def test_conditional_request_gets_304(self) -> None:
        cache = ResponseCache()
        app, _ = _build_app(cache)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            first = await client.get("/items")
            await cache.drain()
            etag = first.headers["etag"]
            cached = await client.get("/items", headers={"If-None-Match": etag})
            stale = await client.get("/items", headers={"If-None-Match": '"v0"'})

        assert cached.status_code == 304
        assert cached.content == b""
        assert cached.headers["etag"] == etag
        assert stale.status_code == 200
        assert stale.json()["version"] == 1

    async def test_path_params_discriminate_keys(self) -> None:
        cache = ResponseCache()
        app, calls = _build_app(cache)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            one = await client.get("/pages/1")
            await cache.drain()
            two = await client.get("/pages/2")
            await cache.drain()
            one_again = await client.get("/pages/1")

        assert calls == ["/pages/1", "/pages/2"]
        assert one.json() == one_again.json() == {"page": "1", "version": 1}
        assert two.json() == {"page": "2", "version": 2}

    async def test_expired_entries_recomputed(self) -> None:
        now = [0.0]
        cache = ResponseCache(CacheOptions(lifetime=50), clock=lambda: now[0])
        app, calls = _build_app(cache)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.get("/items")
            await cache.drain()
            now[0] += 0.1
            refreshed = await client.get("/items")

        assert len(calls) == 2
        assert refreshed.json()["version"] == 2
