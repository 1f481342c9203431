"""
Response caching example.

Demonstrates:
- Memoizing an expensive handler with a lifetime
- ETag-driven 304 responses on repeat requests
- Route data (pagination) producing separate cache entries
"""

import asyncio
import hashlib
import json

from fastapi import FastAPI
from starlette.responses import Response

from fastapi_request_chain import (
    CacheOptions,
    Chain,
    RequestContext,
    ResponseCache,
    ResponseTimer,
    chain_endpoint,
)

app = FastAPI(title="Response Cache Example")

cache = ResponseCache(CacheOptions(lifetime=30_000, debug=True))


async def build_report(ctx: RequestContext) -> Response:
    """Pretend to do something slow, then tag the body with an ETag."""
    await asyncio.sleep(0.5)
    page = int(ctx.data.get("page", 1))
    body = json.dumps({"page": page, "rows": list(range(page * 10, page * 10 + 10))})
    etag = '"' + hashlib.sha1(body.encode()).hexdigest() + '"'
    return Response(body, media_type="application/json", headers={"ETag": etag})


app.add_route(
    "/reports/{page}",
    chain_endpoint(Chain(ResponseTimer()), cache.memoize(build_report)),
)


if __name__ == "__main__":
    import uvicorn

    # curl -i localhost:8000/reports/1   (slow, then fast)
    # curl -i -H 'If-None-Match: "<etag>"' localhost:8000/reports/1   (304)
    uvicorn.run(app, host="0.0.0.0", port=8000)
