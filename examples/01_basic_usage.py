"""
Basic usage example of fastapi-request-chain.

Demonstrates:
- Writing continuation-style middleware
- Mounting a chain in front of a handler with chain_endpoint
- Short-circuiting with ChainAbort
"""

from fastapi import FastAPI
from starlette.responses import JSONResponse, Response

from fastapi_request_chain import (
    Chain,
    ChainAbort,
    RequestContext,
    RequestLogger,
    ResponseTimer,
    chain_endpoint,
)

app = FastAPI(title="Basic Chain Example")


async def require_api_key(ctx: RequestContext, call_next):
    """Reject requests without an API key before the handler runs."""
    if ctx.request.headers.get("x-api-key") != "demo-key":
        raise ChainAbort("Invalid API key", status_code=401)
    ctx.state["client"] = "demo"
    return await call_next()


async def add_server_header(ctx: RequestContext, call_next):
    """Post-processing: runs after the handler returns."""
    response = await call_next()
    response.headers["X-Served-By"] = "fastapi-request-chain"
    return response


async def get_user(ctx: RequestContext) -> Response:
    return JSONResponse({"user_id": ctx.data["user_id"], "client": ctx.state["client"]})


chain = Chain(ResponseTimer(), add_server_header, require_api_key)

app.add_route(
    "/users/{user_id}",
    chain_endpoint(chain, get_user, request_logger=RequestLogger()),
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
