"""FastAPI Request Chain - middleware chains, response memoization and request logging."""

from fastapi_request_chain.cache import (
    CacheItem,
    CacheOptions,
    CacheStore,
    InMemoryCacheStore,
    ResponseCache,
    create_response_cache,
)
from fastapi_request_chain.chain import Chain, ResolvedChain, compose
from fastapi_request_chain.context import RequestContext
from fastapi_request_chain.endpoint import chain_endpoint
from fastapi_request_chain.events import Event
from fastapi_request_chain.exceptions import (
    ChainAbort,
    ChainException,
    ChainInternalError,
)
from fastapi_request_chain.logger import RequestLogger
from fastapi_request_chain.middleware import ChainMiddleware
from fastapi_request_chain.middlewares.timing import ResponseTimer
from fastapi_request_chain.trace import ChainTrace, TraceEntry

__all__ = [
    "CacheItem",
    "CacheOptions",
    "CacheStore",
    "Chain",
    "ChainAbort",
    "ChainException",
    "ChainInternalError",
    "ChainMiddleware",
    "ChainTrace",
    "Event",
    "InMemoryCacheStore",
    "RequestContext",
    "RequestLogger",
    "ResolvedChain",
    "ResponseCache",
    "ResponseTimer",
    "TraceEntry",
    "chain_endpoint",
    "compose",
    "create_response_cache",
]
